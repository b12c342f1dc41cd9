"""Multi-provider AI gateway for generating and editing single-file web pages."""

__version__ = "0.1.0"
