"""API package for the ask-ai gateway."""

from .routes import APIDependencies, router, set_dependencies

__all__ = ["APIDependencies", "router", "set_dependencies"]
