from .base import ChatProvider, ChunkStream, CompletionResult, ProviderFactory, close_stream
from .registry import ProviderRegistry
from . import huggingface, openai_compat


def build_registry(settings) -> ProviderRegistry:
    """Create the process registry with every bundled adapter registered."""
    registry = ProviderRegistry()
    openai_compat.register(registry, settings)
    huggingface.register(registry, settings)
    return registry


__all__ = [
    "ChatProvider",
    "ChunkStream",
    "CompletionResult",
    "ProviderFactory",
    "ProviderRegistry",
    "build_registry",
    "close_stream",
]
