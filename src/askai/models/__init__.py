from .messages import (
    ChunkChoice,
    ChunkDelta,
    CompletionChunk,
    CompletionRequest,
    Message,
    MessageRole,
    ProviderCredentials,
)
from .patches import EditBlock, LineRange, PatchMarkers, PatchResult
from .requests import AskAIBody, Caller, EditBody, GenerationBody

__all__ = [
    "ChunkChoice",
    "ChunkDelta",
    "CompletionChunk",
    "CompletionRequest",
    "Message",
    "MessageRole",
    "ProviderCredentials",
    "EditBlock",
    "LineRange",
    "PatchMarkers",
    "PatchResult",
    "AskAIBody",
    "Caller",
    "EditBody",
    "GenerationBody",
]
