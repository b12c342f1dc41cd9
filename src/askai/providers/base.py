from __future__ import annotations

import abc
from typing import AsyncIterator, Awaitable, Callable, Union

import structlog

from ..models.messages import CompletionRequest, Message, ProviderCredentials


# SSE frames ("data: <json>\n\n") in canonical form, ending with "data: [DONE]\n\n"
# or when the upstream transport closes.
ChunkStream = AsyncIterator[str]
CompletionResult = Union[ChunkStream, Message]


class ChatProvider(abc.ABC):
    name: str = "base"

    def __init__(self, *, logger=None) -> None:
        self.log = logger or structlog.get_logger(f"provider.{self.name}")

    @abc.abstractmethod
    async def perform_completion(self, req: CompletionRequest) -> CompletionResult:
        """Return a chunk stream when ``req.stream`` is set, else the assistant message."""


ProviderFactory = Callable[[ProviderCredentials], ChatProvider]


async def close_stream(stream: ChunkStream) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


class ManagedStream:
    """Chunk stream that runs ``release`` exactly once when iteration ends or ``aclose()`` is called.

    ``release`` runs even when the stream is closed before its first frame,
    which a bare async generator's ``finally`` does not guarantee.
    """

    def __init__(self, frames: AsyncIterator[str], release: Callable[[], Awaitable[None]]) -> None:
        self._frames = frames
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "ManagedStream":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._frames.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await close_stream(self._frames)
        finally:
            await self._release()
