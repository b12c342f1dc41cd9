"""Canonical Server-Sent-Events framing shared by the streaming adapters."""

from __future__ import annotations

from typing import AsyncIterator, Callable, Optional

import structlog

from ..models.messages import CompletionChunk


logger = structlog.get_logger(__name__)

DONE = "[DONE]"
DONE_FRAME = f"data: {DONE}\n\n"


def encode_chunk(chunk: CompletionChunk) -> str:
    return f"data: {chunk.model_dump_json(exclude_none=True)}\n\n"


def encode_raw(data: str) -> str:
    return f"data: {data}\n\n"


def parse_data_line(line: str) -> Optional[str]:
    """Return the payload of a ``data:`` line, or None for any other line."""
    if not line.startswith("data:"):
        return None
    return line[len("data:"):].strip()


async def normalize_sse_lines(
    lines: AsyncIterator[str],
    convert: Callable[[str], CompletionChunk],
) -> AsyncIterator[str]:
    """Re-frame an upstream SSE line stream as canonical chunk frames.

    ``convert`` turns one data payload into a canonical chunk and raises
    ``ValueError`` when the payload is not valid JSON or breaks the vendor schema.
    Such payloads are forwarded as-is so garbled upstream output still reaches
    the caller. The stream ends after ``[DONE]`` has been forwarded.
    """
    async for raw in lines:
        line = raw.strip()
        if not line or line.startswith(":"):
            continue
        data = parse_data_line(line)
        if data is None:
            yield f"{line}\n\n"
            continue
        if data == DONE:
            yield DONE_FRAME
            return
        try:
            chunk = convert(data)
        except ValueError as e:
            logger.warning("Forwarding unparseable stream chunk", data=data[:200], error=str(e))
            yield encode_raw(data)
            continue
        yield encode_chunk(chunk)
