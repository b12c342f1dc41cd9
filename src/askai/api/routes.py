"""FastAPI routes for the ask-ai gateway."""

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from ..config import Settings
from ..errors import ProviderError
from ..models.requests import Caller, EditBody, GenerationBody
from ..providers.base import ChunkStream, close_stream
from ..providers.registry import ProviderRegistry
from ..providers.sse import encode_raw
from ..services.orchestrator import AskAIService


logger = structlog.get_logger(__name__)

UNKNOWN_CLIENT = "unknown-ip"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


# Dependency injection
class APIDependencies:
    """Container for API dependencies."""

    def __init__(self, service: AskAIService, registry: ProviderRegistry, settings: Settings):
        self.service = service
        self.registry = registry
        self.settings = settings


# Set by the application factory
_dependencies: Optional[APIDependencies] = None


def get_dependencies() -> APIDependencies:
    """Get API dependencies."""
    if _dependencies is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized"
        )
    return _dependencies


def set_dependencies(deps: Optional[APIDependencies]):
    """Set API dependencies."""
    global _dependencies
    _dependencies = deps


def caller_from_request(request: Request, cookie_name: str) -> Caller:
    """Identify the caller by forwarded address or socket peer, plus session cookie."""
    client_key = None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_key = forwarded.split(",")[0].strip() or None
    if client_key is None and request.client is not None:
        client_key = request.client.host or None

    return Caller(
        client_key=client_key or UNKNOWN_CLIENT,
        authenticated=bool(request.cookies.get(cookie_name)),
    )


async def relay_stream(stream: ChunkStream):
    """Forward canonical frames, ending with an error frame if the upstream fails."""
    try:
        async for frame in stream:
            yield frame
    except ProviderError as e:
        logger.error("Upstream stream failed", error=str(e), kind=e.kind)
        yield encode_raw(json.dumps({"error": e.message}))
    except Exception as e:
        logger.exception("Error while relaying stream")
        yield encode_raw(json.dumps({"error": str(e) or "Stream interrupted"}))
    finally:
        await close_stream(stream)


router = APIRouter(prefix="/api/ask-ai", tags=["ask-ai"])


@router.post("")
async def generate(
    body: GenerationBody,
    request: Request,
    deps: APIDependencies = Depends(get_dependencies)
):
    """Stream a freshly generated page as canonical SSE chunks."""
    caller = caller_from_request(request, deps.settings.auth.cookie_name)
    stream = await deps.service.generate(body, caller)
    return StreamingResponse(
        relay_stream(stream),
        media_type="text/event-stream; charset=utf-8",
        headers=SSE_HEADERS,
    )


@router.put("")
async def edit(
    body: EditBody,
    request: Request,
    deps: APIDependencies = Depends(get_dependencies)
):
    """Apply an AI-proposed SEARCH/REPLACE edit to the submitted document."""
    caller = caller_from_request(request, deps.settings.auth.cookie_name)
    result = await deps.service.edit(body, caller)
    return {
        "ok": True,
        "html": result.document,
        "updatedLines": result.updated_lines(),
        "skippedBlocks": result.skipped_blocks,
    }


@router.get("/providers")
async def list_providers(deps: APIDependencies = Depends(get_dependencies)):
    return {"ok": True, "providers": deps.registry.names()}
