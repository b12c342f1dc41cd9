from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaError

from .base import ChatProvider, CompletionResult, ManagedStream
from .sse import normalize_sse_lines
from ..errors import (
    BAD_MODEL,
    TRANSPORT_ERROR,
    ProviderError,
    ProviderResponseError,
    infer_kind,
    kind_for_status,
)
from ..models.messages import (
    ChunkChoice,
    ChunkDelta,
    CompletionChunk,
    CompletionRequest,
    Message,
    ProviderCredentials,
)


DEFAULT_BASE_URL = "https://api.openai.com/v1"

# Backends that speak the OpenAI chat completions wire format. They share one
# adapter and differ only by default base URL and key.
WIRE_COMPATIBLE_PROVIDERS = ("openai", "gemini", "deepseek", "claude", "doubao")


class _WireDelta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[str] = None
    role: Optional[str] = None


class _WireStreamChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    delta: _WireDelta
    index: Optional[int] = None
    finish_reason: Optional[str] = None


class _WireStreamChunk(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[_WireStreamChoice]

    def to_canonical(self) -> CompletionChunk:
        return CompletionChunk(
            id=self.id,
            model=self.model,
            choices=[
                ChunkChoice(
                    delta=ChunkDelta(content=c.delta.content, role=c.delta.role),
                    index=c.index,
                    finish_reason=c.finish_reason,
                )
                for c in self.choices
            ],
        )


class _WireMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None


class _WireChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: _WireMessage


class _WireResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    choices: List[_WireChoice]


def _join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def convert_stream_chunk(data: str) -> CompletionChunk:
    """Parse one upstream ``data:`` payload into a canonical chunk (raises ValueError)."""
    return _WireStreamChunk.model_validate_json(data).to_canonical()


class OpenAICompatibleProvider(ChatProvider):
    name = "openai"

    def __init__(
        self,
        *,
        name: str = "openai",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger=None,
    ) -> None:
        self.name = name
        super().__init__(logger=logger)
        self.api_key = api_key or ""
        self.base_url = base_url or DEFAULT_BASE_URL
        self.timeout = timeout or httpx.Timeout(120.0, connect=10.0)
        self.transport = transport
        if not self.api_key:
            self.log.warning("API key is not configured, calls fail if the endpoint requires authentication")

    def _headers(self, stream: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    def _build_payload(self, req: CompletionRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": req.model,
            "messages": [m.to_wire() for m in req.messages],
            "stream": bool(req.stream),
        }
        if req.max_tokens is not None:
            payload["max_tokens"] = req.max_tokens
        if req.temperature is not None:
            payload["temperature"] = req.temperature
        return payload

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def perform_completion(self, req: CompletionRequest) -> CompletionResult:
        url = _join_url(self.base_url, "chat/completions")
        client = self._client()
        self.log.debug("POST", url=url, model=req.model, stream=req.stream)
        try:
            request = client.build_request(
                "POST", url, json=self._build_payload(req), headers=self._headers(req.stream)
            )
            response = await client.send(request, stream=req.stream)
            if not response.is_success:
                await response.aread()
                await response.aclose()
                raise self._error_from_response(response)
        except httpx.InvalidURL as e:
            await client.aclose()
            self.log.warning("Invalid upstream URL", url=url, error=str(e))
            raise ProviderError(f"Invalid base URL {self.base_url!r}: {e}", kind=TRANSPORT_ERROR) from e
        except httpx.HTTPError as e:
            await client.aclose()
            self.log.warning("Upstream request failed", url=url, error=str(e))
            raise ProviderError(f"Network error: {e}", kind=TRANSPORT_ERROR) from e
        except ProviderError:
            await client.aclose()
            raise

        if req.stream:
            async def release() -> None:
                await response.aclose()
                await client.aclose()

            return ManagedStream(self._frames(response), release)

        try:
            return self._parse_message(response)
        finally:
            await response.aclose()
            await client.aclose()

    async def _frames(self, response: httpx.Response) -> AsyncIterator[str]:
        try:
            async for frame in normalize_sse_lines(response.aiter_lines(), convert_stream_chunk):
                yield frame
        except httpx.HTTPError as e:
            self.log.error("Upstream stream interrupted", error=str(e))
            raise ProviderError(f"Stream interrupted: {e}", kind=TRANSPORT_ERROR) from e

    def _parse_message(self, response: httpx.Response) -> Message:
        try:
            data = _WireResponse.model_validate_json(response.content)
        except SchemaError as e:
            self.log.debug("Unexpected response shape", body=response.text[:500])
            raise ProviderResponseError(
                f"Malformed completion response from {self.name}",
                status=response.status_code,
                body=response.text[:500],
            ) from e
        if not data.choices:
            raise ProviderResponseError(
                f"Completion response from {self.name} has no choices",
                status=response.status_code,
            )
        return Message.assistant(data.choices[0].message.content or "")

    def _error_from_response(self, response: httpx.Response) -> ProviderError:
        status = response.status_code
        detail: Optional[str] = None
        code: Optional[str] = None
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, dict):
                detail = err.get("message")
                code = err.get("code") or err.get("type")
            elif isinstance(err, str):
                detail = err
            detail = detail or data.get("message")
        detail = detail or response.reason_phrase or "Unknown error"

        kind = infer_kind(f"{detail} {code or ''}") or kind_for_status(status)
        if kind is None and status == 404 and "model" in detail.lower():
            kind = BAD_MODEL
        self.log.warning("Upstream returned error", status=status, detail=detail, kind=kind)
        return ProviderError(
            f"{self.name} API request failed with status {status}: {detail}",
            kind=kind,
            status=status,
            body=response.text[:2000],
        )


def register(registry, settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
    """Register the wire-compatible adapter under every backend that uses it."""
    timeout = httpx.Timeout(settings.http.read_timeout, connect=settings.http.connect_timeout)

    def factory_for(name: str):
        defaults = settings.providers.credentials_for(name)

        def build(credentials: ProviderCredentials) -> OpenAICompatibleProvider:
            return OpenAICompatibleProvider(
                name=name,
                api_key=credentials.api_key or defaults["api_key"],
                base_url=credentials.base_url or defaults["base_url"],
                timeout=timeout,
                transport=transport,
            )

        return build

    for name in WIRE_COMPATIBLE_PROVIDERS:
        registry.register(name, factory_for(name))
