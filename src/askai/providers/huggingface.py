from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Dict, Optional

from huggingface_hub import AsyncInferenceClient, InferenceTimeoutError

from .base import ChatProvider, CompletionResult, ManagedStream
from .catalog import find_model, pick_sub_provider
from .sse import DONE_FRAME, encode_chunk
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


ClientFactory = Callable[..., Any]


def _default_client_factory(*, provider: str, api_key: Optional[str], bill_to: Optional[str], timeout: Optional[float]):
    return AsyncInferenceClient(provider=provider, api_key=api_key, bill_to=bill_to, timeout=timeout)


class HuggingFaceProvider(ChatProvider):
    """Hugging Face Inference Providers adapter built on ``AsyncInferenceClient``."""

    name = "huggingface"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        bill_to: Optional[str] = None,
        sub_provider: Optional[str] = None,
        timeout: Optional[float] = None,
        client_factory: Optional[ClientFactory] = None,
        logger=None,
    ) -> None:
        super().__init__(logger=logger)
        self.token = token
        self.bill_to = bill_to
        self.sub_provider = sub_provider
        self.timeout = timeout
        self._client_factory = client_factory or _default_client_factory
        if not self.token:
            self.log.warning("HF token is not configured")

    def _build_params(self, req: CompletionRequest, max_tokens: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": req.model,
            "messages": [m.to_wire() for m in req.messages],
            "max_tokens": req.max_tokens if req.max_tokens is not None else max_tokens,
            "stream": bool(req.stream),
        }
        if req.temperature is not None:
            params["temperature"] = req.temperature
        return params

    async def perform_completion(self, req: CompletionRequest) -> CompletionResult:
        model = find_model(req.model)
        if model is None:
            raise ProviderError(f"Model configuration not found for {req.model}", kind=BAD_MODEL)
        sub = pick_sub_provider(model, self.sub_provider)
        params = self._build_params(req.model_copy(update={"model": model.value}), sub.max_tokens)

        self.log.debug("chat_completion", model=model.value, sub_provider=sub.id, stream=req.stream)
        try:
            client = self._client_factory(
                provider=sub.id, api_key=self.token, bill_to=self.bill_to, timeout=self.timeout
            )
        except Exception as e:
            self.log.error("Could not create inference client", sub_provider=sub.id, error=str(e))
            raise self._translate(e) from e

        try:
            output = await client.chat_completion(**params)
        except Exception as e:
            await client.close()
            raise self._translate(e) from e

        if req.stream:
            return ManagedStream(self._frames(output), client.close)

        try:
            return Message.assistant(output.choices[0].message.content or "")
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderResponseError(f"Malformed completion response from {self.name}") from e
        finally:
            await client.close()

    async def _frames(self, output) -> AsyncIterator[str]:
        try:
            async for item in output:
                yield encode_chunk(self._to_canonical(item))
            yield DONE_FRAME
        except ProviderError:
            raise
        except Exception as e:
            self.log.error("Inference stream interrupted", error=str(e))
            raise self._translate(e) from e

    def _to_canonical(self, item) -> CompletionChunk:
        try:
            return CompletionChunk(
                id=item.id,
                model=item.model,
                choices=[
                    ChunkChoice(
                        delta=ChunkDelta(content=c.delta.content, role=c.delta.role),
                        index=c.index,
                        finish_reason=c.finish_reason,
                    )
                    for c in item.choices
                ],
            )
        except AttributeError as e:
            raise ProviderResponseError(f"Malformed stream chunk from {self.name}: {e}") from e

    def _translate(self, exc: Exception) -> ProviderError:
        status = getattr(exc, "status", None)
        if status is None:
            status = getattr(getattr(exc, "response", None), "status_code", None)
        message = str(exc) or type(exc).__name__
        kind = infer_kind(message) or kind_for_status(status)
        if kind is None and status == 404:
            kind = BAD_MODEL
        if kind is None and (status is None or isinstance(exc, InferenceTimeoutError)):
            kind = TRANSPORT_ERROR
        return ProviderError(message, kind=kind, status=status if isinstance(status, int) else None)


def register(registry, settings, *, client_factory: Optional[ClientFactory] = None) -> None:
    providers = settings.providers
    env_token = providers.hf_token.get_secret_value() if providers.hf_token else None
    default_token = providers.default_hf_token.get_secret_value() if providers.default_hf_token else None

    def build(credentials: ProviderCredentials) -> HuggingFaceProvider:
        token = credentials.api_key or env_token or default_token
        # The shared default token is billed to the configured organisation.
        bill_to = None
        if not credentials.api_key and not env_token and default_token:
            bill_to = providers.hf_bill_to
        return HuggingFaceProvider(
            token=token,
            bill_to=bill_to,
            sub_provider=providers.hf_default_provider,
            timeout=settings.http.read_timeout,
            client_factory=client_factory,
        )

    registry.register("huggingface", build)
