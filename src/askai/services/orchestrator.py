"""
Request orchestration for the two ask-ai protocols.

``generate`` relays a provider's canonical chunk stream for a fresh page;
``edit`` buffers a completion and applies its SEARCH/REPLACE blocks to the
caller's document. Both check the request, admission control and provider
resolution in that order before any upstream call is made.
"""

from typing import Optional

import structlog

from .patch_engine import apply_patches
from .prompts import (
    FOLLOW_UP,
    INITIAL,
    build_follow_up_messages,
    build_initial_messages,
    get_system_prompt,
)
from .rate_limiter import SlidingWindowRateLimiter
from ..errors import (
    AUTH_ERROR,
    QUOTA_EXCEEDED,
    AuthenticationError,
    EmptyCompletion,
    GatewayError,
    ProviderError,
    ProviderUnavailable,
    QuotaExceeded,
    RateLimited,
    UpstreamFailure,
    ValidationError,
)
from ..models.messages import CompletionRequest, Message, ProviderCredentials
from ..models.patches import PatchMarkers, PatchResult
from ..models.requests import Caller, EditBody, GenerationBody, AskAIBody
from ..providers.base import ChatProvider, ChunkStream, close_stream
from ..providers.registry import ProviderRegistry


logger = structlog.get_logger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please log in to continue or try again later."


def classify_provider_error(exc: ProviderError, failure_prefix: str) -> GatewayError:
    """Map an adapter error onto the client-facing taxonomy."""
    if exc.kind == QUOTA_EXCEEDED:
        return QuotaExceeded(exc.message)
    if exc.kind == AUTH_ERROR:
        return AuthenticationError(f"Authentication error with AI provider: {exc.message}")
    return UpstreamFailure(f"{failure_prefix}: {exc.message or 'Unknown error'}")


class AskAIService:
    """Validates, admits, resolves and dispatches ask-ai requests."""

    def __init__(self, registry: ProviderRegistry, rate_limiter: SlidingWindowRateLimiter, settings):
        self.registry = registry
        self.rate_limiter = rate_limiter
        self.settings = settings
        prompts = settings.prompts
        self.markers = PatchMarkers(prompts.search_start, prompts.divider, prompts.replace_end)

    def _admit(self, caller: Caller) -> None:
        if caller.authenticated:
            return
        if not self.rate_limiter.admit(caller.client_key):
            raise RateLimited(RATE_LIMITED_MESSAGE)

    def _resolve(self, body: AskAIBody) -> ChatProvider:
        credentials = ProviderCredentials(api_key=body.api_key, base_url=body.base_url)
        provider = self.registry.resolve(body.provider, credentials)
        if provider is None:
            raise ProviderUnavailable(body.provider)
        return provider

    def _request(self, body: AskAIBody, messages, stream: bool) -> CompletionRequest:
        return CompletionRequest(
            model=body.model,
            messages=messages,
            provider=body.provider,
            credentials=ProviderCredentials(api_key=body.api_key, base_url=body.base_url),
            stream=stream,
            max_tokens=body.max_tokens,
            temperature=body.temperature,
        )

    def _lang(self, body: AskAIBody) -> Optional[str]:
        return body.lang or self.settings.prompts.default_lang

    async def generate(self, body: GenerationBody, caller: Caller) -> ChunkStream:
        if not body.provider or not body.model or not (body.prompt or body.redesign_markdown):
            raise ValidationError("Missing required fields: provider, model, and prompt or redesignMarkdown")
        self._admit(caller)
        provider = self._resolve(body)

        messages = build_initial_messages(
            get_system_prompt(INITIAL, self.markers, self._lang(body)),
            body.prompt,
            redesign_markdown=body.redesign_markdown,
            html=body.html,
        )
        req = self._request(body, messages, stream=True)
        logger.info("Initial generation", provider=body.provider, model=body.model, client=caller.client_key)

        try:
            result = await provider.perform_completion(req)
        except ProviderError as e:
            logger.error("Provider call failed", provider=body.provider, model=body.model, error=str(e), kind=e.kind)
            raise classify_provider_error(e, "Failed to process AI request") from e

        if isinstance(result, Message):
            logger.error("Provider returned a message for a streaming request", provider=body.provider)
            raise UpstreamFailure("AI service failed to provide a stream.")
        return result

    async def edit(self, body: EditBody, caller: Caller) -> PatchResult:
        if not body.provider or not body.model or not body.prompt or not body.html:
            raise ValidationError("Missing required fields: provider, model, prompt, and html")
        self._admit(caller)
        provider = self._resolve(body)

        messages = build_follow_up_messages(
            get_system_prompt(FOLLOW_UP, self.markers, self._lang(body)),
            body.prompt,
            body.html,
            previous_prompt=body.previous_prompt,
            selected_element_html=body.selected_element_html,
        )
        req = self._request(body, messages, stream=False)
        logger.info("Follow-up edit", provider=body.provider, model=body.model, client=caller.client_key)

        try:
            result = await provider.perform_completion(req)
        except ProviderError as e:
            logger.error("Provider call failed", provider=body.provider, model=body.model, error=str(e), kind=e.kind)
            raise classify_provider_error(e, "Failed to process AI modification request") from e

        if not isinstance(result, Message):
            logger.error("Provider returned a stream for a non-streaming request", provider=body.provider)
            await close_stream(result)
            raise UpstreamFailure("AI service stream error in non-stream request.")

        if not result.content:
            raise EmptyCompletion()

        patched = apply_patches(body.html, result.content, self.markers)
        logger.info(
            "Applied edit blocks",
            changed=len(patched.changed_ranges),
            skipped=patched.skipped_blocks,
        )
        return patched
