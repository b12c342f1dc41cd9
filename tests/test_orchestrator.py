import pytest

from askai.config import Settings
from askai.errors import (
    AUTH_ERROR,
    QUOTA_EXCEEDED,
    TRANSPORT_ERROR,
    AuthenticationError,
    EmptyCompletion,
    ProviderError,
    ProviderUnavailable,
    QuotaExceeded,
    RateLimited,
    UpstreamFailure,
    ValidationError,
)
from askai.models.messages import Message
from askai.models.requests import Caller, EditBody, GenerationBody
from askai.providers.base import ChatProvider
from askai.providers.registry import ProviderRegistry
from askai.services.orchestrator import AskAIService
from askai.services.prompts import DEFAULT_PREVIOUS_PROMPT, INITIAL_SYSTEM_PROMPT
from askai.services.rate_limiter import SlidingWindowRateLimiter


class FakeStream:
    def __init__(self, frames=()):
        self._frames = list(frames)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._frames:
            raise StopAsyncIteration
        return self._frames.pop(0)

    async def aclose(self):
        self.closed = True


class StubProvider(ChatProvider):
    name = "stub"

    def __init__(self, result=None, error=None):
        super().__init__()
        self.result = result
        self.error = error
        self.requests = []

    async def perform_completion(self, req):
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return self.result


def make_service(provider, capacity=2):
    registry = ProviderRegistry()
    registry.register("stub", lambda credentials: provider)
    limiter = SlidingWindowRateLimiter(capacity=capacity, window_seconds=3600)
    return AskAIService(registry, limiter, Settings()), limiter


ANON = Caller(client_key="1.2.3.4")
HTML = "line1\nline2\nline3"
EDIT_RESPONSE = "Changing line 2.\n<<<<<<< SEARCH\nline2\n=======\nlineA\nlineB\n>>>>>>> REPLACE"


def generation(**overrides):
    data = {"provider": "stub", "model": "m", "prompt": "make a landing page"}
    data.update(overrides)
    return GenerationBody(**data)


def edit_body(**overrides):
    data = {"provider": "stub", "model": "m", "prompt": "change line 2", "html": HTML}
    data.update(overrides)
    return EditBody(**data)


@pytest.mark.asyncio
async def test_generate_returns_provider_stream():
    stream = FakeStream(["data: {}\n\n"])
    provider = StubProvider(result=stream)
    service, _ = make_service(provider)

    result = await service.generate(generation(max_tokens=64), ANON)

    assert result is stream
    req = provider.requests[0]
    assert req.stream is True
    assert req.max_tokens == 64
    assert [m.role for m in req.messages] == ["system", "user"]
    assert req.messages[0].content == INITIAL_SYSTEM_PROMPT
    assert req.messages[1].content == "make a landing page"


@pytest.mark.asyncio
async def test_generate_with_redesign_markdown_only():
    provider = StubProvider(result=FakeStream())
    service, _ = make_service(provider)

    await service.generate(generation(prompt=None, redesignMarkdown="# Old site"), ANON)
    assert "# Old site" in provider.requests[0].messages[1].content


@pytest.mark.asyncio
async def test_generate_passes_user_credentials_to_provider():
    seen = []
    registry = ProviderRegistry()
    registry.register("stub", lambda credentials: seen.append(credentials) or StubProvider(result=FakeStream()))
    service = AskAIService(registry, SlidingWindowRateLimiter(capacity=2), Settings())

    await service.generate(generation(apiKey="user-key", baseUrl="http://local/v1"), ANON)
    assert seen[0].api_key == "user-key"
    assert seen[0].base_url == "http://local/v1"


@pytest.mark.asyncio
async def test_missing_fields_are_rejected_before_admission():
    service, limiter = make_service(StubProvider(result=FakeStream()))

    with pytest.raises(ValidationError) as excinfo:
        await service.generate(generation(prompt=None), ANON)
    assert excinfo.value.status_code == 400
    assert limiter.usage(ANON.client_key) == 0


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected():
    service, _ = make_service(StubProvider(result=FakeStream()))

    with pytest.raises(ProviderUnavailable) as excinfo:
        await service.generate(generation(provider="nope"), ANON)
    assert excinfo.value.to_payload() == {
        "ok": False,
        "error": 'AI service provider "nope" is not supported or configured.',
    }


@pytest.mark.asyncio
async def test_anonymous_callers_are_rate_limited():
    provider = StubProvider(result=FakeStream())
    service, _ = make_service(provider, capacity=1)

    await service.generate(generation(), ANON)
    with pytest.raises(RateLimited) as excinfo:
        await service.generate(generation(), ANON)

    assert excinfo.value.status_code == 429
    assert excinfo.value.to_payload()["openLogin"] is True
    assert len(provider.requests) == 1


@pytest.mark.asyncio
async def test_authenticated_callers_bypass_rate_limit():
    service, limiter = make_service(StubProvider(result=FakeStream()), capacity=0)
    caller = Caller(client_key="1.2.3.4", authenticated=True)

    await service.generate(generation(), caller)
    await service.generate(generation(), caller)
    assert limiter.usage(caller.client_key) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind,expected",
    [(QUOTA_EXCEEDED, QuotaExceeded), (AUTH_ERROR, AuthenticationError), (TRANSPORT_ERROR, UpstreamFailure), (None, UpstreamFailure)],
)
async def test_provider_errors_are_classified(kind, expected):
    service, _ = make_service(StubProvider(error=ProviderError("boom", kind=kind)))

    with pytest.raises(expected) as excinfo:
        await service.generate(generation(), ANON)
    if expected is UpstreamFailure:
        assert excinfo.value.message == "Failed to process AI request: boom"
    if expected is AuthenticationError:
        assert excinfo.value.message == "Authentication error with AI provider: boom"


@pytest.mark.asyncio
async def test_generate_rejects_non_stream_result():
    service, _ = make_service(StubProvider(result=Message.assistant("<html></html>")))

    with pytest.raises(UpstreamFailure):
        await service.generate(generation(), ANON)


@pytest.mark.asyncio
async def test_edit_applies_blocks_to_document():
    provider = StubProvider(result=Message.assistant(EDIT_RESPONSE))
    service, _ = make_service(provider)

    result = await service.edit(edit_body(previousPrompt="make a page"), ANON)

    assert result.document == "line1\nlineA\nlineB\nline3"
    assert result.updated_lines() == [[2, 3]]
    assert result.skipped_blocks == 0

    req = provider.requests[0]
    assert req.stream is False
    assert [m.role for m in req.messages] == ["system", "user", "assistant", "user"]
    assert "<<<<<<< SEARCH" in req.messages[0].content
    assert req.messages[1].content == "make a page"
    assert HTML in req.messages[2].content
    assert req.messages[3].content == "change line 2"


@pytest.mark.asyncio
async def test_edit_scopes_context_to_selected_element():
    provider = StubProvider(result=Message.assistant(EDIT_RESPONSE))
    service, _ = make_service(provider)

    await service.edit(edit_body(selectedElementHtml="<h1>Title</h1>"), ANON)

    req = provider.requests[0]
    assert req.messages[1].content == DEFAULT_PREVIOUS_PROMPT
    assert "<h1>Title</h1>" in req.messages[2].content
    assert "ONLY the following element" in req.messages[2].content


@pytest.mark.asyncio
async def test_edit_requires_html():
    service, _ = make_service(StubProvider(result=Message.assistant(EDIT_RESPONSE)))

    with pytest.raises(ValidationError) as excinfo:
        await service.edit(edit_body(html=None), ANON)
    assert excinfo.value.message == "Missing required fields: provider, model, prompt, and html"


@pytest.mark.asyncio
async def test_edit_with_empty_completion_fails():
    service, _ = make_service(StubProvider(result=Message.assistant("")))

    with pytest.raises(EmptyCompletion) as excinfo:
        await service.edit(edit_body(), ANON)
    assert excinfo.value.to_payload() == {"ok": False, "message": "No content returned from the model"}


@pytest.mark.asyncio
async def test_edit_closes_unexpected_stream():
    stream = FakeStream(["data: {}\n\n"])
    service, _ = make_service(StubProvider(result=stream))

    with pytest.raises(UpstreamFailure):
        await service.edit(edit_body(), ANON)
    assert stream.closed


@pytest.mark.asyncio
async def test_edit_provider_failure_uses_modification_prefix():
    service, _ = make_service(StubProvider(error=ProviderError("timeout", kind=TRANSPORT_ERROR)))

    with pytest.raises(UpstreamFailure) as excinfo:
        await service.edit(edit_body(), ANON)
    assert excinfo.value.message == "Failed to process AI modification request: timeout"
