from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


QUOTA_EXCEEDED = "quota_exceeded"
AUTH_ERROR = "auth_error"
TRANSPORT_ERROR = "transport_error"
BAD_MODEL = "bad_model"

_QUOTA_MARKERS = ("exceeded your monthly included credits", "insufficient_quota")
_AUTH_MARKERS = ("authentication_error", "API key")


_STATUS_KINDS = {401: AUTH_ERROR, 403: AUTH_ERROR, 402: QUOTA_EXCEEDED}


def kind_for_status(status: Optional[int]) -> Optional[str]:
    if status is None:
        return None
    return _STATUS_KINDS.get(status)


def infer_kind(text: Optional[str]) -> Optional[str]:
    """Classify an upstream error text when the status code alone does not."""
    if not text:
        return None
    if any(m in text for m in _QUOTA_MARKERS):
        return QUOTA_EXCEEDED
    if any(m in text for m in _AUTH_MARKERS):
        return AUTH_ERROR
    return None


@dataclass(eq=False)
class ProviderError(Exception):
    message: str
    kind: Optional[str] = None
    status: Optional[int] = None
    body: Optional[str] = None

    def __str__(self) -> str:
        base = self.message
        if self.status is not None:
            base += f" (status {self.status})"
        return base


class ProviderResponseError(ProviderError):
    """Upstream body did not match the vendor schema."""


class GatewayError(Exception):
    """Client-facing failure with an HTTP status and a JSON payload."""

    status_code: int = 500
    message_key: str = "error"
    flags: Dict[str, Any] = {}

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"ok": False, **self.flags, self.message_key: self.message}


class ValidationError(GatewayError):
    status_code = 400


class ProviderUnavailable(GatewayError):
    status_code = 400

    def __init__(self, provider: str) -> None:
        super().__init__(f'AI service provider "{provider}" is not supported or configured.')
        self.provider = provider


class RateLimited(GatewayError):
    status_code = 429
    message_key = "message"
    flags = {"openLogin": True}


class AuthenticationError(GatewayError):
    status_code = 401
    flags = {"openSettings": True}


class QuotaExceeded(GatewayError):
    status_code = 402
    message_key = "message"
    flags = {"openProModal": True}


class UpstreamFailure(GatewayError):
    status_code = 500


class EmptyCompletion(GatewayError):
    status_code = 400
    message_key = "message"

    def __init__(self) -> None:
        super().__init__("No content returned from the model")
