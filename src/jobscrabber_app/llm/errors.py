#!src/jobscrabber_app/llm/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

NO_PROVIDERS_MESSAGE = (
    "No AI providers configured. Please add at least one API key in Settings."
)
ALL_PROVIDERS_EXHAUSTED_MESSAGE = (
    "All configured AI providers are currently rate limited or unavailable. "
    "Please wait a few minutes and try again, or add more API keys in Settings."
)

REDACTED = "***"


class ErrorKind(str, Enum):
    UNKNOWN = "unknown"
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PARSE = "parse"
    EMPTY_RESPONSE = "empty_response"
    NO_PROVIDERS = "no_providers"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    UNPARSEABLE = "unparseable"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class LLMErrorDetails:
    kind: ErrorKind
    provider: Optional[str] = None
    model: Optional[str] = None
    status_code: Optional[int] = None
    retry_after_seconds: Optional[int] = None
    message: str = ""
    raw: Optional[str] = None
    extra: Optional[dict[str, Any]] = None

    @property
    def reason(self) -> str:
        return str(self.kind.value)


class LLMError(Exception):
    def __init__(self, payload: str | LLMErrorDetails) -> None:
        if isinstance(payload, LLMErrorDetails):
            super().__init__(str(payload.message or payload.reason or "llm_error"))
            self._details = payload
        else:
            super().__init__(str(payload or "llm_error"))
            self._details = LLMErrorDetails(
                kind=ErrorKind.UNKNOWN, message=str(payload or "")
            )

    @property
    def details(self) -> LLMErrorDetails:
        return self._details

    @property
    def kind(self) -> ErrorKind:
        return self._details.kind

    @property
    def provider(self) -> Optional[str]:
        return self._details.provider

    @property
    def http_status(self) -> Optional[int]:
        return self._details.status_code


class ProviderNotFoundError(LLMError):
    def __init__(self, name: str) -> None:
        super().__init__(
            LLMErrorDetails(
                kind=ErrorKind.NOT_FOUND,
                provider=str(name),
                message=f"Unknown provider: {name}",
            )
        )


class NoProvidersConfiguredError(LLMError):
    """The pool yielded zero candidates. Safe to show to the user verbatim."""

    def __init__(self) -> None:
        super().__init__(
            LLMErrorDetails(kind=ErrorKind.NO_PROVIDERS, message=NO_PROVIDERS_MESSAGE)
        )


class AllProvidersExhaustedError(LLMError):
    """Every candidate was attempted and none succeeded.

    The message is deliberately generic. ``attempts`` keeps a per candidate
    outcome summary (provider, key index, outcome kind, status) for logs and
    never carries vendor bodies or key material.
    """

    def __init__(self, *, attempts: Optional[Iterable[Mapping[str, Any]]] = None) -> None:
        tried = [dict(a) for a in (attempts or [])]
        super().__init__(
            LLMErrorDetails(
                kind=ErrorKind.ALL_PROVIDERS_EXHAUSTED,
                message=ALL_PROVIDERS_EXHAUSTED_MESSAGE,
                extra={"attempts": tried},
            )
        )
        self._attempts = tried

    @property
    def attempts(self) -> list[dict[str, Any]]:
        return [dict(a) for a in self._attempts]


class UnparseableResponseError(LLMError):
    """The completion could not be coerced to JSON.

    Carries the raw completion for diagnosis.
    """

    def __init__(self, message: str, *, raw_text: str) -> None:
        super().__init__(
            LLMErrorDetails(
                kind=ErrorKind.UNPARSEABLE,
                message=f"Failed to parse AI response as JSON: {message}",
                raw=str(raw_text or ""),
            )
        )

    @property
    def raw_text(self) -> str:
        return str(self.details.raw or "")


class RouteCancelledError(LLMError):
    def __init__(self, *, attempted: int) -> None:
        super().__init__(
            LLMErrorDetails(
                kind=ErrorKind.CANCELLED,
                message="AI request cancelled",
                extra={"attempted": int(attempted)},
            )
        )


class ClientRateLimitedError(LLMError):
    """The caller exceeded its local request budget. No provider was called."""

    def __init__(self, *, reset_seconds: int) -> None:
        super().__init__(
            LLMErrorDetails(
                kind=ErrorKind.RATE_LIMIT,
                retry_after_seconds=int(reset_seconds),
                message=f"AI rate limited. Try again in {int(reset_seconds)}s.",
            )
        )


def parse_retry_after_seconds(headers: Mapping[str, str]) -> Optional[int]:
    v = str(headers.get("Retry-After") or headers.get("retry-after") or "").strip()
    if not v:
        return None
    try:
        return int(float(v))
    except ValueError:
        return None


def redact_secrets(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret with a fixed marker.

    Args:
        text: Message that may embed credentials, e.g. a URL with ``?key=``.
        secrets: Values that must never leave the process.

    Returns:
        str: Scrubbed text.
    """
    out = str(text or "")
    for s in secrets:
        s = str(s or "")
        if s:
            out = out.replace(s, REDACTED)
    return out


__all__ = [
    "ALL_PROVIDERS_EXHAUSTED_MESSAGE",
    "NO_PROVIDERS_MESSAGE",
    "REDACTED",
    "AllProvidersExhaustedError",
    "ClientRateLimitedError",
    "ErrorKind",
    "LLMError",
    "LLMErrorDetails",
    "NoProvidersConfiguredError",
    "ProviderNotFoundError",
    "RouteCancelledError",
    "UnparseableResponseError",
    "parse_retry_after_seconds",
    "redact_secrets",
]
