#!filepath: src/jobscrabber_app/llm/results.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from jobscrabber_app.llm.errors import ErrorKind


@dataclass(frozen=True, slots=True)
class Completion:
    """A usable completion.

    Attributes:
        text: Completion text, never empty.
        provider: Provider that answered.
        model: Model that answered.
    """

    text: str
    provider: str
    model: str

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RateLimited:
    """Every model of the provider answered 429 for this key."""

    provider: str
    tried_models: tuple[str, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class InvalidKey:
    """The vendor rejected the credential (401 or 403)."""

    provider: str
    status_code: int
    message: str = ""

    @property
    def success(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class TransientError:
    """Anything else: vendor 4xx/5xx, network failure, timeout or empty text."""

    provider: str
    kind: ErrorKind
    message: str = ""
    status_code: Optional[int] = None
    model: Optional[str] = None

    @property
    def success(self) -> bool:
        return False


CompletionResult = Union[Completion, RateLimited, InvalidKey, TransientError]


def describe_outcome(result: CompletionResult) -> str:
    """Short outcome label used in logs and attempt summaries."""
    if isinstance(result, Completion):
        return "ok"
    if isinstance(result, RateLimited):
        return ErrorKind.RATE_LIMIT.value
    if isinstance(result, InvalidKey):
        return ErrorKind.AUTH.value
    return result.kind.value
