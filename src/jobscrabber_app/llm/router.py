#!src/jobscrabber_app/llm/router.py
from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Protocol

from jobscrabber_app.keypool.models import KeyPool, parse_key_pool
from jobscrabber_app.llm.errors import (
    AllProvidersExhaustedError,
    NoProvidersConfiguredError,
    RouteCancelledError,
)
from jobscrabber_app.llm.invoker import ProviderInvoker
from jobscrabber_app.llm.normalizer import extract_json
from jobscrabber_app.llm.registry import ProviderRegistry, default_registry
from jobscrabber_app.llm.results import (
    Completion,
    InvalidKey,
    RateLimited,
    TransientError,
    describe_outcome,
)
from jobscrabber_app.llm.types import Candidate
from jobscrabber_app.utils.logger import get_logger

logger = get_logger(__name__)


class KeyPoolLoader(Protocol):
    def load_key_pool(self, user_id: str) -> KeyPool: ...


def build_candidates(
    pool: Mapping[str, Any], registry: Optional[ProviderRegistry] = None
) -> list[Candidate]:
    """Flatten a pool into the ordered attempt list.

    Enabled providers with at least one non empty key are sorted by priority,
    ties broken by registry order, then expanded one candidate per key in key
    order. Providers the registry does not know are skipped.

    Args:
        pool: User pool, validated or raw.
        registry: Provider catalog, defaults to the built-in one.

    Returns:
        list[Candidate]: Attempt order for one call.
    """
    reg = registry if registry is not None else default_registry()
    entries = parse_key_pool(pool)

    eligible = []
    for name, entry in entries.items():
        if name not in reg:
            logger.warning(f"Ignoring unknown provider in key pool, provider={name}")
            continue
        if not entry.enabled or not entry.usable_keys:
            continue
        eligible.append((entry.priority, reg.order_of(name), name, entry))

    eligible.sort(key=lambda t: (t[0], t[1]))

    candidates: list[Candidate] = []
    for _, _, name, entry in eligible:
        for idx, key in enumerate(entry.keys):
            if str(key or "").strip():
                candidates.append(Candidate(provider=name, api_key=key, key_index=idx))
    return candidates


class AIRouter:
    """Routes a prompt across a user's pool of provider keys.

    Candidates are tried one at a time in (priority, key index) order and the
    first completion wins. A provider that reports rate limiting is skipped
    for the rest of the call, even if it has keys left.
    """

    def __init__(
        self,
        *,
        registry: Optional[ProviderRegistry] = None,
        invoker: Optional[ProviderInvoker] = None,
        store: Optional[KeyPoolLoader] = None,
    ) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._invoker = invoker or ProviderInvoker()
        self._store = store

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def candidates(self, pool: Mapping[str, Any]) -> list[Candidate]:
        return build_candidates(pool, self._registry)

    def complete(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        pool: Optional[Mapping[str, Any]] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Completion:
        """Walk the candidates and return the winning completion.

        Args:
            prompt: Rendered prompt.
            temperature: Sampling temperature, defaults to settings.
            pool: User key pool.
            cancel_event: When set, the walk stops before the next attempt.

        Returns:
            Completion: First success.

        Raises:
            NoProvidersConfiguredError: The pool yields no candidates.
            AllProvidersExhaustedError: Every candidate failed.
            RouteCancelledError: ``cancel_event`` was set mid walk.
        """
        temp = (
            float(temperature)
            if temperature is not None
            else float(self._invoker.settings.temperature)
        )
        candidates = self.candidates(pool or {})
        if not candidates:
            raise NoProvidersConfiguredError()

        rate_limited: set[str] = set()
        attempts: list[dict[str, Any]] = []

        for cand in candidates:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"AI routing cancelled, attempted={len(attempts)}")
                raise RouteCancelledError(attempted=len(attempts))
            if cand.provider in rate_limited:
                logger.debug(
                    f"Skipping rate limited provider, provider={cand.provider}, key_index={cand.key_index}"
                )
                continue

            descriptor = self._registry.describe(cand.provider)
            result = self._invoker.invoke(descriptor, cand.api_key, prompt, temp)
            attempts.append(
                {
                    "provider": cand.provider,
                    "key_index": cand.key_index,
                    "outcome": describe_outcome(result),
                    "status": getattr(result, "status_code", None),
                }
            )

            if isinstance(result, Completion):
                return result
            if isinstance(result, RateLimited):
                logger.warning(
                    f"Provider rate limited, trying next, provider={cand.provider}"
                )
                rate_limited.add(cand.provider)
                continue
            if isinstance(result, InvalidKey):
                logger.warning(
                    f"Provider key rejected, trying next, provider={cand.provider}, key_index={cand.key_index}, status={result.status_code}"
                )
                continue
            if isinstance(result, TransientError):
                logger.warning(
                    f"Provider key failed, trying next, provider={cand.provider}, key_index={cand.key_index}, kind={result.kind.value}, status={result.status_code}, error={result.message[:220]}"
                )
                continue

        logger.error(
            f"All AI providers exhausted, candidates={len(candidates)}, attempted={len(attempts)}"
        )
        raise AllProvidersExhaustedError(attempts=attempts)

    def route(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        pool: Optional[Mapping[str, Any]] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Return the raw completion text of the first successful candidate."""
        return self.complete(
            prompt, temperature, pool, cancel_event=cancel_event
        ).text

    def load_pool(self, user_id: str) -> KeyPool:
        """Read the user's pool; a failing store reads as an empty pool."""
        if self._store is None or not str(user_id or "").strip():
            return {}
        try:
            return self._store.load_key_pool(str(user_id))
        except Exception as e:
            logger.warning(
                f"Failed to load AI providers from store, user_id={user_id}, error={type(e).__name__}"
            )
            return {}

    def route_for_user(
        self,
        prompt: str,
        user_id: str,
        temperature: Optional[float] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        return self.route(
            prompt, temperature, self.load_pool(user_id), cancel_event=cancel_event
        )

    def route_json(
        self,
        prompt: str,
        user_id: str,
        temperature: Optional[float] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """Route for a user and extract the JSON value from the completion.

        Raises:
            UnparseableResponseError: The completion holds no usable JSON.
        """
        text = self.route_for_user(
            prompt, user_id, temperature, cancel_event=cancel_event
        )
        return extract_json(text)
