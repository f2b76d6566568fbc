#!filepath: src/jobscrabber_app/llm/probe.py
from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from jobscrabber_app.keypool.models import parse_key_pool
from jobscrabber_app.llm.errors import ErrorKind, LLMError, redact_secrets
from jobscrabber_app.llm.http_transport import HTTPTransport
from jobscrabber_app.llm.invoker import ADAPTERS, Sampling
from jobscrabber_app.llm.registry import ProviderRegistry, default_registry
from jobscrabber_app.llm.types import ProviderDescriptor
from jobscrabber_app.settings import AISettings, get_ai_settings
from jobscrabber_app.utils.logger import get_logger

logger = get_logger(__name__)

PROBE_PROMPT = "Reply with exactly one word: OK"
PROBE_MAX_TOKENS = 10


class ProbeStatus(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    INVALID_KEY = "invalid_key"
    NO_KEY = "no_key"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Health of one configured key. Never carries the key itself."""

    status: ProbeStatus
    key_index: Optional[int] = None
    message: str = ""
    latency_ms: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        return out


class KeyProber:
    """Sends a tiny prompt to the primary model of a provider, once per key."""

    def __init__(
        self,
        *,
        registry: Optional[ProviderRegistry] = None,
        transport: Optional[HTTPTransport] = None,
        settings: Optional[AISettings] = None,
    ) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._settings = settings or get_ai_settings()
        self._transport = transport or HTTPTransport(
            timeout_seconds=int(self._settings.timeout_seconds)
        )

    def probe_key(
        self, descriptor: ProviderDescriptor, api_key: str, key_index: int = 0
    ) -> ProbeResult:
        adapter = ADAPTERS[descriptor.wire_protocol]
        model = descriptor.models[0]
        call = adapter.prepare(
            descriptor,
            model,
            api_key,
            PROBE_PROMPT,
            Sampling(
                temperature=0.0,
                max_tokens=PROBE_MAX_TOKENS,
                top_p=float(self._settings.top_p),
            ),
        )
        t0 = time.perf_counter()
        try:
            self._transport.post_json(
                url=call.url,
                headers=call.headers,
                payload=call.payload,
                provider=descriptor.name,
                model=model,
                params=call.params,
                secrets=(api_key,),
            )
        except LLMError as e:
            latency = _ms_since(t0)
            d = e.details
            if d.kind == ErrorKind.RATE_LIMIT:
                msg = "Rate limited"
                if d.retry_after_seconds:
                    msg = f"Try again in ~{math.ceil(d.retry_after_seconds / 60)} min"
                return ProbeResult(ProbeStatus.RATE_LIMITED, key_index, msg, latency)
            text = redact_secrets(d.message or str(e), (api_key,))
            if d.kind == ErrorKind.AUTH or "api key" in text.lower():
                return ProbeResult(
                    ProbeStatus.INVALID_KEY, key_index, "Invalid API key", latency
                )
            prefix = f"HTTP {d.status_code}: " if d.status_code else ""
            return ProbeResult(
                ProbeStatus.ERROR, key_index, f"{prefix}{text}"[:300], latency
            )
        return ProbeResult(ProbeStatus.OK, key_index, "", _ms_since(t0))

    def probe_pool(
        self, pool: Mapping[str, Any], provider: Optional[str] = None
    ) -> dict[str, list[ProbeResult]]:
        """Probe every key of every known provider in the pool.

        Args:
            pool: User key pool.
            provider: Restrict to a single provider.

        Returns:
            dict[str, list[ProbeResult]]: Results per provider, in key order.
        """
        entries = parse_key_pool(pool)
        if provider is not None:
            entries = {provider: entries[provider]} if provider in entries else {}

        results: dict[str, list[ProbeResult]] = {}
        for name, entry in entries.items():
            if name not in self._registry:
                continue
            descriptor = self._registry.describe(name)
            keys = entry.usable_keys
            if not keys:
                results[name] = [ProbeResult(ProbeStatus.NO_KEY, message="No keys configured")]
                continue
            results[name] = [
                self.probe_key(descriptor, key, idx) for idx, key in enumerate(keys)
            ]
            logger.info(
                f"Probed provider keys, provider={name}, keys={len(keys)}, ok={sum(r.status is ProbeStatus.OK for r in results[name])}"
            )
        return results


def _ms_since(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)
