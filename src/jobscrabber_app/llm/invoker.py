#!src/jobscrabber_app/llm/invoker.py
from __future__ import annotations

import operator
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from jobscrabber_app.llm.errors import ErrorKind, LLMError, redact_secrets
from jobscrabber_app.llm.http_transport import HTTPTransport
from jobscrabber_app.llm.results import (
    Completion,
    CompletionResult,
    InvalidKey,
    RateLimited,
    TransientError,
)
from jobscrabber_app.llm.types import ProviderDescriptor, WireProtocol
from jobscrabber_app.settings import AISettings, get_ai_settings
from jobscrabber_app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PreparedCall:
    """Everything the transport needs for one model attempt."""

    url: str
    headers: Dict[str, str]
    payload: Dict[str, Any]
    params: Optional[Dict[str, str]] = None


@dataclass(frozen=True, slots=True)
class Sampling:
    temperature: float
    max_tokens: int
    top_p: float


class OpenAICompatAdapter:
    """Chat completions shape used by Groq, OpenRouter and friends."""

    def prepare(
        self,
        descriptor: ProviderDescriptor,
        model: str,
        api_key: str,
        prompt: str,
        sampling: Sampling,
    ) -> PreparedCall:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        headers.update(dict(descriptor.extra_headers))
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": float(sampling.temperature),
            "max_tokens": int(sampling.max_tokens),
            "top_p": float(sampling.top_p),
        }
        return PreparedCall(
            url=descriptor.endpoint_for(model), headers=headers, payload=payload
        )

    def extract_text(self, data: Mapping[str, Any]) -> str:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0] if isinstance(choices[0], dict) else {}
        msg = first.get("message")
        if not isinstance(msg, dict):
            return ""
        content = msg.get("content")
        return content if isinstance(content, str) else ""


class GeminiAdapter:
    """``generateContent`` shape, key passed as a query parameter."""

    def prepare(
        self,
        descriptor: ProviderDescriptor,
        model: str,
        api_key: str,
        prompt: str,
        sampling: Sampling,
    ) -> PreparedCall:
        headers = {"Content-Type": "application/json"}
        headers.update(dict(descriptor.extra_headers))
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": float(sampling.temperature),
                "maxOutputTokens": int(sampling.max_tokens),
                "topP": float(sampling.top_p),
            },
        }
        return PreparedCall(
            url=descriptor.endpoint_for(model),
            headers=headers,
            payload=payload,
            params={"key": api_key},
        )

    def extract_text(self, data: Mapping[str, Any]) -> str:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""
        return text if isinstance(text, str) else ""


ADAPTERS: Mapping[WireProtocol, Any] = {
    WireProtocol.OPENAI_COMPATIBLE: OpenAICompatAdapter(),
    WireProtocol.GEMINI: GeminiAdapter(),
}


class ProviderInvoker:
    """Calls one provider with one key, walking its model fallback list.

    Vendor outcomes never raise: the result is always one of
    ``Completion``, ``RateLimited``, ``InvalidKey`` or ``TransientError``.
    """

    def __init__(
        self,
        transport: Optional[HTTPTransport] = None,
        settings: Optional[AISettings] = None,
    ) -> None:
        self._settings = settings or get_ai_settings()
        self._transport = transport or HTTPTransport(
            timeout_seconds=int(self._settings.timeout_seconds),
            max_response_bytes=int(self._settings.max_response_bytes),
        )

    @property
    def settings(self) -> AISettings:
        return self._settings

    def invoke(
        self,
        descriptor: ProviderDescriptor,
        api_key: str,
        prompt: str,
        temperature: float,
        *,
        models: Optional[Sequence[str]] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Run the prompt against the provider.

        Args:
            descriptor: Provider to call.
            api_key: One key from the user's pool.
            prompt: Rendered prompt.
            temperature: Sampling temperature.
            models: Override of the model list, defaults to the descriptor's.
            max_tokens: Override of the completion token cap.

        Returns:
            CompletionResult: Tagged outcome.
        """
        adapter = ADAPTERS[descriptor.wire_protocol]
        sampling = Sampling(
            temperature=float(temperature),
            max_tokens=int(max_tokens or self._settings.max_tokens),
            top_p=float(self._settings.top_p),
        )
        secrets = (api_key,)
        rate_limited: list[str] = []
        last_failure: Optional[TransientError] = None

        for model in tuple(models or descriptor.models):
            call = adapter.prepare(descriptor, model, api_key, prompt, sampling)
            t0 = time.perf_counter()
            try:
                data = self._transport.post_json(
                    url=call.url,
                    headers=call.headers,
                    payload=call.payload,
                    provider=descriptor.name,
                    model=model,
                    params=call.params,
                    secrets=secrets,
                )
            except LLMError as e:
                dt = operator.sub(time.perf_counter(), t0)
                if e.kind == ErrorKind.RATE_LIMIT:
                    logger.warning(
                        f"Model rate limited, trying next model, provider={descriptor.name}, model={model}, seconds={dt:.3f}"
                    )
                    rate_limited.append(model)
                    continue
                return self._failure(descriptor, model, e, secrets)

            text = adapter.extract_text(data)
            if not text.strip():
                logger.warning(
                    f"Empty completion, trying next model, provider={descriptor.name}, model={model}"
                )
                last_failure = TransientError(
                    provider=descriptor.name,
                    kind=ErrorKind.EMPTY_RESPONSE,
                    message=f"{descriptor.label or descriptor.name} returned an empty response",
                    model=model,
                )
                continue

            dt = operator.sub(time.perf_counter(), t0)
            logger.info(
                f"AI call succeeded, provider={descriptor.name}, model={model}, seconds={dt:.3f}"
            )
            return Completion(text=text, provider=descriptor.name, model=model)

        if last_failure is not None:
            return last_failure
        return RateLimited(provider=descriptor.name, tried_models=tuple(rate_limited))

    def _failure(
        self,
        descriptor: ProviderDescriptor,
        model: str,
        e: LLMError,
        secrets: Sequence[str],
    ) -> CompletionResult:
        d = e.details
        msg = redact_secrets(d.message or str(e), secrets)[:500]
        if d.kind == ErrorKind.AUTH:
            return InvalidKey(
                provider=descriptor.name,
                status_code=int(d.status_code or 0),
                message=msg,
            )
        return TransientError(
            provider=descriptor.name,
            kind=d.kind,
            message=msg,
            status_code=d.status_code,
            model=model,
        )
