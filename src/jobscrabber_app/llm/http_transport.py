#!src/jobscrabber_app/llm/http_transport.py
from __future__ import annotations

import json
import operator
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jobscrabber_app.llm.errors import (
    ErrorKind,
    LLMError,
    LLMErrorDetails,
    parse_retry_after_seconds,
    redact_secrets,
)


def _default_session() -> requests.Session:
    s = requests.Session()
    # connection setup only; a 429 or 5xx must reach the router untouched
    retry = Retry(
        total=1,
        connect=1,
        read=0,
        status=0,
        other=0,
        backoff_factor=0.5,
        allowed_methods=("POST",),
        raise_on_status=False,
    )
    s.mount("https://", HTTPAdapter(max_retries=retry))
    s.mount("http://", HTTPAdapter(max_retries=retry))
    return s


@dataclass(frozen=True, slots=True)
class HTTPTransport:
    """Shared HTTP transport with a total time budget per call.

    Args:
        timeout_seconds: Total budget per request, body read included.
        max_response_bytes: Larger bodies are rejected.
        session_factory: Builds the ``requests.Session`` for each call, closed
            when the call returns.
    """

    timeout_seconds: int = 30
    max_response_bytes: int = 2_000_000
    session_factory: Optional[Callable[[], requests.Session]] = None

    def session(self) -> requests.Session:
        factory = self.session_factory or _default_session
        return factory()

    def post_json(
        self,
        url: str,
        headers: Mapping[str, str],
        payload: Dict[str, Any],
        provider: str,
        model: str,
        params: Optional[Mapping[str, str]] = None,
        secrets: Sequence[str] = (),
    ) -> Dict[str, Any]:
        """POST json and map every failure to an ``LLMError``.

        Args:
            url: Endpoint.
            headers: Request headers.
            payload: JSON body.
            provider: Provider name, for error details.
            model: Model id, for error details.
            params: Query string parameters.
            secrets: Values scrubbed from every error message.

        Returns:
            Parsed JSON object.

        Raises:
            LLMError: Normalized error, kind derived from the HTTP status.
        """
        total_timeout = int(max(1, int(self.timeout_seconds)))
        connect_timeout = int(max(1, min(10, total_timeout)))

        with self.session() as s:
            t0 = time.perf_counter()

            try:
                r = s.post(
                    url,
                    headers=dict(headers),
                    params=dict(params or {}),
                    json=payload,
                    timeout=(connect_timeout, total_timeout),
                    stream=True,
                )
            except requests.Timeout as ex:
                raise LLMError(
                    LLMErrorDetails(
                        kind=ErrorKind.TIMEOUT,
                        provider=provider,
                        model=model,
                        message=redact_secrets(str(ex), secrets),
                    )
                ) from None
            except requests.RequestException as ex:
                raise LLMError(
                    LLMErrorDetails(
                        kind=ErrorKind.NETWORK,
                        provider=provider,
                        model=model,
                        message=redact_secrets(str(ex), secrets),
                    )
                ) from None

            try:
                body = self._read_with_total_timeout(
                    r=r,
                    started_at=t0,
                    total_timeout_seconds=total_timeout,
                    provider=provider,
                    model=model,
                )
                return self._handle_response_text(
                    r=r, body_text=body, provider=provider, model=model, secrets=secrets
                )
            finally:
                r.close()

    def _read_with_total_timeout(
        self,
        r: Response,
        started_at: float,
        total_timeout_seconds: int,
        provider: str,
        model: str,
    ) -> str:
        chunks: list[bytes] = []
        size = 0

        try:
            for chunk in r.iter_content(chunk_size=65536):
                if chunk:
                    chunks.append(chunk)
                    size += len(chunk)

                elapsed = operator.sub(time.perf_counter(), started_at)
                if float(elapsed) > float(total_timeout_seconds):
                    raise LLMError(
                        LLMErrorDetails(
                            kind=ErrorKind.TIMEOUT,
                            provider=provider,
                            model=model,
                            status_code=int(r.status_code or 0) or None,
                            message=f"Total timeout exceeded: {total_timeout_seconds}s",
                        )
                    )

                if size > int(self.max_response_bytes):
                    raise LLMError(
                        LLMErrorDetails(
                            kind=ErrorKind.INVALID_REQUEST,
                            provider=provider,
                            model=model,
                            status_code=int(r.status_code or 0) or None,
                            message=f"Response too large, bytes={size}",
                        )
                    )
        except requests.RequestException as ex:
            kind = (
                ErrorKind.TIMEOUT
                if isinstance(ex, requests.Timeout)
                else ErrorKind.NETWORK
            )
            raise LLMError(
                LLMErrorDetails(
                    kind=kind,
                    provider=provider,
                    model=model,
                    message=f"Failed reading response body: {type(ex).__name__}",
                )
            ) from None

        return b"".join(chunks).decode("utf8", errors="replace")

    def _handle_response_text(
        self,
        r: Response,
        body_text: str,
        provider: str,
        model: str,
        secrets: Sequence[str],
    ) -> Dict[str, Any]:
        status = int(r.status_code)

        if 200 <= status < 300:
            try:
                parsed = json.loads(body_text)
            except json.JSONDecodeError as ex:
                raise LLMError(
                    LLMErrorDetails(
                        kind=ErrorKind.PARSE,
                        provider=provider,
                        model=model,
                        status_code=status,
                        message=str(ex),
                        raw=redact_secrets(body_text[:2000], secrets),
                    )
                ) from None
            if not isinstance(parsed, dict):
                raise LLMError(
                    LLMErrorDetails(
                        kind=ErrorKind.PARSE,
                        provider=provider,
                        model=model,
                        status_code=status,
                        message="JSON body is not an object",
                    )
                )
            return parsed

        retry_after = parse_retry_after_seconds(r.headers or {})
        raw_text = redact_secrets(str(body_text or "")[:2000], secrets)
        msg = self._best_message(raw_text) or str(r.reason or "")

        raise LLMError(
            LLMErrorDetails(
                kind=self._kind_from_status(status),
                provider=provider,
                model=model,
                status_code=status,
                retry_after_seconds=retry_after,
                message=msg,
                raw=raw_text,
            )
        )

    def _kind_from_status(self, status: int) -> ErrorKind:
        if status == 401 or status == 403:
            return ErrorKind.AUTH
        if status == 404:
            return ErrorKind.NOT_FOUND
        if status == 429:
            return ErrorKind.RATE_LIMIT
        if status == 400 or status == 422:
            return ErrorKind.INVALID_REQUEST
        if 500 <= status < 600:
            return ErrorKind.PROVIDER_UNAVAILABLE
        return ErrorKind.UNKNOWN

    def _best_message(self, body: str) -> str:
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            return body
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, dict):
                m = str(err.get("message") or "").strip()
                return m if m else body
            if isinstance(err, str) and err.strip():
                return err.strip()
        return body
