#!filepath: tests/test_invoker.py
from __future__ import annotations

import requests

from fakes import (
    FakeResponse,
    RecordedCall,
    error_body,
    gemini_body,
    openai_body,
    queued,
    scripted_transport,
)
from jobscrabber_app.llm.errors import ErrorKind
from jobscrabber_app.llm.invoker import ProviderInvoker
from jobscrabber_app.llm.registry import GEMINI, GROQ, default_registry
from jobscrabber_app.llm.results import (
    Completion,
    InvalidKey,
    RateLimited,
    TransientError,
)
from jobscrabber_app.settings import AISettings

GROQ_KEY = "gsk_test_secret_1234"
GEMINI_KEY = "AIzaSecretGeminiKey99"


def _invoker(handler):
    transport, session = scripted_transport(handler)
    return ProviderInvoker(transport=transport, settings=AISettings()), session


def test_openai_compatible_request_shape() -> None:
    inv, session = _invoker(queued(FakeResponse(200, openai_body("hello"))))
    res = inv.invoke(GROQ, GROQ_KEY, "Say hi", 0.3)

    assert res == Completion(text="hello", provider="groq", model=GROQ.models[0])
    call = session.calls[0]
    assert call.url == "https://api.groq.com/openai/v1/chat/completions"
    assert call.headers["Authorization"] == f"Bearer {GROQ_KEY}"
    assert call.params == {}
    assert call.json == {
        "model": "llama-3.3-70b-versatile",
        "messages": [{"role": "user", "content": "Say hi"}],
        "temperature": 0.3,
        "max_tokens": 2048,
        "top_p": 0.95,
    }


def test_gemini_request_shape_and_key_in_query() -> None:
    inv, session = _invoker(queued(FakeResponse(200, gemini_body("hola"))))
    res = inv.invoke(GEMINI, GEMINI_KEY, "Say hi", 0.2)

    assert isinstance(res, Completion)
    assert res.text == "hola"
    call = session.calls[0]
    assert call.url == (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash:generateContent"
    )
    assert GEMINI_KEY not in call.url
    assert call.params == {"key": GEMINI_KEY}
    assert "Authorization" not in call.headers
    assert call.json == {
        "contents": [{"parts": [{"text": "Say hi"}]}],
        "generationConfig": {"temperature": 0.2, "maxOutputTokens": 2048, "topP": 0.95},
    }


def test_openrouter_sends_attribution_headers() -> None:
    openrouter = default_registry().describe("openrouter")
    inv, session = _invoker(queued(FakeResponse(200, openai_body("ok"))))
    inv.invoke(openrouter, "sk-or-abc", "p", 0.2)
    headers = session.calls[0].headers
    assert headers["HTTP-Referer"]
    assert headers["X-Title"]


def test_rate_limit_falls_back_to_next_model() -> None:
    inv, session = _invoker(
        queued(
            FakeResponse(429, error_body("slow down")),
            FakeResponse(200, openai_body("from fallback")),
        )
    )
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert res == Completion(
        text="from fallback", provider="groq", model="llama-3.1-8b-instant"
    )
    assert [c.json["model"] for c in session.calls] == list(GROQ.models)


def test_every_model_rate_limited_is_classified() -> None:
    inv, session = _invoker(
        queued(FakeResponse(429, error_body("a")), FakeResponse(429, error_body("b")))
    )
    res = inv.invoke(GEMINI, GEMINI_KEY, "p", 0.2)
    assert res == RateLimited(provider="gemini", tried_models=GEMINI.models)
    assert len(session.calls) == 2


def test_non_rate_limit_error_stops_model_fallback() -> None:
    inv, session = _invoker(queued(FakeResponse(500, error_body("boom"))))
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.status_code == 500
    assert res.kind is ErrorKind.PROVIDER_UNAVAILABLE
    assert res.message == "boom"
    assert len(session.calls) == 1


def test_unauthorized_is_invalid_key() -> None:
    inv, session = _invoker(queued(FakeResponse(401, error_body("Invalid API Key"))))
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert res == InvalidKey(provider="groq", status_code=401, message="Invalid API Key")
    assert len(session.calls) == 1


def test_empty_text_moves_to_next_model() -> None:
    inv, session = _invoker(
        queued(
            FakeResponse(200, {"candidates": []}),
            FakeResponse(200, gemini_body("second")),
        )
    )
    res = inv.invoke(GEMINI, GEMINI_KEY, "p", 0.2)
    assert isinstance(res, Completion)
    assert res.model == "gemini-1.5-flash"


def test_empty_text_on_every_model_is_transient_not_success() -> None:
    inv, _ = _invoker(
        queued(FakeResponse(200, openai_body("   ")), FakeResponse(200, openai_body("")))
    )
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.kind is ErrorKind.EMPTY_RESPONSE


def test_network_error_message_is_scrubbed() -> None:
    def _boom(call: RecordedCall) -> FakeResponse:
        raise requests.ConnectionError(
            f"Max retries exceeded with url: {call.url}?key={call.params['key']}"
        )

    inv, _ = _invoker(_boom)
    res = inv.invoke(GEMINI, GEMINI_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.kind is ErrorKind.NETWORK
    assert GEMINI_KEY not in res.message
    assert "***" in res.message


def test_error_body_echoing_key_is_scrubbed() -> None:
    inv, _ = _invoker(
        queued(FakeResponse(400, error_body(f"API key {GEMINI_KEY} not valid")))
    )
    res = inv.invoke(GEMINI, GEMINI_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.status_code == 400
    assert GEMINI_KEY not in res.message


def test_timeout_is_transient() -> None:
    def _slow(call: RecordedCall) -> FakeResponse:
        raise requests.ReadTimeout("read timed out")

    inv, _ = _invoker(_slow)
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.kind is ErrorKind.TIMEOUT


def test_non_json_success_body_is_transient() -> None:
    inv, _ = _invoker(queued(FakeResponse(200, "<html>oops</html>")))
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert isinstance(res, TransientError)
    assert res.kind is ErrorKind.PARSE


def test_rate_limit_then_empty_response_is_transient() -> None:
    inv, session = _invoker(
        queued(FakeResponse(429, error_body("slow down")), FakeResponse(200, openai_body("")))
    )
    res = inv.invoke(GROQ, GROQ_KEY, "p", 0.2)
    assert not isinstance(res, RateLimited)
    assert isinstance(res, TransientError)
    assert res.kind is ErrorKind.EMPTY_RESPONSE
    assert res.model == "llama-3.1-8b-instant"
    assert len(session.calls) == 2
