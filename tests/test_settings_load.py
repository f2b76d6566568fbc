#!filepath: tests/test_settings_load.py
from __future__ import annotations

from pathlib import Path

import pytest

from jobscrabber_app.llm.registry import ProviderRegistry, default_registry
from jobscrabber_app.llm.errors import ProviderNotFoundError
from jobscrabber_app.settings import AISettings, DatabaseSettings


def test_ai_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("JOBSCRABBER_AI_TIMEOUT_SECONDS", "JOBSCRABBER_AI_MAX_TOKENS", "JOBSCRABBER_AI_TOP_P"):
        monkeypatch.delenv(name, raising=False)
    s = AISettings(_env_file=None)
    assert s.timeout_seconds == 30
    assert s.max_tokens == 2048
    assert s.top_p == pytest.approx(0.95)


def test_ai_settings_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JOBSCRABBER_AI_TIMEOUT_SECONDS", "12")
    monkeypatch.setenv("JOBSCRABBER_AI_TEMPERATURE", "0.7")
    s = AISettings(_env_file=None)
    assert s.timeout_seconds == 12
    assert s.temperature == pytest.approx(0.7)


def test_database_settings_env_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("JOBSCRABBER_DB_PATH", str(tmp_path / "x.db"))
    assert DatabaseSettings(_env_file=None).path == tmp_path / "x.db"


def test_default_registry_catalog() -> None:
    reg = default_registry()
    assert reg.names() == ["groq", "gemini", "openrouter"]
    for d in reg:
        assert d.models
    assert reg.describe("gemini").endpoint_for("gemini-2.0-flash").endswith(
        "/models/gemini-2.0-flash:generateContent"
    )
    with pytest.raises(ProviderNotFoundError):
        reg.describe("mystery")


def test_registry_rejects_duplicates() -> None:
    groq = default_registry().describe("groq")
    with pytest.raises(ValueError):
        ProviderRegistry([groq, groq])
