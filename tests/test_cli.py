#!filepath: tests/test_cli.py
from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from jobscrabber_app.cli import app

runner = CliRunner()


def test_providers_lists_catalog() -> None:
    result = runner.invoke(app, ["providers"])
    assert result.exit_code == 0
    for name in ("groq", "gemini", "openrouter"):
        assert name in result.output


def test_ask_without_keys_exits_nonzero(tmp_path: Path) -> None:
    pool_file = tmp_path / "pool.yaml"
    pool_file.write_text("groq:\n  keys: []\n", encoding="utf-8")
    result = runner.invoke(app, ["ask", "hello", "--pool-file", str(pool_file)])
    assert result.exit_code == 1
