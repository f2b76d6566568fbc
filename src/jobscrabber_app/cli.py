#!filepath: src/jobscrabber_app/cli.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

from jobscrabber_app.keypool.masking import mask_for_client
from jobscrabber_app.keypool.models import KeyPool, KeyPoolError, load_key_pool_file
from jobscrabber_app.keypool.store import KeyPoolStore
from jobscrabber_app.llm.errors import LLMError, UnparseableResponseError
from jobscrabber_app.llm.normalizer import extract_json
from jobscrabber_app.llm.probe import KeyProber
from jobscrabber_app.llm.registry import default_registry
from jobscrabber_app.llm.router import AIRouter
from jobscrabber_app.utils.logger import get_logger

app = typer.Typer(help="Job Scrabber AI provider tools.")
keys_app = typer.Typer(help="Manage a user's provider key pool.")
app.add_typer(keys_app, name="keys")

logger = get_logger(__name__)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _resolve_pool(user: Optional[str], pool_file: Optional[Path]) -> KeyPool:
    if pool_file is not None:
        return load_key_pool_file(pool_file)
    if user:
        return KeyPoolStore.from_settings().load_key_pool(user)
    logger.error("Pass --user or --pool-file")
    raise typer.Exit(code=2)


@app.command()
def providers() -> None:
    """List the providers the router knows about."""
    for d in default_registry():
        typer.echo(
            f"{d.name:<12} {d.wire_protocol.value:<14} prefix={d.key_prefix or '-':<7} "
            f"models={','.join(d.models)}  ({d.free_limit})"
        )


@keys_app.command("show")
def keys_show(user: str) -> None:
    """Show the masked pool: flags and key counts, never keys."""
    _echo_json(KeyPoolStore.from_settings().masked_pool(user))


@keys_app.command("add")
def keys_add(
    user: str,
    provider: str,
    key: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    try:
        pool = KeyPoolStore.from_settings().add_key(user, provider, key)
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e
    _echo_json(mask_for_client(pool))


@keys_app.command("remove")
def keys_remove(user: str, provider: str, index: int) -> None:
    try:
        pool = KeyPoolStore.from_settings().remove_key(user, provider, index)
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e
    _echo_json(mask_for_client(pool))


@keys_app.command("clear")
def keys_clear(user: str, provider: str) -> None:
    try:
        pool = KeyPoolStore.from_settings().clear_keys(user, provider)
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e
    _echo_json(mask_for_client(pool))


@keys_app.command("meta")
def keys_meta(
    user: str,
    provider: str,
    enabled: Optional[bool] = typer.Option(None, "--enable/--disable"),
    priority: Optional[int] = typer.Option(None),
) -> None:
    try:
        pool = KeyPoolStore.from_settings().update_meta(
            user, provider, enabled=enabled, priority=priority
        )
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e
    _echo_json(mask_for_client(pool))


@app.command()
def probe(
    user: Optional[str] = typer.Option(None),
    pool_file: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    provider: Optional[str] = typer.Option(None),
) -> None:
    """Send a one word prompt with every configured key and report health."""
    try:
        pool = _resolve_pool(user, pool_file)
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e
    results = KeyProber().probe_pool(pool, provider)
    _echo_json({name: [r.to_dict() for r in rs] for name, rs in results.items()})


@app.command()
def ask(
    prompt: str,
    user: Optional[str] = typer.Option(None),
    pool_file: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    temperature: Optional[float] = typer.Option(None),
    as_json: bool = typer.Option(False, "--json", help="Extract and print JSON."),
) -> None:
    """Route a prompt through the pool and print the completion."""
    try:
        pool = _resolve_pool(user, pool_file)
    except KeyPoolError as e:
        logger.error(str(e))
        raise typer.Exit(code=2) from e

    try:
        text = AIRouter().route(prompt, temperature, pool)
    except LLMError as e:
        logger.error(str(e))
        raise typer.Exit(code=1) from e

    if not as_json:
        typer.echo(text)
        return
    try:
        _echo_json(extract_json(text))
    except UnparseableResponseError as e:
        logger.error(f"{e}\n--- raw response ---\n{e.raw_text}")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
