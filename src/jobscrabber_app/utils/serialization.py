#!filepath: src/jobscrabber_app/utils/serialization.py
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from jobscrabber_app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Structured result for config file loads.

    Args:
        data: Parsed payload when successful.
        path: File path attempted.
        ok: Whether parsing succeeded.
    """

    data: dict[str, Any]
    path: Path
    ok: bool


def _as_mapping(raw: Any, path: Path, fmt: str) -> LoadResult:
    if raw is None:
        return LoadResult(data={}, path=path, ok=True)
    if not isinstance(raw, Mapping):
        logger.error(
            f"Invalid {fmt} in {path}, expected an object, got {type(raw).__name__}"
        )
        return LoadResult(data={}, path=path, ok=False)
    return LoadResult(data=dict(raw), path=path, ok=True)


def load_yaml_dict(path: Path) -> LoadResult:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error(f"Failed reading YAML at {path}: {exc}")
        return LoadResult(data={}, path=path, ok=False)

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError:
        # the parser echoes the offending line, which may hold a key
        logger.error(f"Failed parsing YAML at {path}")
        return LoadResult(data={}, path=path, ok=False)

    return _as_mapping(raw, path, "YAML")


def load_json_dict(path: Path) -> LoadResult:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error(f"Failed reading JSON at {path}: {exc}")
        return LoadResult(data={}, path=path, ok=False)

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error(f"Failed parsing JSON at {path}: line {exc.lineno}")
        return LoadResult(data={}, path=path, ok=False)

    return _as_mapping(raw, path, "JSON")


def load_config_dict(path: Path) -> LoadResult:
    """Dispatch on suffix: .json, otherwise YAML."""
    if path.suffix.lower() == ".json":
        return load_json_dict(path)
    return load_yaml_dict(path)
