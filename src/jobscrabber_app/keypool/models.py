#!filepath: src/jobscrabber_app/keypool/models.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jobscrabber_app.utils.logger import get_logger
from jobscrabber_app.utils.serialization import load_config_dict

logger = get_logger(__name__)

LEGACY_PROVIDER = "groq"
LEGACY_PRIORITY = 1
DEFAULT_PRIORITY = 99


class KeyPoolError(ValueError):
    """Invalid key pool payload or mutation."""


class KeyPoolEntry(BaseModel):
    """One provider inside a user's pool.

    Attributes:
        enabled: Disabled providers never contribute candidates.
        priority: Lower is tried first.
        keys: Secret keys, in attempt order.
    """

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    priority: int = DEFAULT_PRIORITY
    keys: list[str] = Field(default_factory=list)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_default(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_PRIORITY
        try:
            return int(v)
        except (TypeError, ValueError):
            return DEFAULT_PRIORITY

    @field_validator("keys", mode="before")
    @classmethod
    def _keys_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            # null and blank slots are dropped
            return [k for k in v if isinstance(k, str) and k.strip()]
        return v

    @property
    def usable_keys(self) -> list[str]:
        return [k for k in self.keys if str(k or "").strip()]

    def __repr__(self) -> str:
        return (
            f"KeyPoolEntry(enabled={self.enabled}, priority={self.priority}, "
            f"keys=<{len(self.keys)} hidden>)"
        )

    __str__ = __repr__


KeyPool = Dict[str, KeyPoolEntry]


def parse_key_pool(raw: Optional[Mapping[str, Any]]) -> KeyPool:
    """Validate a raw ``{provider: {...}}`` mapping.

    An entry that does not validate is logged and skipped, the rest of the
    pool stays usable.

    Args:
        raw: Decoded JSON or YAML, may be None.

    Returns:
        KeyPool: Validated pool.

    Raises:
        KeyPoolError: When ``raw`` is not a mapping.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise KeyPoolError("Key pool must be a mapping of provider to settings")
    out: KeyPool = {}
    for name, entry in raw.items():
        if isinstance(entry, KeyPoolEntry):
            out[str(name)] = entry.model_copy(deep=True)
            continue
        try:
            out[str(name)] = KeyPoolEntry.model_validate(entry or {})
        except ValidationError as e:
            # only field locations, pydantic messages echo input values
            fields = ",".join(
                ".".join(str(p) for p in err["loc"]) or "entry" for err in e.errors()
            )
            logger.warning(
                f"Skipping invalid key pool entry, provider={name}, fields={fields}"
            )
    return out


def dump_key_pool(pool: Mapping[str, KeyPoolEntry]) -> dict[str, Any]:
    """Serialize a pool for the persistence layer. Contains secrets."""
    return {name: entry.model_dump() for name, entry in pool.items()}


def merge_legacy_key(pool: KeyPool, legacy_key: Optional[str]) -> KeyPool:
    """Fold the single legacy Groq key into the pool.

    Applied on every read, never persisted. Ignored when the pool already
    has a ``groq`` entry.

    Args:
        pool: Pool as stored.
        legacy_key: Legacy column value.

    Returns:
        KeyPool: A new pool, the input is not mutated.
    """
    merged = dict(pool)
    key = str(legacy_key or "").strip()
    if key and LEGACY_PROVIDER not in merged:
        merged[LEGACY_PROVIDER] = KeyPoolEntry(
            enabled=True, priority=LEGACY_PRIORITY, keys=[key]
        )
    return merged


def load_key_pool_file(path: Path) -> KeyPool:
    """Read a pool from a YAML or JSON file.

    Raises:
        KeyPoolError: Unreadable file or invalid pool.
    """
    res = load_config_dict(Path(path).expanduser())
    if not res.ok:
        raise KeyPoolError(f"Could not load key pool file: {res.path}")
    return parse_key_pool(res.data)
