#!filepath: src/jobscrabber_app/keypool/masking.py
from __future__ import annotations

from typing import Any, Mapping

from jobscrabber_app.keypool.models import parse_key_pool


def mask_for_client(pool: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Client-safe projection of a pool: flags and key counts only.

    The output is built from ``enabled``, ``priority`` and a count, so no key
    material can reach it. Raw mappings are accepted and validated first.

    Args:
        pool: KeyPool or its raw mapping form.

    Returns:
        dict: ``{provider: {"enabled", "priority", "keyCount"}}``.
    """
    masked: dict[str, dict[str, Any]] = {}
    for name, entry in parse_key_pool(pool).items():
        masked[name] = {
            "enabled": bool(entry.enabled),
            "priority": int(entry.priority),
            "keyCount": len(entry.usable_keys),
        }
    return masked
