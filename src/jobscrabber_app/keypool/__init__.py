#!filepath: src/jobscrabber_app/keypool/__init__.py
from jobscrabber_app.keypool.masking import mask_for_client
from jobscrabber_app.keypool.models import (
    KeyPool,
    KeyPoolEntry,
    KeyPoolError,
    merge_legacy_key,
    parse_key_pool,
)

__all__ = [
    "KeyPool",
    "KeyPoolEntry",
    "KeyPoolError",
    "mask_for_client",
    "merge_legacy_key",
    "parse_key_pool",
]
