#!src/jobscrabber_app/keypool/store.py
from __future__ import annotations

import json
import sqlite3
from typing import Any, Optional

from jobscrabber_app.db.connection import Db, DbConfig
from jobscrabber_app.keypool.masking import mask_for_client
from jobscrabber_app.keypool.models import (
    LEGACY_PROVIDER,
    KeyPool,
    KeyPoolEntry,
    KeyPoolError,
    dump_key_pool,
    merge_legacy_key,
    parse_key_pool,
)
from jobscrabber_app.llm.registry import ProviderRegistry, default_registry
from jobscrabber_app.settings import get_database_settings
from jobscrabber_app.utils.logger import get_logger

logger = get_logger(__name__)


def _decode_pool(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("Stored ai_providers is not valid JSON, treating as empty")
        return {}
    return data if isinstance(data, dict) else {}


class KeyPoolStore:
    """Per user key pools persisted in ``user_profiles``.

    Reads return a snapshot with the legacy single key merged in. Every
    mutation is a read-modify-write inside one ``BEGIN IMMEDIATE``
    transaction.
    """

    def __init__(self, db: Db, registry: Optional[ProviderRegistry] = None) -> None:
        self._db = db
        self._registry = registry if registry is not None else default_registry()

    @classmethod
    def from_settings(cls) -> "KeyPoolStore":
        db = Db(DbConfig.from_settings(get_database_settings()))
        db.init_schema()
        return cls(db)

    def load_key_pool(self, user_id: str) -> KeyPool:
        """Snapshot of the user's pool, legacy key merged, nothing written.

        Args:
            user_id: Profile owner.

        Returns:
            KeyPool: Possibly empty pool.
        """
        with self._db.read() as conn:
            pool, legacy = self._read(conn, user_id)
        return merge_legacy_key(pool, legacy)

    def masked_pool(self, user_id: str) -> dict[str, dict[str, Any]]:
        return mask_for_client(self.load_key_pool(user_id))

    def set_legacy_key(self, user_id: str, api_key: Optional[str]) -> None:
        value = str(api_key or "").strip() or None
        with self._db.transaction() as conn:
            self._ensure_row(conn, user_id)
            conn.execute(
                "UPDATE user_profiles SET groq_api_key = ?, updated_at = datetime('now') WHERE user_id = ?;",
                (value, str(user_id)),
            )

    def add_key(self, user_id: str, provider: str, api_key: str) -> KeyPool:
        """Append a key, creating the provider entry on first use.

        Adding a key that is already present is a no-op.

        Raises:
            KeyPoolError: Unknown provider or empty key.
        """
        self._check_provider(provider)
        key = str(api_key or "").strip()
        if not key:
            raise KeyPoolError("API key must not be empty")

        descriptor = self._registry.describe(provider)
        if not descriptor.looks_like_key(key):
            logger.warning(
                f"Key does not match expected prefix, provider={provider}, prefix={descriptor.key_prefix}"
            )

        with self._db.transaction() as conn:
            pool, legacy = self._read(conn, user_id)
            if provider == LEGACY_PROVIDER:
                pool = merge_legacy_key(pool, legacy)
            entry = pool.get(provider)
            if entry is None:
                entry = KeyPoolEntry(priority=self._next_priority(pool))
                pool[provider] = entry
            if key not in entry.keys:
                entry.keys.append(key)
            self._write(conn, user_id, pool)

        logger.info(
            f"API key added, user_id={user_id}, provider={provider}, key_count={len(entry.usable_keys)}"
        )
        return pool

    def remove_key(self, user_id: str, provider: str, index: int) -> KeyPool:
        """Remove the key at ``index`` in the provider's key order.

        Raises:
            KeyPoolError: Unknown provider or index out of range.
        """
        self._check_provider(provider)
        with self._db.transaction() as conn:
            pool, legacy = self._read(conn, user_id)
            if provider == LEGACY_PROVIDER:
                pool = merge_legacy_key(pool, legacy)
            entry = pool.get(provider)
            if entry is None or not 0 <= int(index) < len(entry.keys):
                raise KeyPoolError(f"No key at index {index} for provider {provider}")
            del entry.keys[int(index)]
            self._write(conn, user_id, pool)
            if provider == LEGACY_PROVIDER:
                self._clear_legacy(conn, user_id)

        logger.info(
            f"API key removed, user_id={user_id}, provider={provider}, index={index}"
        )
        return pool

    def clear_keys(self, user_id: str, provider: str) -> KeyPool:
        self._check_provider(provider)
        with self._db.transaction() as conn:
            pool, _ = self._read(conn, user_id)
            entry = pool.get(provider)
            if entry is None:
                entry = KeyPoolEntry(priority=self._next_priority(pool))
                pool[provider] = entry
            entry.keys.clear()
            self._write(conn, user_id, pool)
            if provider == LEGACY_PROVIDER:
                self._clear_legacy(conn, user_id)

        logger.info(f"API keys cleared, user_id={user_id}, provider={provider}")
        return pool

    def update_meta(
        self,
        user_id: str,
        provider: str,
        *,
        enabled: Optional[bool] = None,
        priority: Optional[int] = None,
    ) -> KeyPool:
        """Change the enable flag and/or priority of a provider.

        Raises:
            KeyPoolError: Unknown provider.
        """
        self._check_provider(provider)
        with self._db.transaction() as conn:
            pool, legacy = self._read(conn, user_id)
            if provider == LEGACY_PROVIDER:
                pool = merge_legacy_key(pool, legacy)
            entry = pool.get(provider)
            if entry is None:
                entry = KeyPoolEntry(priority=self._next_priority(pool))
                pool[provider] = entry
            if enabled is not None:
                entry.enabled = bool(enabled)
            if priority is not None:
                entry.priority = int(priority)
            self._write(conn, user_id, pool)

        logger.info(
            f"Provider settings updated, user_id={user_id}, provider={provider}, enabled={entry.enabled}, priority={entry.priority}"
        )
        return pool

    def _check_provider(self, provider: str) -> None:
        if provider not in self._registry:
            raise KeyPoolError(f"Unknown provider: {provider}")

    @staticmethod
    def _next_priority(pool: KeyPool) -> int:
        return max((e.priority for e in pool.values() if e.priority < 99), default=0) + 1

    def _read(self, conn: sqlite3.Connection, user_id: str) -> tuple[KeyPool, Optional[str]]:
        row = conn.execute(
            "SELECT ai_providers, groq_api_key FROM user_profiles WHERE user_id = ?;",
            (str(user_id),),
        ).fetchone()
        if row is None:
            return {}, None
        return parse_key_pool(_decode_pool(row["ai_providers"])), row["groq_api_key"]

    def _ensure_row(self, conn: sqlite3.Connection, user_id: str) -> None:
        conn.execute(
            "INSERT INTO user_profiles (user_id) VALUES (?) ON CONFLICT(user_id) DO NOTHING;",
            (str(user_id),),
        )

    def _write(self, conn: sqlite3.Connection, user_id: str, pool: KeyPool) -> None:
        payload = json.dumps(dump_key_pool(pool), ensure_ascii=False)
        conn.execute(
            """
            INSERT INTO user_profiles (user_id, ai_providers)
            VALUES (?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
              ai_providers = excluded.ai_providers,
              updated_at = datetime('now');
            """,
            (str(user_id), payload),
        )

    def _clear_legacy(self, conn: sqlite3.Connection, user_id: str) -> None:
        conn.execute(
            "UPDATE user_profiles SET groq_api_key = NULL WHERE user_id = ?;",
            (str(user_id),),
        )
