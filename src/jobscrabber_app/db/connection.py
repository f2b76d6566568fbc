#!filepath: src/jobscrabber_app/db/connection.py
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from jobscrabber_app.db.schema import SCHEMA
from jobscrabber_app.settings import DatabaseSettings


@dataclass(frozen=True, slots=True)
class DbConfig:
    """Database configuration.

    Attributes:
        path: Path to the SQLite database file.
        timeout_seconds: Busy timeout in seconds.
    """

    path: Path
    timeout_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "DbConfig":
        return cls(path=Path(settings.path), timeout_seconds=int(settings.timeout_seconds))


class Db:
    """SQLite connection factory.

    Connections run in autocommit mode. ``transaction`` opens an explicit
    ``BEGIN IMMEDIATE`` so read-modify-write sequences on one row serialize.
    """

    def __init__(self, cfg: DbConfig) -> None:
        self._cfg = cfg

    @property
    def path(self) -> Path:
        return self._cfg.path

    def connect(self) -> sqlite3.Connection:
        """Create a new sqlite3 connection.

        Returns:
            sqlite3.Connection: Connection instance.
        """
        self._cfg.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self._cfg.path),
            timeout=self._cfg.timeout_seconds,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(self._cfg.timeout_seconds) * 1000};")
        return conn

    def init_schema(self) -> None:
        conn = self.connect()
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")
        finally:
            conn.close()
