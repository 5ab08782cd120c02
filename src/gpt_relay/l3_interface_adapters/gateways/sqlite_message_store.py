"""Gateway: durable SQLite store — implements MessageStore port."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from gpt_relay.l1_entities.errors import PersistenceError

log = logging.getLogger('relay.store')


class SqliteMessageStore:
    """One SQLite file, one connection, one lock. Every operation is serialized."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path), timeout=30.0, check_same_thread=False)
            self._conn.execute('PRAGMA journal_mode=WAL')
            self._conn.execute(
                'CREATE TABLE IF NOT EXISTS messages (key TEXT PRIMARY KEY, value BLOB NOT NULL)',
            )
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f'Cannot open store at {path}: {e}') from e
        log.info('Message store opened at %s', path)

    @property
    def path(self) -> Path:
        return self._path

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    'INSERT OR REPLACE INTO messages (key, value) VALUES (?, ?)',
                    (key, value),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                raise PersistenceError(f'Failed to write {key}: {e}') from e

    def get(self, key: str) -> bytes | None:
        with self._lock:
            try:
                row = self._conn.execute('SELECT value FROM messages WHERE key = ?', (key,)).fetchone()
            except sqlite3.Error as e:
                raise PersistenceError(f'Failed to read {key}: {e}') from e
        return bytes(row[0]) if row is not None else None

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                self._conn.execute('DELETE FROM messages WHERE key = ?', (key,))
                self._conn.commit()
            except sqlite3.Error as e:
                raise PersistenceError(f'Failed to delete {key}: {e}') from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()
