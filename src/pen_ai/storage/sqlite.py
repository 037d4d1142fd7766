from __future__ import annotations

import json
import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from pen_ai.llm.errors import StorageError

PROVIDER_COLUMNS = (
    "id",
    "name",
    "base_urls",
    "default_model",
    "requires_auth",
    "auth_header",
    "created_at",
    "updated_at",
)

# sqlite3 calls the progress handler every N virtual machine instructions.
_PROGRESS_INTERVAL = 1000


class SqliteProviderStore:
    """Read access to the ``ai_providers`` table with bounded query time."""

    def __init__(self, db_path: str, *, timeout_seconds: float = 5.0) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout_seconds,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        return connection

    @contextmanager
    def _bounded(self) -> Iterator[sqlite3.Connection]:
        try:
            connection = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"failed to open provider database {self.db_path}: {exc}") from exc

        deadline = time.monotonic() + self.timeout_seconds
        # A non-zero return aborts the running statement with OperationalError("interrupted").
        connection.set_progress_handler(
            lambda: 1 if time.monotonic() > deadline else 0,
            _PROGRESS_INTERVAL,
        )
        try:
            yield connection
        except sqlite3.OperationalError as exc:
            if time.monotonic() > deadline:
                raise StorageError(
                    f"provider query exceeded {self.timeout_seconds}s timeout"
                ) from exc
            raise StorageError(f"provider query failed: {exc}") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"provider query failed: {exc}") from exc
        finally:
            connection.close()

    def _init_db(self) -> None:
        with self._bounded() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_providers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    base_urls TEXT,
                    default_model TEXT,
                    requires_auth INTEGER NOT NULL DEFAULT 1,
                    auth_header TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
            conn.commit()

    def fetch_rows(self) -> list[dict[str, Any]]:
        with self._bounded() as conn:
            rows = conn.execute(
                f"""
                SELECT {", ".join(PROVIDER_COLUMNS)}
                FROM ai_providers
                ORDER BY id ASC
                """
            ).fetchall()
        return [dict(row) for row in rows]

    def fetch_row_by_name(self, name: str) -> dict[str, Any] | None:
        with self._bounded() as conn:
            row = conn.execute(
                f"""
                SELECT {", ".join(PROVIDER_COLUMNS)}
                FROM ai_providers
                WHERE name = ?
                ORDER BY id ASC
                LIMIT 1
                """,
                (name,),
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def insert_row(
        self,
        *,
        name: str,
        base_urls: Any,
        default_model: str | None,
        requires_auth: Any = 1,
        auth_header: str | None = "Authorization",
    ) -> int:
        """Insert a provider row; ``base_urls`` is stored verbatim when already text."""
        stored_urls = base_urls
        if isinstance(base_urls, (list, tuple, dict)):
            stored_urls = json.dumps(base_urls, ensure_ascii=True)
        now = datetime.now(timezone.utc).isoformat()
        with self._lock, self._bounded() as conn:
            cursor = conn.execute(
                """
                INSERT INTO ai_providers (
                    name, base_urls, default_model, requires_auth, auth_header,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (name, stored_urls, default_model, requires_auth, auth_header, now, now),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def has_provider(self, name: str) -> bool:
        return self.fetch_row_by_name(name) is not None
