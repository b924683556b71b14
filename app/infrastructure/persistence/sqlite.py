import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ...domain.errors import DuplicateRecord, RecordNotFound
from ...domain.models import User
from ...domain.ports.persistence import UserRecordStore

_CRITERIA_COLUMNS = frozenset({"id", "email", "verify_key"})
_UPDATABLE_COLUMNS = frozenset({"name", "password_hash", "verify_key", "verified_at"})


class SQLitePersistence(UserRecordStore):
    """SQLite-backed implementation of the user record store."""

    def __init__(self, path: Path) -> None:
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    verify_key TEXT,
                    verified_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_verify_key
                    ON users(verify_key);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # UserRecordStore API ----------------------------------------------------
    def find_one(self, **criteria: str) -> User:
        where, params = self._where(criteria)
        with self._lock:
            cur = self._conn.execute(f"SELECT * FROM users WHERE {where} LIMIT 1", params)
            row = cur.fetchone()
        if not row:
            raise RecordNotFound(f"No user matches {sorted(criteria)}.")
        return self._row_to_user(row)

    def create_one(
        self,
        *,
        email: str,
        name: str,
        password_hash: str,
        verify_key: str,
    ) -> User:
        user_id = str(uuid.uuid4())
        now = self._now()
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO users (
                        id, email, name, password_hash, verify_key, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, email, name, password_hash, verify_key, now, now),
                )
                cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
                row = cur.fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecord(f"User with email {email} already exists.") from exc
        if not row:
            raise RuntimeError("Failed to persist user.")
        return self._row_to_user(row)

    def update(self, criteria: Dict[str, str], **changes: Any) -> User:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown or not changes:
            raise ValueError(f"Unsupported user update fields: {sorted(unknown) or 'none'}")
        where, where_params = self._where(criteria)
        assignments = []
        params: list = []
        for column, value in changes.items():
            if column == "verified_at":
                # First verification timestamp wins.
                assignments.append("verified_at = COALESCE(verified_at, ?)")
            else:
                assignments.append(f"{column} = ?")
            params.append(self._to_column(value))
        assignments.append("updated_at = ?")
        params.append(self._now())

        with self._lock, self._conn:
            cur = self._conn.execute(f"SELECT id FROM users WHERE {where} LIMIT 1", where_params)
            match = cur.fetchone()
            if not match:
                raise RecordNotFound(f"No user matches {sorted(criteria)}.")
            self._conn.execute(
                f"UPDATE users SET {', '.join(assignments)} WHERE id = ?",
                (*params, match["id"]),
            )
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (match["id"],))
            row = cur.fetchone()
        return self._row_to_user(row)

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _where(criteria: Dict[str, str]) -> Tuple[str, Tuple[str, ...]]:
        if not criteria:
            raise ValueError("At least one lookup criterion is required.")
        unknown = set(criteria) - _CRITERIA_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported user lookup fields: {sorted(unknown)}")
        columns = sorted(criteria)
        where = " AND ".join(f"{column} = ?" for column in columns)
        return where, tuple(criteria[column] for column in columns)

    @classmethod
    def _to_column(cls, value: Any) -> Optional[str]:
        if isinstance(value, datetime):
            return cls._format_datetime(value)
        return value

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    @classmethod
    def _now(cls) -> str:
        return cls._format_datetime(datetime.now(timezone.utc))

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        try:
            result = datetime.fromisoformat(value)
        except ValueError:
            # Fallback for legacy formats without 'T'
            result = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            password_hash=row["password_hash"],
            verify_key=row["verify_key"],
            verified_at=self._parse_datetime(row["verified_at"]) if row["verified_at"] else None,
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
