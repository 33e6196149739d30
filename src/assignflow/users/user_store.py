# src/assignflow/users/user_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from pathlib import Path

from ..core.errors import InternalError, ValidationError
from ..tasks.task_models import User
from ..tasks.validation import require_text

logger = logging.getLogger(__name__)


class UserStore:
    """
    SQLite-backed identity directory.

    Only what the engine needs: resolve a user id to {id, name, email, role}.
    Registration, passwords and sessions live elsewhere.
    """

    def __init__(self, db_path: str | Path = "users.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("UserStore ready db=%s total=%s", self._db_path, len(self.list_users()))

    def close(self) -> None:
        return

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    role TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=str(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            role=str(row["role"]),
        )

    def add_user(self, *, name: str, email: str, role: str, user_id: str | None = None) -> User:
        user = User(
            id=(user_id or "").strip() or uuid.uuid4().hex[:12],
            name=require_text(name, "name"),
            email=require_text(email, "email").lower(),
            role=require_text(role, "role").lower(),
        )

        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO users(id, name, email, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (user.id, user.name, user.email, user.role, time.time()),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError("User with this id or email already exists", field="email") from e
        except sqlite3.Error as e:
            raise InternalError(f"User database error: {e}") from e
        finally:
            conn.close()

        logger.debug("User added id=%s role=%s", user.id, user.role)
        return user

    def resolve_user(self, user_id: str) -> User | None:
        if not user_id:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            return self._row_to_user(row) if row else None
        except sqlite3.Error as e:
            raise InternalError(f"User database error: {e}") from e
        finally:
            conn.close()

    def list_users(self) -> list[User]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY name ASC, id ASC").fetchall()
            return [self._row_to_user(r) for r in rows]
        except sqlite3.Error as e:
            raise InternalError(f"User database error: {e}") from e
        finally:
            conn.close()
