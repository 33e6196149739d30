# src/assignflow/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.clock import from_epoch, to_epoch
from ..core.errors import Conflict, InternalError, NotFound, ValidationError
from ..core.ports import TaskPredicate
from .task_models import Comment, Milestone, Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite store for tasks, their comments and milestones.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Concurrency:
    - each method opens its own SQLite connection
    - updates are optimistic: UPDATE ... WHERE version = <loaded version>;
      a lost race raises Conflict instead of overwriting the other writer

    Comments are append-only: save() only ever inserts the new tail.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except InternalError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise InternalError(f"Cannot open task database: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("TaskStore query failed db=%s", self._db_path)
            raise InternalError(f"Task database error: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    assigner TEXT NOT NULL,
                    receiver TEXT NOT NULL,
                    deadline REAL NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    remark TEXT,
                    completed_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_comments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    commented_by TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS milestones (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    milestone TEXT NOT NULL,
                    created_by TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("remark", "TEXT")
            add_col("completed_at", "REAL")
            add_col("version", "INTEGER NOT NULL DEFAULT 1")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_participants ON tasks(assigner, receiver)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_comments_task ON task_comments(task_id, id)"
            )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            content=str(row["content"]),
            commented_by=str(row["commented_by"]),
            timestamp=from_epoch(row["created_at"]),  # type: ignore[arg-type]
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row, comments: list[Comment]) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"]),
            description=str(row["description"]),
            assigner=str(row["assigner"]),
            receiver=str(row["receiver"]),
            deadline=from_epoch(row["deadline"]),  # type: ignore[arg-type]
            status=TaskStatus.from_db(row["status"]),
            created_at=from_epoch(row["created_at"]),  # type: ignore[arg-type]
            updated_at=from_epoch(row["updated_at"]),  # type: ignore[arg-type]
            remark=row["remark"],
            completed_at=from_epoch(row["completed_at"]),
            comments=tuple(comments),
            version=int(row["version"] or 1),
        )

    def _comments_by_task(self, conn: sqlite3.Connection, task_ids: list[int]) -> dict[int, list[Comment]]:
        out: dict[int, list[Comment]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return out
        ph = ",".join("?" for _ in task_ids)
        rows = conn.execute(
            f"SELECT * FROM task_comments WHERE task_id IN ({ph}) ORDER BY id ASC",
            task_ids,
        ).fetchall()
        for r in rows:
            out[int(r["task_id"])].append(self._row_to_comment(r))
        return out

    @staticmethod
    def _task_params(task: Task) -> tuple[Any, ...]:
        return (
            task.title,
            task.description,
            task.assigner,
            task.receiver,
            to_epoch(task.deadline),
            task.status.value,
            task.remark,
            to_epoch(task.completed_at),
            to_epoch(task.created_at),
            to_epoch(task.updated_at),
        )

    @staticmethod
    def _insert_comments(conn: sqlite3.Connection, task_id: int, comments: tuple[Comment, ...]) -> None:
        conn.executemany(
            "INSERT INTO task_comments(task_id, content, commented_by, created_at) VALUES (?, ?, ?, ?)",
            [(task_id, c.content, c.commented_by, to_epoch(c.timestamp)) for c in comments],
        )

    # ---- TaskRepo ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def load(self, task_id: int) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            if row is None:
                return None
            comments = self._comments_by_task(conn, [int(row["id"])])
            return self._row_to_task(row, comments[int(row["id"])])

    def query(self, predicate: TaskPredicate | None = None) -> list[Task]:
        """All tasks (ordered by id) matching `predicate`."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY id ASC").fetchall()
            comments = self._comments_by_task(conn, [int(r["id"]) for r in rows])
        tasks = [self._row_to_task(r, comments[int(r["id"])]) for r in rows]
        if predicate is None:
            return tasks
        return [t for t in tasks if predicate(t)]

    def save(self, task: Task) -> Task:
        if task.id is None:
            return self._insert(task)
        return self._update(task)

    def _insert(self, task: Task) -> Task:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(
                    title, description, assigner, receiver, deadline,
                    status, remark, completed_at, created_at, updated_at, version
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
                """,
                self._task_params(task),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise InternalError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
            self._insert_comments(conn, task_id, task.comments)

        logger.debug("Task added id=%s assigner=%s receiver=%s", task_id, task.assigner, task.receiver)
        stored = self.load(task_id)
        if stored is None:
            raise InternalError(f"Task {task_id} vanished right after insert")
        return stored

    def _update(self, task: Task) -> Task:
        task_id = int(task.id)  # type: ignore[arg-type]
        with self._connect() as conn:
            row = conn.execute("SELECT version FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise NotFound("Task not found", field="task_id")
            if int(row["version"]) != int(task.version):
                logger.info("Version conflict task_id=%s expected_version=%s", task_id, task.version)
                raise Conflict("Task was modified concurrently; reload and retry")

            (n_stored,) = conn.execute(
                "SELECT COUNT(*) FROM task_comments WHERE task_id = ?", (task_id,)
            ).fetchone()
            if len(task.comments) < int(n_stored):
                raise ValidationError("Comments are append-only", field="comments")

            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, assigner = ?, receiver = ?, deadline = ?,
                    status = ?, remark = ?, completed_at = ?, created_at = ?, updated_at = ?,
                    version = version + 1
                WHERE id = ?
                  AND version = ?
                """,
                (*self._task_params(task), task_id, int(task.version)),
            )
            if cur.rowcount != 1:
                logger.info("Version conflict task_id=%s expected_version=%s", task_id, task.version)
                raise Conflict("Task was modified concurrently; reload and retry")

            self._insert_comments(conn, task_id, task.comments[int(n_stored):])

        stored = self.load(task_id)
        if stored is None:
            raise NotFound("Task not found", field="task_id")
        return stored

    def delete(self, task_id: int) -> bool:
        with self._connect() as conn:
            conn.execute("DELETE FROM task_comments WHERE task_id = ?", (int(task_id),))
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            deleted = cur.rowcount > 0
        if deleted:
            logger.debug("Task deleted id=%s", task_id)
        return deleted

    # ---- MilestoneRepo ----

    def add_milestone(self, *, milestone: str, created_by: str, created_at: datetime) -> Milestone:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO milestones(milestone, created_by, created_at) VALUES (?, ?, ?)",
                (milestone, created_by, to_epoch(created_at)),
            )
            rowid = cur.lastrowid
        if rowid is None:
            raise InternalError("SQLite did not return lastrowid for milestones insert")
        return Milestone(id=int(rowid), milestone=milestone, created_by=created_by, created_at=created_at)

    def list_milestones(self) -> list[Milestone]:
        """Newest first."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM milestones ORDER BY created_at DESC, id DESC").fetchall()
        return [
            Milestone(
                id=int(r["id"]),
                milestone=str(r["milestone"]),
                created_by=str(r["created_by"]),
                created_at=from_epoch(r["created_at"]),  # type: ignore[arg-type]
            )
            for r in rows
        ]
