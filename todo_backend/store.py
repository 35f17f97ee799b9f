from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .db import Database
from .errors import TaskNotFound
from .models import Task, TaskInput

logger = logging.getLogger(__name__)

COLUMNS = "id, task, due_date, completed, created_at"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    id SERIAL PRIMARY KEY,
    task TEXT NOT NULL,
    due_date DATE,
    completed BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


class TaskStore:
    """
    Data access for the `tasks` table.

    Every method is a single parameterized statement; atomicity comes from
    Postgres, there is no locking here.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def ensure_schema(self) -> None:
        with self._db.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        logger.info("Table tasks ready")

    def list_tasks(self) -> List[Task]:
        with self._db.cursor() as cur:
            cur.execute(f"SELECT {COLUMNS} FROM tasks ORDER BY id DESC")
            rows = cur.fetchall()
        return [Task.from_row(r) for r in rows]

    def create_task(self, task: str, due_date: Optional[date] = None) -> Task:
        with self._db.cursor() as cur:
            cur.execute(
                f"INSERT INTO tasks (task, due_date) VALUES (%s, %s) RETURNING {COLUMNS}",
                (task, due_date),
            )
            row = cur.fetchone()
        created = Task.from_row(row)
        logger.debug("Task created id=%s", created.id)
        return created

    def update_task(self, task_id: int, data: TaskInput) -> Task:
        """Overwrite task, due_date and completed; nothing is merged."""
        with self._db.cursor() as cur:
            cur.execute(
                "UPDATE tasks SET task = %s, due_date = %s, completed = %s "
                f"WHERE id = %s RETURNING {COLUMNS}",
                (data.task, data.due_date, data.completed, task_id),
            )
            row = cur.fetchone()
        if row is None:
            raise TaskNotFound()
        return Task.from_row(row)

    def delete_task(self, task_id: int) -> Task:
        with self._db.cursor() as cur:
            cur.execute(f"DELETE FROM tasks WHERE id = %s RETURNING {COLUMNS}", (task_id,))
            row = cur.fetchone()
        if row is None:
            raise TaskNotFound()
        deleted = Task.from_row(row)
        logger.debug("Task deleted id=%s", deleted.id)
        return deleted
