from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .errors import InvalidTaskBody, InvalidTaskId

# Postgres INTEGER / SERIAL range
MAX_TASK_ID = 2**31 - 1

_TRUE = {"true", "1", "yes", "y", "on"}
_FALSE = {"false", "0", "no", "n", "off", ""}


@dataclass
class Task:
    id: int
    task: str
    due_date: Optional[date]
    completed: bool
    created_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Task":
        due = row.get("due_date")
        if isinstance(due, datetime):
            due = due.date()
        return cls(
            id=int(row["id"]),
            task=row["task"],
            due_date=due,
            completed=bool(row.get("completed")),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task": self.task,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed": self.completed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class TaskInput:
    """Request body after coercion; what gets bound to the SQL parameters."""

    task: str
    due_date: Optional[date] = None
    completed: bool = False

    @classmethod
    def from_json(cls, body: Any) -> "TaskInput":
        if not isinstance(body, dict):
            raise InvalidTaskBody("Request body must be a JSON object")
        return cls(
            task=coerce_task_text(body.get("task")),
            due_date=coerce_due_date(body.get("due_date")),
            completed=coerce_completed(body.get("completed")),
        )


def parse_task_id(raw: str) -> int:
    # plain ASCII digits only; int() alone also takes "+1", "0_1" and other scripts
    if not isinstance(raw, str) or not (raw.isascii() and raw.isdigit()):
        raise InvalidTaskId()
    task_id = int(raw)
    if not 0 < task_id <= MAX_TASK_ID:
        raise InvalidTaskId()
    return task_id


def coerce_task_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidTaskBody("Task description is required")
    return value.strip()


def coerce_due_date(value: Any) -> Optional[date]:
    """Accept null, "", "YYYY-MM-DD" or a full ISO timestamp (date part is kept)."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidTaskBody("Invalid due date")
    value = value.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        # Date.toISOString() ends in "Z", which fromisoformat rejects before 3.11
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise InvalidTaskBody("Invalid due date") from None


def coerce_completed(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
    raise InvalidTaskBody("Invalid completed flag")
