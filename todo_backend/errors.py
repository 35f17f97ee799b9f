from __future__ import annotations


class TodoBackendError(Exception):
    """Base error; `status` and `message` are what the client sees."""

    status = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidTaskId(TodoBackendError):
    status = 400
    message = "Invalid task ID"


class InvalidTaskBody(TodoBackendError):
    status = 400
    message = "Invalid task data"


class TaskNotFound(TodoBackendError):
    status = 404
    message = "Task not found"


class StoreError(TodoBackendError):
    """Any fault talking to the database, including pool exhaustion."""

    status = 500
    message = "Database error"
