"""Tasklog errors.

Every error that reaches the client carries a short message and an HTTP
status. Messages never include stack traces or internal identifiers.
"""


class TaskLogError(Exception):
    """Base error for tasklog operations."""

    status_code = 500

    def __init__(self, message: str, code: str = "TASKLOG_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AuthenticationFailure(TaskLogError):
    """Missing or incorrect credential."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized access. Please provide valid credentials."):
        super().__init__(message, "UNAUTHORIZED")


class ValidationFailure(TaskLogError):
    """Request input violates a field rule."""

    status_code = 400

    def __init__(self, message: str, field: str = ""):
        super().__init__(message, "VALIDATION_FAILED")
        self.field = field


class TaskNotFound(TaskLogError):
    """Task does not exist."""

    status_code = 404

    def __init__(self, task_id: int):
        super().__init__("Task not found", "TASK_NOT_FOUND")
        self.task_id = task_id


class RouteNotFound(TaskLogError):
    """No operation matches the method and path."""

    status_code = 404

    def __init__(self, method: str = "", path: str = ""):
        super().__init__("Not found", "ROUTE_NOT_FOUND")
        self.method = method
        self.path = path


class StoreFailure(TaskLogError):
    """A store operation failed; the message names the operation only."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, "STORE_FAILURE")


class StoreError(Exception):
    """Raised by store adapters when the underlying driver or ORM fails."""
