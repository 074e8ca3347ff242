"""Custom exception types for the dispatch core and the scheduler."""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base app exception."""

    status_code: int = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class WorkflowNotFoundError(AppError):
    """Requested workflow id is not registered."""

    status_code = 404

    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow '{workflow_id}' not found")
        self.workflow_id = workflow_id


class UnauthorizedError(AppError):
    """Credential check failed for the workflow's auth policy."""

    status_code = 401


class PayloadValidationError(AppError):
    """Schema rejected the payload."""

    status_code = 400

    def __init__(self, details: Any) -> None:
        super().__init__("Validation Failed")
        self.details = details


class MalformedRequestError(AppError):
    """Body could not be decoded or the workflow body raised."""

    status_code = 400

    def __init__(self, message: str = "Invalid JSON payload or internal error") -> None:
        super().__init__(message)


class ScheduleBindError(AppError):
    """A cron expression could not be registered with the timer."""


class DuplicateWorkflowError(AppError):
    """Two workflow definitions share an id and the registry forbids it."""
