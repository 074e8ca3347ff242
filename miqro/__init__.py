"""Miqro: turn declarative workflows into webhook endpoints and cron jobs."""
from miqro.core.exceptions import ScheduleBindError
from miqro.dispatcher import Dispatcher, DispatchResult
from miqro.registry import WorkflowRegistry
from miqro.scheduler import AsyncioCronTimer, CronTimer, SchedulerBinder
from miqro.server import create_app
from miqro.types import (
    ApiKeyAuth,
    AuthConfig,
    BearerAuth,
    ExecutionContext,
    NoAuth,
    Workflow,
    WorkflowConfig,
    workflow,
)
from miqro.validation import PydanticSchema, SchemaCapability, ValidationResult

__all__ = [
    "ApiKeyAuth",
    "AsyncioCronTimer",
    "AuthConfig",
    "BearerAuth",
    "CronTimer",
    "DispatchResult",
    "Dispatcher",
    "ExecutionContext",
    "NoAuth",
    "PydanticSchema",
    "ScheduleBindError",
    "SchedulerBinder",
    "SchemaCapability",
    "ValidationResult",
    "Workflow",
    "WorkflowConfig",
    "WorkflowRegistry",
    "create_app",
    "workflow",
]
