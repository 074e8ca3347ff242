"""
Workflow data model.

A workflow is a config (identity, auth policy, optional cron schedule,
optional schema) paired with an ``execute(payload, context)`` body.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from miqro.validation import as_schema


class NoAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["none"] = "none"


class ApiKeyAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["apiKey"] = "apiKey"
    key: str


class BearerAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["bearer"] = "bearer"
    token: str


AuthConfig = Annotated[Union[NoAuth, ApiKeyAuth, BearerAuth], Field(discriminator="type")]

_auth_adapter: TypeAdapter = TypeAdapter(AuthConfig)


def parse_auth(value: Any) -> NoAuth | ApiKeyAuth | BearerAuth:
    """Accept an auth model, a ``{"type": ...}`` dict, or None (no auth)."""
    if value is None:
        return NoAuth()
    if isinstance(value, (NoAuth, ApiKeyAuth, BearerAuth)):
        return value
    return _auth_adapter.validate_python(value)


@dataclass(frozen=True)
class WorkflowConfig:
    id: str
    name: str = ""
    description: Optional[str] = None
    auth: Any = None
    schedule: Optional[str] = None
    schema: Any = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__.
        if not self.name:
            object.__setattr__(self, "name", self.id)
        object.__setattr__(self, "auth", parse_auth(self.auth))
        object.__setattr__(self, "schema", as_schema(self.schema))
        if self.schedule is not None and not self.schedule.strip():
            object.__setattr__(self, "schedule", None)


@dataclass(frozen=True)
class ExecutionContext:
    """Read-only bundle of identity and request metadata for one invocation."""

    workflow_id: str
    name: str
    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


ExecuteFn = Callable[[Any, ExecutionContext], Union[Any, Awaitable[Any]]]


class Workflow:
    """
    A named unit of logic triggered by a webhook call or a cron schedule.

    Either pass ``execute`` or subclass and override :meth:`execute`.
    """

    def __init__(self, config: WorkflowConfig, execute: ExecuteFn | None = None):
        if execute is None and type(self).execute is Workflow.execute:
            raise TypeError(f"Workflow '{config.id}' needs an execute body")
        self.config = config
        self._execute = execute

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    def execute(self, payload: Any, context: ExecutionContext) -> Any:
        return self._execute(payload, context)

    async def run(self, payload: Any, context: ExecutionContext) -> Any:
        """Invoke the body and await it when it returns a pending result."""
        result = self.execute(payload, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Workflow(id={self.config.id!r}, name={self.config.name!r})"


def workflow(
    id: str,
    *,
    name: str = "",
    description: str | None = None,
    auth: Any = None,
    schedule: str | None = None,
    schema: Any = None,
) -> Callable[[ExecuteFn], Workflow]:
    """Decorator turning a plain ``execute(payload, context)`` function into a Workflow."""

    def decorator(fn: ExecuteFn) -> Workflow:
        config = WorkflowConfig(
            id=id,
            name=name,
            description=description or inspect.getdoc(fn),
            auth=auth,
            schedule=schedule,
            schema=schema,
        )
        return Workflow(config, fn)

    return decorator
