from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    success: bool
    data: Any = None
    details: Any = None

    @classmethod
    def ok(cls, data: Any) -> "ValidationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, details: Any) -> "ValidationResult":
        return cls(success=False, details=details)


class SchemaCapability(Protocol):
    """Anything that validates unknown input into a tagged success/failure result."""

    def validate(self, data: Any) -> ValidationResult: ...


class PydanticSchema:
    """Schema capability backed by a pydantic model class or any type pydantic can validate."""

    def __init__(self, type_: Any, *, dump: bool = False):
        self.type_ = type_
        self.dump = dump
        self._adapter = type_ if isinstance(type_, TypeAdapter) else TypeAdapter(type_)

    def validate(self, data: Any) -> ValidationResult:
        try:
            value = self._adapter.validate_python(data)
        except ValidationError as exc:
            return ValidationResult.fail(json.loads(exc.json(include_url=False)))
        if self.dump and isinstance(value, BaseModel):
            value = value.model_dump()
        return ValidationResult.ok(value)

    def __repr__(self) -> str:
        return f"PydanticSchema({self.type_!r})"


class _SafeParseSchema:
    """Adapter for objects exposing ``safe_parse(data) -> {success, data | error}``."""

    def __init__(self, schema: Any):
        self.schema = schema

    def validate(self, data: Any) -> ValidationResult:
        result = self.schema.safe_parse(data)
        success = _field(result, "success")
        if success:
            return ValidationResult.ok(_field(result, "data"))
        error = _field(result, "error")
        fmt = getattr(error, "format", None)
        return ValidationResult.fail(fmt() if callable(fmt) else error)


def _field(result: Any, name: str) -> Any:
    if isinstance(result, dict):
        return result.get(name)
    return getattr(result, name, None)


def as_schema(schema: Any) -> SchemaCapability | None:
    """Normalize whatever a workflow declares as its schema into a capability."""
    if schema is None:
        return None
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return PydanticSchema(schema)
    if isinstance(schema, TypeAdapter):
        return PydanticSchema(schema)
    if callable(getattr(schema, "validate", None)) and not isinstance(schema, type):
        return schema
    if callable(getattr(schema, "safe_parse", None)):
        return _SafeParseSchema(schema)
    raise TypeError(f"Unsupported schema object: {schema!r}")


def validate_payload(schema: Any, payload: Any) -> ValidationResult:
    """Run the declared schema, or pass the payload through unchanged when none is declared."""
    capability = as_schema(schema)
    if capability is None:
        return ValidationResult.ok(payload)
    result = capability.validate(payload)
    if not result.success:
        logger.debug("Payload rejected by %r", capability)
    return result
