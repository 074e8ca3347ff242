"""
Workflow dispatch core.

Resolves a workflow, checks its auth policy, decodes and validates the
payload, builds the execution context, runs the body and maps the outcome
to a JSON-ready result. Scheduled firings re-enter through
:meth:`Dispatcher.run_scheduled` and skip the HTTP-only steps.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from fastapi.encoders import jsonable_encoder

from miqro.auth import evaluate_auth
from miqro.context import build_context, scheduled_context
from miqro.core.exceptions import (
    AppError,
    MalformedRequestError,
    PayloadValidationError,
    UnauthorizedError,
    WorkflowNotFoundError,
)
from miqro.registry import WorkflowRegistry
from miqro.types import ExecutionContext, Workflow
from miqro.validation import validate_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    status_code: int
    body: Dict[str, Any]
    content: bytes


GENERIC_ERROR = MalformedRequestError()


def render(status_code: int, body: Dict[str, Any]) -> DispatchResult:
    """Serialize a response body to strict JSON bytes. Raises on NaN/Infinity or unencodable values."""
    encoded = jsonable_encoder(body)
    content = json.dumps(encoded, ensure_ascii=False, allow_nan=False, separators=(",", ":")).encode("utf-8")
    return DispatchResult(status_code=status_code, body=encoded, content=content)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {token}")


def decode_body(raw: bytes | str) -> Any:
    """Parse a JSON request body. Any failure surfaces as MalformedRequestError."""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw, parse_constant=_reject_constant)
    except Exception as exc:
        raise MalformedRequestError() from exc


class Dispatcher:
    """Runs one workflow invocation per trigger event."""

    def __init__(self, registry: WorkflowRegistry):
        self.registry = registry

    def resolve(self, workflow_id: str) -> Workflow:
        wf = self.registry.lookup(workflow_id)
        if wf is None:
            raise WorkflowNotFoundError(workflow_id)
        return wf

    async def dispatch(
        self,
        workflow_id: str,
        *,
        body: bytes | str,
        headers: Mapping[str, str] | None = None,
        query: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        """HTTP path. Terminal on the first failing step; never raises."""
        headers = headers or {}
        query = query or {}
        try:
            wf = self.resolve(workflow_id)

            decision = evaluate_auth(wf.config.auth, headers, query)
            if not decision.allowed:
                raise UnauthorizedError(decision.reason or "Unauthorized")

            payload = decode_body(body)

            validation = validate_payload(wf.config.schema, payload)
            if not validation.success:
                raise PayloadValidationError(validation.details)
            payload = validation.data

            context = build_context(wf, params=params, query=query, headers=headers)
            result = await self.invoke_direct(wf, payload, context)

            return render(
                200,
                {
                    "status": "success",
                    "message": f"Workflow '{workflow_id}' executed",
                    "data": result,
                },
            )
        except PayloadValidationError as exc:
            logger.info("Validation failed for workflow '%s'", workflow_id)
            try:
                return render(exc.status_code, {"error": exc.message, "details": exc.details})
            except Exception as render_exc:
                logger.exception("Could not render validation details for '%s': %s", workflow_id, render_exc)
                return render(GENERIC_ERROR.status_code, {"error": GENERIC_ERROR.message})
        except MalformedRequestError as exc:
            logger.exception("Webhook error for workflow '%s': %s", workflow_id, exc.__cause__ or exc)
            return render(exc.status_code, {"error": exc.message})
        except (WorkflowNotFoundError, UnauthorizedError) as exc:
            logger.info("Rejected webhook for '%s': %s", workflow_id, exc.message)
            return render(exc.status_code, {"error": exc.message})
        except Exception as exc:
            logger.exception("Webhook error for workflow '%s': %s", workflow_id, exc)
            return render(GENERIC_ERROR.status_code, {"error": GENERIC_ERROR.message})

    async def invoke_direct(self, wf: Workflow, payload: Any, context: ExecutionContext) -> Any:
        """Run the workflow body. Errors propagate to the caller."""
        return await wf.run(payload, context)

    async def run_scheduled(self, workflow_id: str) -> None:
        """Cron path. Failures are logged here and never propagate."""
        try:
            wf = self.resolve(workflow_id)
            logger.info("Executing scheduled workflow: %s", workflow_id)
            payload = {"source": "cron", "timestamp": int(time.time() * 1000)}
            await self.invoke_direct(wf, payload, scheduled_context(wf))
            logger.info("Scheduled run complete for workflow %s", workflow_id)
        except AppError as exc:
            logger.error("Scheduled workflow '%s' could not run: %s", workflow_id, exc.message)
        except Exception as exc:
            logger.exception("Scheduled execution failed for workflow %s: %s", workflow_id, exc)
