"""
Miqro - FastAPI application factory
Exposes every registered workflow as POST /{workflow_id} and binds cron schedules.
"""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Iterable, List, Sequence

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware

from miqro.config import Settings, get_settings
from miqro.context import query_to_dict
from miqro.dispatcher import Dispatcher
from miqro.registry import WorkflowRegistry
from miqro.scheduler import AsyncioCronTimer, CronTimer, SchedulerBinder
from miqro.types import Workflow

logger = logging.getLogger(__name__)

MiddlewareSpec = Any


async def log_requests(request: Request, call_next: Callable) -> Any:
    """Log one line per request with status and elapsed time."""
    start = time.perf_counter()
    logger.info("<-- %s %s", request.method, request.url.path)
    response = await call_next(request)
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    logger.info("--> %s %s %s %dms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


def _as_middleware(spec: MiddlewareSpec) -> Middleware:
    if isinstance(spec, Middleware):
        return spec
    if callable(spec):
        return Middleware(BaseHTTPMiddleware, dispatch=spec)
    raise TypeError(f"Unsupported middleware: {spec!r}")


def build_middleware(middleware: Sequence[MiddlewareSpec] | None) -> List[Middleware]:
    """Request logging first, then user middleware in declaration order (first is outermost)."""
    stack = [_as_middleware(log_requests)]
    stack.extend(_as_middleware(mw) for mw in middleware or [])
    return stack


def _log_routes(settings: Settings, registry: WorkflowRegistry) -> None:
    logger.info("Miqro started on http://localhost:%s", settings.port)
    if len(registry) > 0:
        routes = "\n".join(f" - POST http://localhost:{settings.port}/{wid}" for wid in registry.ids())
        logger.info("Active Webhooks: \n%s", routes)
    else:
        logger.info("No workflows loaded.")


def create_app(
    workflows: Iterable[Workflow] = (),
    *,
    settings: Settings | None = None,
    middleware: Sequence[MiddlewareSpec] | None = None,
    timer: CronTimer | None = None,
    registry: WorkflowRegistry | None = None,
) -> FastAPI:
    """Build the webhook application from a static list of workflows."""
    settings = settings or get_settings()
    if registry is None:
        registry = WorkflowRegistry.from_workflows(workflows, duplicate_policy=settings.duplicate_policy)
    else:
        for wf in workflows:
            registry.register(wf)

    dispatcher = Dispatcher(registry)
    timer = timer if timer is not None else AsyncioCronTimer()
    binder = SchedulerBinder(registry, dispatcher, timer)
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        binder.bind()
        start = getattr(timer, "start", None)
        if callable(start):
            start()
        _log_routes(settings, registry)
        yield
        stop = getattr(timer, "stop", None)
        if callable(stop):
            result = stop()
            if hasattr(result, "__await__"):
                await result
        binder.unbind()
        logger.info("Shutting down Miqro...")

    app = FastAPI(
        title=settings.app_name,
        description="Webhook and cron runner for declarative workflows",
        version="0.1.0",
        lifespan=lifespan,
        middleware=build_middleware(middleware),
    )
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.scheduler_binder = binder

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "uptime": time.monotonic() - started_at,
            "loadedWorkflows": len(registry),
        }

    @app.post("/{workflow_id}")
    async def webhook(workflow_id: str, request: Request) -> Response:
        body = await request.body()
        result = await dispatcher.dispatch(
            workflow_id,
            body=body,
            headers=dict(request.headers),
            query=query_to_dict(request.query_params.multi_items()),
            params=dict(request.path_params),
        )
        return Response(content=result.content, status_code=result.status_code, media_type="application/json")

    return app
