"""
Miqro entry point
Builds the app from configured workflow sources and serves it with uvicorn.
"""
from __future__ import annotations

import logging
from typing import Sequence

import uvicorn
from fastapi import FastAPI

from miqro.config import Settings, get_settings
from miqro.loader import load_workflows
from miqro.logging_config import configure_logging
from miqro.server import MiddlewareSpec, create_app

logger = logging.getLogger(__name__)


def start_miqro(
    settings: Settings | None = None,
    middleware: Sequence[MiddlewareSpec] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    workflows = load_workflows(settings)
    logger.info("Discovered %d workflow definition(s)", len(workflows))
    return create_app(workflows, settings=settings, middleware=middleware)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = start_miqro(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
