"""Sample webhook workflow: bearer-protected, payload validated with pydantic."""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from miqro import BearerAuth, ExecutionContext, Workflow, WorkflowConfig

logger = logging.getLogger(__name__)


class SamplePayload(BaseModel):
    email: EmailStr
    message: str = Field(min_length=5)
    priority: Literal["low", "medium", "high"] = "medium"


async def execute(payload: SamplePayload, context: ExecutionContext) -> None:
    logger.info(f"[{context.workflow_id}] Received from {payload.email}")
    logger.info(f"Message: {payload.message}")
    logger.info(f"Priority: {payload.priority}")
    logger.info(f"Request ID Header: {context.headers.get('x-request-id', 'N/A')}")

    await asyncio.sleep(0.5)

    logger.info(f"[{context.workflow_id}] Execution complete.")


workflow = Workflow(
    WorkflowConfig(
        id="sample-workflow-01",
        name="Sample Data Processor",
        description="A sample workflow that logs incoming data",
        auth=BearerAuth(token=os.getenv("SAMPLE_AUTH_TOKEN", "default-secret")),
        schema=SamplePayload,
    ),
    execute,
)
