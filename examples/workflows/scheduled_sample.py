"""Sample workflow that runs on a schedule instead of webhooks."""
from __future__ import annotations

import asyncio
import logging

from miqro import workflow

logger = logging.getLogger(__name__)


@workflow(
    "hourly-sync-task",
    name="Hourly Sync Task",
    description="A sample workflow that runs on a schedule instead of webhooks",
    auth={"type": "none"},
    schedule="* * * * *",
)
async def hourly_sync(payload, context):
    logger.info(f"[{context.workflow_id}] Executing scheduled logic: {context.name}")
    logger.info(f"Payload: {payload}")

    await asyncio.sleep(0.2)

    logger.info(f"[{context.workflow_id}] Scheduled execution complete.")
