"""
Workflow registry for runtime dispatch.
Maps workflow id to the loaded Workflow definition.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Literal

from miqro.core.exceptions import DuplicateWorkflowError
from miqro.types import Workflow

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["overwrite", "error"]


class WorkflowRegistry:
    """Holds loaded workflows keyed by id. Read-only once startup finishes."""

    def __init__(self, duplicate_policy: DuplicatePolicy = "overwrite"):
        self.duplicate_policy = duplicate_policy
        self._workflows: Dict[str, Workflow] = {}

    @classmethod
    def from_workflows(
        cls,
        workflows: Iterable[Workflow],
        duplicate_policy: DuplicatePolicy = "overwrite",
    ) -> "WorkflowRegistry":
        registry = cls(duplicate_policy=duplicate_policy)
        for wf in workflows:
            registry.register(wf)
        return registry

    def register(self, wf: Workflow) -> bool:
        """Insert a workflow by ``config.id``. Returns False when it was skipped."""
        config = getattr(wf, "config", None)
        workflow_id = getattr(config, "id", None)
        if not workflow_id:
            logger.warning("Skipping workflow without an id: %r", wf)
            return False

        if workflow_id in self._workflows:
            if self.duplicate_policy == "error":
                raise DuplicateWorkflowError(f"Duplicate workflow id '{workflow_id}'")
            logger.warning("Workflow '%s' registered twice; last definition wins", workflow_id)

        self._workflows[workflow_id] = wf
        logger.info("Loaded workflow: %s", workflow_id)
        return True

    def lookup(self, workflow_id: str) -> Workflow | None:
        """Return workflow by id or None if not found."""
        return self._workflows.get(workflow_id)

    def all(self) -> List[Workflow]:
        return list(self._workflows.values())

    def ids(self) -> List[str]:
        return list(self._workflows.keys())

    def scheduled(self) -> List[Workflow]:
        return [wf for wf in self._workflows.values() if wf.config.schedule]

    def __len__(self) -> int:
        return len(self._workflows)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._workflows

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self.all())
