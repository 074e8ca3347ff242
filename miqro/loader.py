"""Explicit workflow loading from dotted module paths or a directory of plugin files."""
from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import List

from miqro.config import Settings
from miqro.core.exceptions import AppError
from miqro.types import Workflow

logger = logging.getLogger(__name__)


class WorkflowLoadError(AppError):
    """A workflow module could not be imported."""


def workflows_in_module(module: ModuleType) -> List[Workflow]:
    """Prefer a module-level ``workflow`` attribute, else every Workflow instance in the module."""
    declared = getattr(module, "workflow", None)
    if isinstance(declared, Workflow):
        return [declared]
    declared = getattr(module, "workflows", None)
    if isinstance(declared, (list, tuple)):
        return [wf for wf in declared if isinstance(wf, Workflow)]
    return [value for value in vars(module).values() if isinstance(value, Workflow)]


def load_workflow_module(module_path: str) -> List[Workflow]:
    try:
        module = importlib.import_module(module_path)
    except Exception as exc:
        raise WorkflowLoadError(f"Could not import module '{module_path}': {exc}") from exc
    return workflows_in_module(module)


def _import_file(filepath: Path) -> ModuleType:
    module_name = f"miqro_workflow_{filepath.stem}"
    spec = importlib.util.spec_from_file_location(module_name, filepath)
    if spec is None or spec.loader is None:
        raise WorkflowLoadError(f"Unable to load module spec for {filepath}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise WorkflowLoadError(f"Workflow module import failed for {filepath}: {exc}") from exc
    return module


def load_workflows_from_dir(workflows_dir: Path | str) -> List[Workflow]:
    """Import every ``*.py`` file in the directory. Files that fail to import are skipped."""
    directory = Path(workflows_dir)
    if not directory.is_dir():
        logger.error("Workflows directory not found: %s", directory)
        return []

    loaded: List[Workflow] = []
    for filepath in sorted(directory.glob("*.py")):
        if filepath.name.startswith("_"):
            continue
        try:
            module = _import_file(filepath)
        except WorkflowLoadError as exc:
            logger.error("Error loading workflows from %s: %s", filepath, exc)
            continue
        found = workflows_in_module(module)
        for wf in found:
            logger.debug("Found workflow %s in %s", wf.config.id, filepath.name)
        loaded.extend(found)
    return loaded


def load_workflows(settings: Settings) -> List[Workflow]:
    workflows: List[Workflow] = []
    for module_path in settings.workflow_modules:
        try:
            workflows.extend(load_workflow_module(module_path))
        except WorkflowLoadError as exc:
            logger.error(str(exc))
    if settings.workflows_dir:
        workflows.extend(load_workflows_from_dir(settings.workflows_dir))
    return workflows
