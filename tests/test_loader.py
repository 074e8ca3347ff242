from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from miqro.config import Settings
from miqro.loader import WorkflowLoadError, load_workflow_module, load_workflows, load_workflows_from_dir
from miqro.types import Workflow

EXAMPLES_DIR = Path(__file__).resolve().parents[1] / "examples" / "workflows"


def test_load_example_directory():
    workflows = load_workflows_from_dir(EXAMPLES_DIR)
    ids = sorted(wf.config.id for wf in workflows)
    assert ids == ["hourly-sync-task", "sample-workflow-01"]
    scheduled = [wf for wf in workflows if wf.config.schedule]
    assert [wf.config.schedule for wf in scheduled] == ["* * * * *"]


def test_broken_file_is_skipped(tmp_path):
    (tmp_path / "good.py").write_text(
        textwrap.dedent(
            """
            from miqro import Workflow, WorkflowConfig

            workflow = Workflow(WorkflowConfig(id="good"), lambda payload, ctx: "ok")
            """
        )
    )
    (tmp_path / "broken.py").write_text("raise RuntimeError('import time failure')\n")
    (tmp_path / "_private.py").write_text("raise RuntimeError('never imported')\n")

    workflows = load_workflows_from_dir(tmp_path)
    assert [wf.config.id for wf in workflows] == ["good"]


def test_missing_directory_returns_empty(tmp_path):
    assert load_workflows_from_dir(tmp_path / "absent") == []


def test_load_workflow_module_by_dotted_path():
    workflows = load_workflow_module("examples.workflows.scheduled_sample")
    assert len(workflows) == 1
    assert isinstance(workflows[0], Workflow)


def test_load_workflow_module_unknown_raises():
    with pytest.raises(WorkflowLoadError):
        load_workflow_module("examples.workflows.does_not_exist")


def test_load_workflows_combines_sources():
    settings = Settings(
        app_env="test",
        workflow_modules=["examples.workflows.scheduled_sample", "examples.workflows.missing"],
        workflows_dir=EXAMPLES_DIR,
    )
    ids = [wf.config.id for wf in load_workflows(settings)]
    assert ids.count("hourly-sync-task") == 2
    assert "sample-workflow-01" in ids
