from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from miqro.types import ExecutionContext, Workflow

QueryDict = Dict[str, Union[str, List[str]]]


def query_to_dict(items: Iterable[Tuple[str, str]]) -> QueryDict:
    """Collapse multi-valued query pairs: one value stays a string, repeats become a list."""
    query: QueryDict = {}
    for key, value in items:
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return query


def build_context(
    workflow: Workflow,
    params: Mapping[str, Any] | None = None,
    query: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> ExecutionContext:
    """Assemble a fresh execution context. Mappings are copied, keys are left as given."""
    return ExecutionContext(
        workflow_id=workflow.config.id,
        name=workflow.config.name,
        params={k: str(v) for k, v in (params or {}).items()},
        query={k: list(v) if isinstance(v, (list, tuple)) else v for k, v in (query or {}).items()},
        headers=dict(headers or {}),
    )


def scheduled_context(workflow: Workflow) -> ExecutionContext:
    return build_context(workflow)
