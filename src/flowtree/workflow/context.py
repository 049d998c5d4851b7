from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flowtree.workflow.subflows import SubflowTable

if TYPE_CHECKING:
    from flowtree.workflow.definition import Workflow, WorkflowMeta


@dataclass(frozen=True, slots=True)
class WorkflowContext:
    """Per-invocation view handed to a handler.

    Subflow accessors are bound to the workflow being executed, not to the
    root of the tree, so a handler can orchestrate its own children.
    """

    meta: WorkflowMeta
    path: list[str]
    raw_args: list[str]
    _subflows: SubflowTable = field(repr=False)

    async def get_subflow(self, name: str) -> Workflow | None:
        return await self._subflows.get(name)

    async def subflow_names(self) -> list[str]:
        return await self._subflows.names()


def build_context(leaf: Workflow, path: Sequence[str], raw_args: Sequence[str]) -> WorkflowContext:
    return WorkflowContext(
        meta=leaf.meta,
        path=list(path),
        raw_args=list(raw_args),
        _subflows=leaf.subflows,
    )
