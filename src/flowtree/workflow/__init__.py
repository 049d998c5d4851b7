"""Nested command-tree workflows.

This package provides:
- Argument descriptors and a two-phase argument parser
- Subflow tables with lazy, cycle-tolerant child references
- A greedy path walker that picks the deepest matching subflow
- Cycle-safe recursive help rendering
- The `Workflow.run` driver with an explicit phase state machine
"""

from flowtree.workflow.args import ArgKind, ArgSpec, ArgumentValueError, ParsedArgs
from flowtree.workflow.context import WorkflowContext
from flowtree.workflow.definition import (
    DEFAULT_VERSION,
    IllegalTransitionError,
    RunPhase,
    Workflow,
    WorkflowMeta,
    create_router,
)
from flowtree.workflow.subflows import ChildRef, import_workflow

__all__ = [
    "DEFAULT_VERSION",
    "ArgKind",
    "ArgSpec",
    "ArgumentValueError",
    "ChildRef",
    "IllegalTransitionError",
    "ParsedArgs",
    "RunPhase",
    "Workflow",
    "WorkflowContext",
    "WorkflowMeta",
    "create_router",
    "import_workflow",
]
