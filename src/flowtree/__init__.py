"""flowtree.

A nested command-tree execution engine:
- declare workflows with typed argument descriptors and subflows
- resolve `root child grandchild --flag value` to the deepest matching subflow
- bind, validate and hand typed arguments to the subflow's handler
"""

__version__ = "0.1.0"

from flowtree.workflow import ArgSpec, Workflow, WorkflowContext, create_router, import_workflow

__all__ = [
    "__version__",
    "ArgSpec",
    "Workflow",
    "WorkflowContext",
    "create_router",
    "import_workflow",
]
