"""Locate workflows for the launcher.

A target is either an import path (`package.module` or
`package.module:attribute`) or the bare name of a script installed under the
workflows directory (`<workflows_dir>/<name>.py`, exporting `workflow`).
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from pathlib import Path

from flowtree.workflow.definition import Workflow
from flowtree.workflow.subflows import import_workflow

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".py"
WORKFLOW_ATTRIBUTE = "workflow"


class WorkflowNotFoundError(LookupError):
    pass


def discover_workflows(workflows_dir: Path) -> list[str]:
    """Return installed workflow names in a stable order."""

    if not workflows_dir.is_dir():
        return []

    candidates = [
        p.stem
        for p in workflows_dir.iterdir()
        if p.is_file() and p.suffix == SCRIPT_SUFFIX and not p.name.startswith("_")
    ]
    return sorted(candidates)


def _is_import_path(target: str) -> bool:
    return ":" in target or "." in target


def _load_script(path: Path) -> Workflow:
    module_name = f"flowtree_script_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise WorkflowNotFoundError(f"Cannot load workflow script: {path}")

    module = importlib.util.module_from_spec(spec)
    # Registered before execution so lazy loaders inside the script can import it back.
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise

    workflow = getattr(module, WORKFLOW_ATTRIBUTE, None)
    if not isinstance(workflow, Workflow):
        raise WorkflowNotFoundError(f"{path} does not export a `{WORKFLOW_ATTRIBUTE}` Workflow")
    return workflow


def load_workflow(target: str, *, workflows_dir: Path) -> Workflow:
    """Resolve a launcher target to a workflow."""

    if _is_import_path(target):
        try:
            workflow = import_workflow(target)()
        except ImportError as e:
            raise WorkflowNotFoundError(f'Workflow "{target}" not found: {e}') from e
        if not isinstance(workflow, Workflow):
            raise WorkflowNotFoundError(f'"{target}" is not a Workflow')
        return workflow

    path = workflows_dir / f"{target}{SCRIPT_SUFFIX}"
    if not path.is_file():
        raise WorkflowNotFoundError(f'Workflow "{target}" not found in {workflows_dir}')

    logger.debug("Loading workflow script", extra={"path": str(path)})
    return _load_script(path)
