"""Child references and the per-workflow subflow table.

A child is declared either directly (a `Workflow`) or as a zero-argument
loader returning one, possibly as an awaitable. Loaders let two workflow
modules expose each other as subcommands without importing each other at
module import time.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeAlias, Union

if TYPE_CHECKING:
    from flowtree.workflow.definition import Workflow

logger = logging.getLogger(__name__)

WorkflowLoader: TypeAlias = Callable[[], Union["Workflow", Awaitable["Workflow"]]]
ChildRef: TypeAlias = Union["Workflow", WorkflowLoader]


async def resolve_subflow(ref: ChildRef) -> Workflow:
    """Return the workflow behind a child reference, invoking its loader if needed."""

    if not callable(ref):
        return ref

    loaded = ref()
    if inspect.isawaitable(loaded):
        loaded = await loaded
    if callable(loaded) or not hasattr(loaded, "meta"):
        raise TypeError(f"Subflow loader {ref!r} did not return a workflow: {loaded!r}")
    return loaded


def import_workflow(target: str) -> WorkflowLoader:
    """Build a loader for `"package.module:attribute"`.

    The module is imported on first resolution only. The attribute defaults
    to `workflow`.
    """

    module_name, _, attribute = target.partition(":")
    if not module_name:
        raise ValueError(f"Invalid workflow import path: {target!r}")
    attribute = attribute or "workflow"

    def load() -> Workflow:
        module = importlib.import_module(module_name)
        try:
            return getattr(module, attribute)
        except AttributeError as e:
            raise ImportError(f"Module {module_name!r} has no attribute {attribute!r}") from e

    load.__qualname__ = f"import_workflow({target!r})"
    return load


class SubflowTable:
    """Name -> workflow lookup for one workflow's declared children.

    Built on first access and kept for the lifetime of the owning workflow.
    Resolution is idempotent, so a second concurrent build is harmless.
    """

    def __init__(self, refs: Sequence[ChildRef]) -> None:
        self._refs = tuple(refs)
        self._table: dict[str, Workflow] | None = None

    def __len__(self) -> int:
        return len(self._refs)

    @property
    def is_loaded(self) -> bool:
        return self._table is not None

    async def load(self) -> dict[str, Workflow]:
        if self._table is None:
            table: dict[str, Workflow] = {}
            for ref in self._refs:
                child = await resolve_subflow(ref)
                if child.name in table:
                    logger.debug("Subflow shadowed", extra={"subflow": child.name})
                table[child.name] = child
            self._table = table
            logger.debug("Subflow table built", extra={"subflows": list(table)})
        return self._table

    async def get(self, name: str) -> Workflow | None:
        return (await self.load()).get(name)

    async def names(self) -> list[str]:
        return list(await self.load())

    async def children(self) -> list[Workflow]:
        return list((await self.load()).values())
