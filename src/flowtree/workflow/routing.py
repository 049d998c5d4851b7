from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowtree.workflow.definition import Workflow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Route:
    """Outcome of a path walk: the leaf, how we got there, and what was left."""

    leaf: Workflow
    path: list[str]
    remaining: list[str]


async def walk_path(root: Workflow, positionals: Sequence[str]) -> Route:
    """Descend from `root` while the next positional token names a child.

    Greedy and non-backtracking: the first token that does not match a child
    ends the walk, and it and everything after it become the leaf's own
    positional data.
    """

    current = root
    path = [root.name]
    remaining = list(positionals)

    while remaining:
        child = await current.subflows.get(remaining[0])
        if child is None:
            break
        path.append(remaining.pop(0))
        current = child

    logger.debug("Resolved invocation path", extra={"path": path, "remaining": remaining})
    return Route(leaf=current, path=path, remaining=remaining)
