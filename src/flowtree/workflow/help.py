"""Usage text for a workflow and, optionally, its whole subtree.

Subflow graphs are not required to be acyclic: a child may point back at an
ancestor or at itself. The renderer tracks node identity and prints a
"(see above)" stub instead of descending into a node twice.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from flowtree.workflow.args import ArgSpec

if TYPE_CHECKING:
    from flowtree.workflow.definition import Workflow

INDENT = "  "


@dataclass(slots=True)
class HelpOptions:
    show_all: bool = False
    visited: set[int] = field(default_factory=set)
    depth: int = 0


def _display(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_arg(key: str, spec: ArgSpec) -> str:
    flag = f"  --{key}"
    if spec.alias:
        flag += f", -{spec.alias}"
    parts = [flag, f"<{spec.kind.value}>"]
    if spec.description:
        parts.append(spec.description)
    if spec.required:
        parts.append("(required)")
    if spec.default is not None:
        parts.append(f"[default: {_display(spec.default)}]")
    return "  ".join(parts)


async def render_help(
    workflow: Workflow,
    path: Sequence[str],
    options: HelpOptions | None = None,
) -> list[str]:
    """Render help lines for `workflow` reached via `path`."""

    lines: list[str] = []
    await _render(workflow, list(path), options or HelpOptions(), lines)
    return lines


async def _render(workflow: Workflow, path: list[str], opts: HelpOptions, out: list[str]) -> None:
    meta = workflow.meta
    prefix = INDENT * opts.depth

    if id(workflow) in opts.visited:
        if opts.show_all:
            out.append(f"{prefix}{meta.name}: (see above)")
        return
    opts.visited.add(id(workflow))

    if opts.depth == 0:
        out.append(f"{meta.name} v{meta.version} - {meta.description}")
        out.append("")
        out.append(f"Usage: {' '.join(path) or meta.name} [subflow...] [options]")
    else:
        out.append(f"{prefix}{meta.name} - {meta.description}")

    if meta.args:
        out.append("")
        out.append(f"{prefix}Options:")
        out.extend(f"{prefix}{format_arg(key, spec)}" for key, spec in meta.args.items())

    if opts.depth == 0:
        out.append("")
        out.append("Built-in:")
        out.append("  --help, -h      Show help (use --help=all for full tree)")
        out.append("  --version       Show version")

    if len(workflow.subflows):
        out.append("")
        out.append(f"{prefix}Subflows:")
        for child in await workflow.subflows.children():
            if opts.show_all:
                out.append("")
                await _render(child, [*path, child.name], replace(opts, depth=opts.depth + 1), out)
            else:
                out.append(f"{prefix}  {child.name}  {child.description}")

    if opts.depth == 0 and workflow.examples:
        out.append("")
        out.append("Examples:")
        for command, explanation in workflow.examples:
            out.append(f"  {command}")
            out.append(f"    {explanation}")

    if opts.depth == 0 and workflow.notes:
        out.append("")
        out.append(workflow.notes)
