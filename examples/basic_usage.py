#!/usr/bin/env python3
"""Programmatic workflow tree example.

This demonstrates the pieces a workflow script usually combines:

* typed argument descriptors with aliases, defaults and required flags
* nested subflows, including a lazy loader that points back at the root
* a handler that orchestrates its own subflows through the context

Try:
    python examples/basic_usage.py --help=all
    python examples/basic_usage.py notes add -t "Buy milk" --pin
    python examples/basic_usage.py notes list --limit 5
    python examples/basic_usage.py notes sync
"""

from __future__ import annotations

from argparse import Namespace

from flowtree import ArgSpec, Workflow, WorkflowContext

NOTES: list[dict[str, object]] = []


def add_note(args: Namespace, ctx: WorkflowContext) -> None:
    NOTES.append({"title": args.title, "pinned": args.pin, "tags": list(args._)})
    print(f"Added note: {args.title}")


def list_notes(args: Namespace, ctx: WorkflowContext) -> None:
    for note in NOTES[: int(args.limit)]:
        marker = "*" if note["pinned"] else "-"
        print(f"{marker} {note['title']}")


async def sync_notes(args: Namespace, ctx: WorkflowContext) -> None:
    # Orchestrate sibling steps through our own subflows.
    for name in await ctx.subflow_names():
        step = await ctx.get_subflow(name)
        if step is not None and name != "main":
            await step.execute(limit=args.limit)


add = Workflow(
    name="add",
    description="Add a note",
    args={
        "title": ArgSpec(kind="string", alias="t", description="Note title", required=True),
        "pin": ArgSpec(kind="boolean", description="Pin the note", default=False),
    },
    handler=add_note,
)

list_ = Workflow(
    name="list",
    description="List notes",
    args={"limit": ArgSpec(kind="number", alias="l", description="Maximum notes", default=10)},
    handler=list_notes,
)

notes = Workflow(
    name="notes",
    description="Manage notes",
    args={"limit": ArgSpec(kind="number", default=10)},
    subflows=[
        add,
        list_,
        Workflow(
            name="sync",
            description="List then loop back to the root",
            args={"limit": ArgSpec(kind="number", default=10)},
            subflows=[list_, lambda: workflow],
            handler=sync_notes,
        ),
    ],
)

workflow = Workflow(
    name="main",
    description="Notes demo",
    version="0.1.0",
    subflows=[notes],
    examples=[
        ['main notes add -t "Buy milk" --pin', "Add a pinned note"],
        ["main notes list --limit 5", "Show five notes"],
    ],
    notes="Use --help=all to print the whole tree.",
)

# `sync` loads `workflow` lazily, so the tree only starts once the name is bound.
if __name__ == "__main__":
    workflow.start()
