"""Unit tests for help rendering."""

from __future__ import annotations

import asyncio

from flowtree.workflow import ArgSpec, Workflow
from flowtree.workflow.help import HelpOptions, format_arg, render_help


def test_format_arg_encodes_alias_kind_and_annotations() -> None:
    required = ArgSpec(kind="string", alias="p", description="Input", required=True)
    defaulted = ArgSpec(kind="boolean", default=False)

    assert format_arg("prompt", required) == "  --prompt, -p  <string>  Input  (required)"
    assert format_arg("force", defaulted) == "  --force  <boolean>  [default: false]"


def test_single_node_help_lists_children_in_summary_form(tree: Workflow) -> None:
    lines = asyncio.run(render_help(tree, ["main"]))

    assert lines[0] == "main v2.0.0 - Main workflow"
    assert "Usage: main [subflow...] [options]" in lines
    assert "  --verbose  <boolean>  Chatty output" in lines
    assert "  --help, -h      Show help (use --help=all for full tree)" in lines
    assert "  --version       Show version" in lines
    assert "  sub  A subflow" in lines
    # Summary mode does not descend into the child's options.
    assert not any("--count" in line for line in lines)


def test_show_all_recurses_with_indentation(tree: Workflow) -> None:
    lines = asyncio.run(render_help(tree, ["main"], HelpOptions(show_all=True)))

    assert "  sub - A subflow" in lines
    assert "  Options:" in lines
    assert "    --count, -c  <number>  How many  [default: 1]" in lines
    # Built-ins only appear once, at the top.
    assert sum("--version" in line for line in lines) == 1


def test_cycle_renders_see_above_stub() -> None:
    child = Workflow(name="a", description="Child", subflows=[lambda: root])
    root = Workflow(name="main", description="Root", subflows=[child])

    lines = asyncio.run(render_help(root, ["main"], HelpOptions(show_all=True)))

    assert "  a - Child" in lines
    assert "    main: (see above)" in lines
    assert sum(line.strip().startswith("main v") for line in lines) == 1


def test_self_reference_terminates() -> None:
    loop = Workflow(name="loop", description="Self", subflows=[lambda: loop])

    lines = asyncio.run(render_help(loop, ["loop"], HelpOptions(show_all=True)))

    assert lines.count("  loop: (see above)") == 1


def test_shared_child_is_rendered_once() -> None:
    shared = Workflow(name="shared", description="Shared", args={"x": ArgSpec(kind="string")})
    left = Workflow(name="left", description="Left", subflows=[shared])
    right = Workflow(name="right", description="Right", subflows=[shared])
    root = Workflow(name="root", description="Root", subflows=[left, right])

    options = HelpOptions(show_all=True)
    lines = asyncio.run(render_help(root, ["root"], options))

    assert lines.count("    shared - Shared") == 1
    assert "    shared: (see above)" in lines
    assert {id(root), id(left), id(right), id(shared)} == options.visited


def test_examples_and_notes_only_at_top_level() -> None:
    child = Workflow(
        name="child",
        description="Child",
        examples=[("child run", "never shown")],
        notes="Child notes",
    )
    root = Workflow(
        name="root",
        description="Root",
        subflows=[child],
        examples=[("root child", "Run the child")],
        notes="Root notes",
    )

    lines = asyncio.run(render_help(root, ["root"], HelpOptions(show_all=True)))

    assert lines[-5:] == ["Examples:", "  root child", "    Run the child", "", "Root notes"]
    assert "Child notes" not in lines
    assert "  child run" not in lines


def test_header_uses_invocation_path(tree: Workflow) -> None:
    sub = asyncio.run(tree.subflows.get("sub"))
    assert sub is not None

    text = asyncio.run(sub.format_help(["main", "sub"]))

    assert text.splitlines()[0] == "sub v1.0.0 - A subflow"
    assert "Usage: main sub [subflow...] [options]" in text
