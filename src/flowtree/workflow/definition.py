"""Workflow definitions and the `run` driver.

A `Workflow` is a named, versioned command node with argument descriptors,
optional children and an optional handler:

    greet = Workflow(
        name="greet",
        description="Say hello",
        args={"name": ArgSpec(kind="string", alias="n", required=True)},
        handler=lambda args, ctx: print(f"Hello {args.name}"),
    )

    workflow = Workflow(
        name="main",
        description="Demo tree",
        subflows=[greet, import_workflow("demo.admin:workflow")],
        auto_start=__name__ == "__main__",
    )

`await workflow.run(["greet", "-n", "Ada"])` walks to `greet`, binds and
validates its arguments, then calls its handler.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from argparse import Namespace
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, NoReturn, TypeAlias

from flowtree.workflow.args import (
    POSITIONALS,
    ArgSpec,
    ArgumentValueError,
    bind_args,
    dest,
    find_missing_required,
    parse_argv,
    rebuild_argv,
)
from flowtree.workflow.context import WorkflowContext, build_context
from flowtree.workflow.help import HelpOptions, render_help
from flowtree.workflow.routing import walk_path
from flowtree.workflow.subflows import ChildRef, SubflowTable

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"

# Routing-pass keys owned by the driver; never forwarded to the typed pass.
RESERVED_KEYS = frozenset({"help", "h", "version"})

Handler: TypeAlias = Callable[[Namespace, WorkflowContext], Awaitable[None] | None]


class RunPhase(str, Enum):
    PARSE_ROUTING = "parse_routing"
    HELP_REQUESTED = "help_requested"
    VERSION_REQUESTED = "version_requested"
    ROUTED = "routed"
    PARSE_TYPED = "parse_typed"
    VALIDATING = "validating"
    VALIDATION_FAILED = "validation_failed"
    EXECUTING = "executing"
    HANDLER_ERROR = "handler_error"
    DONE = "done"


ALLOWED_TRANSITIONS: dict[RunPhase, set[RunPhase]] = {
    RunPhase.PARSE_ROUTING: {
        RunPhase.HELP_REQUESTED,
        RunPhase.VERSION_REQUESTED,
        RunPhase.ROUTED,
        RunPhase.HANDLER_ERROR,
    },
    RunPhase.ROUTED: {RunPhase.PARSE_TYPED, RunPhase.HANDLER_ERROR},
    RunPhase.PARSE_TYPED: {
        RunPhase.VALIDATING,
        RunPhase.VALIDATION_FAILED,
        RunPhase.HANDLER_ERROR,
    },
    RunPhase.VALIDATING: {
        RunPhase.EXECUTING,
        RunPhase.VALIDATION_FAILED,
        RunPhase.HANDLER_ERROR,
    },
    RunPhase.EXECUTING: {RunPhase.DONE, RunPhase.HANDLER_ERROR},
    RunPhase.HELP_REQUESTED: set(),
    RunPhase.VERSION_REQUESTED: set(),
    RunPhase.VALIDATION_FAILED: set(),
    RunPhase.HANDLER_ERROR: set(),
    RunPhase.DONE: set(),
}


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: RunPhase, to: RunPhase) -> RunPhase:
    if to not in ALLOWED_TRANSITIONS.get(current, set()):
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


@dataclass(slots=True)
class Invocation:
    """Book-keeping for a single `run` call."""

    root: str
    phase: RunPhase = RunPhase.PARSE_ROUTING
    path: list[str] = field(default_factory=list)

    def advance(self, to: RunPhase) -> None:
        self.phase = transition(current=self.phase, to=to)
        logger.debug(
            "Workflow phase",
            extra={"workflow": self.root, "phase": to.value, "path": self.path},
        )


@dataclass(frozen=True, slots=True)
class WorkflowMeta:
    name: str
    description: str
    version: str
    args: Mapping[str, ArgSpec]

    def to_json(self) -> dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "args": {
                key: spec.model_dump(mode="json", exclude_none=True)
                for key, spec in self.args.items()
            },
        }


def _normalize_args(args: Mapping[str, ArgSpec | Mapping[str, Any]] | None) -> dict[str, ArgSpec]:
    specs: dict[str, ArgSpec] = {}
    for key, value in (args or {}).items():
        spec = value if isinstance(value, ArgSpec) else ArgSpec.model_validate(value)
        if key in ("help", "version") or dest(key) == POSITIONALS:
            raise ValueError(f"--{key} is reserved and cannot be declared as an argument")
        if spec.alias == "h":
            raise ValueError(f"-h is reserved for help (argument --{key})")
        specs[key] = spec
    return specs


async def _call(func: Callable[..., Any], *args: Any) -> None:
    result = func(*args)
    if inspect.isawaitable(result):
        await result


class Workflow:
    """A command node in a tree of subflows.

    With `auto_start=True` and no running event loop, the constructor runs
    the tree before returning. A script whose loaders refer back to its own
    module-level workflow (`lambda: workflow`) must call `workflow.start()`
    after the assignment instead.
    """

    def __init__(
        self,
        *,
        name: str,
        description: str,
        version: str | None = None,
        args: Mapping[str, ArgSpec | Mapping[str, Any]] | None = None,
        subflows: Sequence[ChildRef] = (),
        examples: Sequence[tuple[str, str]] = (),
        notes: str | None = None,
        handler: Handler | None = None,
        auto_start: bool = False,
    ) -> None:
        if not name.strip() or name.startswith("-"):
            raise ValueError(f"Invalid workflow name: {name!r}")

        self.meta = WorkflowMeta(
            name=name,
            description=description,
            version=version or DEFAULT_VERSION,
            args=MappingProxyType(_normalize_args(args)),
        )
        self.subflows = SubflowTable(subflows)
        self.examples = tuple(examples)
        self.notes = notes
        self.handler = handler
        self.auto_task: asyncio.Task[RunPhase] | None = None

        if auto_start:
            self._auto_start()

    def __repr__(self) -> str:
        return f"Workflow(name={self.name!r}, version={self.version!r})"

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def description(self) -> str:
        return self.meta.description

    @property
    def version(self) -> str:
        return self.meta.version

    @property
    def args(self) -> Mapping[str, ArgSpec]:
        return self.meta.args

    def start(self, argv: Sequence[str] | None = None) -> RunPhase:
        """Run as the top-level program (blocking)."""

        return asyncio.run(self.run(argv))

    def _auto_start(self) -> None:
        # Inside a running loop the run is scheduled, so it begins once the
        # constructor has returned and the caller has bound the workflow.
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.start()
            return
        self.auto_task = loop.create_task(self.run())

    async def run(self, argv: Sequence[str] | None = None) -> RunPhase:
        """Resolve and execute a command-line invocation against this tree.

        Returns the terminal phase on success, help or version output.
        Missing or malformed arguments and handler errors are reported on
        stderr and end the process with exit code 1.
        """

        if argv is None:
            argv = sys.argv[1:]

        invocation = Invocation(root=self.name)
        try:
            await self._dispatch(list(argv), invocation)
        except Exception as e:
            logger.debug(
                "Workflow failed",
                exc_info=True,
                extra={"workflow": self.name, "phase": invocation.phase.value},
            )
            invocation.advance(RunPhase.HANDLER_ERROR)
            print(f"Error: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return invocation.phase

    async def execute(self, **args: Any) -> None:
        """Call the handler directly with pre-typed arguments.

        Parsing, defaults and required-argument validation are skipped on
        purpose: programmatic callers opt out of them.
        """

        if self.handler is None:
            return
        ctx = build_context(self, [self.name], [])
        await _call(self.handler, Namespace(**{"_": [], **args}), ctx)

    async def format_help(self, path: Sequence[str] | None = None, *, show_all: bool = False) -> str:
        lines = await render_help(self, path or [self.name], HelpOptions(show_all=show_all))
        return "\n".join(lines)

    async def print_help(self, path: Sequence[str] | None = None, *, show_all: bool = False) -> None:
        print(await self.format_help(path, show_all=show_all))

    async def _dispatch(self, argv: list[str], invocation: Invocation) -> None:
        routing = parse_argv(argv)
        if routing.options.get("version") is True:
            print(self.version)
            invocation.advance(RunPhase.VERSION_REQUESTED)
            return

        route = await walk_path(self, routing.positionals)
        leaf = route.leaf
        invocation.path = route.path

        help_value = routing.options.get("help", routing.options.get("h"))
        if help_value is not None and help_value is not False:
            await leaf.print_help(route.path, show_all=help_value == "all")
            invocation.advance(RunPhase.HELP_REQUESTED)
            return

        invocation.advance(RunPhase.ROUTED)
        invocation.advance(RunPhase.PARSE_TYPED)
        typed_argv = rebuild_argv(route.remaining, routing, exclude=RESERVED_KEYS)
        try:
            args = bind_args(parse_argv(typed_argv, leaf.args), leaf.args)
        except ArgumentValueError as e:
            self._fail_validation(invocation, str(e))

        invocation.advance(RunPhase.VALIDATING)
        missing = find_missing_required(leaf.args, args)
        if missing is not None:
            self._fail_validation(invocation, f"Missing required argument: --{missing}")

        invocation.advance(RunPhase.EXECUTING)
        if leaf.handler is None:
            await leaf.print_help(route.path)
        else:
            ctx = build_context(leaf, route.path, route.remaining)
            await _call(leaf.handler, args, ctx)
        invocation.advance(RunPhase.DONE)

    def _fail_validation(self, invocation: Invocation, message: str) -> NoReturn:
        invocation.advance(RunPhase.VALIDATION_FAILED)
        print(f"Error: {message}", file=sys.stderr)
        print("Run with --help for usage information.", file=sys.stderr)
        raise SystemExit(1)


def create_router(
    *,
    name: str,
    description: str,
    subflows: Sequence[ChildRef],
    version: str | None = None,
    examples: Sequence[tuple[str, str]] = (),
) -> Workflow:
    """A handler-less workflow that only delegates to its subflows."""

    return Workflow(
        name=name,
        description=description,
        version=version,
        subflows=subflows,
        examples=examples,
    )
