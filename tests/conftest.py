"""Test configuration and fixtures."""

from __future__ import annotations

from argparse import Namespace
from dataclasses import dataclass, field

import pytest

from flowtree.workflow import ArgSpec, Workflow, WorkflowContext


@dataclass
class HandlerRecorder:
    """Collects (args, context) pairs passed to handlers."""

    calls: list[tuple[Namespace, WorkflowContext]] = field(default_factory=list)

    def __call__(self, args: Namespace, ctx: WorkflowContext) -> None:
        self.calls.append((args, ctx))

    @property
    def last(self) -> tuple[Namespace, WorkflowContext]:
        assert self.calls, "handler was never invoked"
        return self.calls[-1]


@pytest.fixture
def recorder() -> HandlerRecorder:
    """Provide a fresh handler recorder."""
    return HandlerRecorder()


@pytest.fixture
def sub_recorder() -> HandlerRecorder:
    """Provide a second recorder for child workflows."""
    return HandlerRecorder()


@pytest.fixture
def tree(recorder: HandlerRecorder, sub_recorder: HandlerRecorder) -> Workflow:
    """Provide `main -> sub` where `sub` takes a numeric --count."""
    sub = Workflow(
        name="sub",
        description="A subflow",
        args={"count": ArgSpec(kind="number", alias="c", default=1, description="How many")},
        handler=sub_recorder,
    )
    return Workflow(
        name="main",
        description="Main workflow",
        version="2.0.0",
        args={"verbose": ArgSpec(kind="boolean", description="Chatty output")},
        subflows=[sub],
        handler=recorder,
    )
