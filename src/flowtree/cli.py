"""CLI entrypoint for the `flowtree` launcher.

Runs, lists and describes workflows installed under `FLOWTREE_HOME` or
importable from the current environment.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from flowtree import __version__
from flowtree.config import FlowtreeSettings
from flowtree.loader import WorkflowNotFoundError, discover_workflows, load_workflow
from flowtree.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowtree",
        description="Run nested command-tree workflows",
    )
    parser.add_argument("--version", action="version", version=f"flowtree {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser(
        "run",
        help="Run a workflow; remaining arguments are routed through its subflow tree",
    )
    run.add_argument(
        "target",
        help="Installed workflow name, or an import path such as 'package.module:workflow'",
    )
    run.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the workflow")

    list_cmd = subparsers.add_parser("list", help="List installed workflows")
    list_cmd.add_argument("--json", action="store_true", help="Output workflow metadata as JSON")

    describe = subparsers.add_parser(
        "describe",
        help="Print a workflow's metadata (name, version, arguments) as JSON",
    )
    describe.add_argument("target", help="Installed workflow name or import path")

    subparsers.add_parser("env", help="Show the FLOWTREE_HOME directory")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = FlowtreeSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command == "run":
            workflow = load_workflow(args.target, workflows_dir=settings.workflows_dir)
            phase = asyncio.run(workflow.run(args.args))
            logger.info("Workflow finished", extra={"workflow": workflow.name, "phase": phase.value})
            return 0

        if args.command == "list":
            names = discover_workflows(settings.workflows_dir)
            if args.json:
                metas = [
                    load_workflow(name, workflows_dir=settings.workflows_dir).meta.to_json()
                    for name in names
                ]
                print(json.dumps(metas, indent=2, ensure_ascii=False))
                return 0

            if not names:
                print(f"No workflows installed in {settings.workflows_dir}")
                return 0
            print("Available workflows:\n")
            for name in names:
                workflow = load_workflow(name, workflows_dir=settings.workflows_dir)
                print(f"  {name}  {workflow.description}")
            return 0

        if args.command == "describe":
            workflow = load_workflow(args.target, workflows_dir=settings.workflows_dir)
            print(json.dumps(workflow.meta.to_json(), indent=2, ensure_ascii=False))
            return 0

        if args.command == "env":
            print(f"FLOWTREE_HOME={settings.home}")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except WorkflowNotFoundError as e:
        print(str(e), file=sys.stderr)
        print("Run 'flowtree list' to see available workflows.", file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
