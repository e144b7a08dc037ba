import argparse
import asyncio
from typing import Optional, Sequence

from .cache import InMemoryPlanCache
from .client import AgentClient
from .logger import logger
from .notify import LogNotifier
from .progress.types import FinishOutcome, TaskKind
from .render import build_history, error_detail, format_metrics, render_history
from .service import MonitorService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plan-monitor",
        description="Follow and cancel backup and restore tasks of a backup agent.",
    )
    parser.add_argument("--api-url", type=str, default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("watch", "follow a running task until it finishes"),
        ("history", "print the event history of a task once"),
        ("cancel", "cancel a running task"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("kind", type=TaskKind, choices=list(TaskKind))
        sub.add_argument("task_id", type=str)
        sub.add_argument("--plan", dest="plan_id", type=str, required=True)
        if name != "cancel":
            sub.add_argument("--source-id", type=str, default="")
            sub.add_argument("--source-type", type=str, default="main")
        if name == "history":
            sub.add_argument(
                "--error",
                dest="error_index",
                type=int,
                default=None,
                metavar="N",
                help="print the error of event N instead of the history",
            )

    return parser


async def watch(service: MonitorService, args: argparse.Namespace) -> int:
    last_line = None
    outcome = FinishOutcome.UNKNOWN
    async for snapshot in service.watch(
        args.kind, args.task_id, args.plan_id, args.source_id, args.source_type
    ):
        line = f"{snapshot.message}\n  {format_metrics(snapshot.metrics, args.kind)}"
        if line != last_line:
            print(line, flush=True)
            last_line = line
        if snapshot.finished:
            outcome = snapshot.outcome
    return 0 if outcome == FinishOutcome.COMPLETED else 1


async def history(service: MonitorService, args: argparse.Namespace) -> int:
    snapshot = await service.history(
        args.kind, args.task_id, args.plan_id, args.source_id, args.source_type
    )
    if snapshot is None:
        return 1
    if args.error_index is not None:
        print(error_detail(snapshot.progress, args.error_index))
        return 0
    print(
        render_history(
            build_history(
                snapshot.progress,
                args.kind,
                task_id=args.task_id,
                in_progress=not snapshot.finished,
            )
        )
    )
    return 0


async def cancel(service: MonitorService, args: argparse.Namespace) -> int:
    result = await service.cancel(args.kind, args.task_id, args.plan_id)
    return 0 if result.success else 1


COMMANDS = {"watch": watch, "history": history, "cancel": cancel}


async def run(args: argparse.Namespace) -> int:
    async with AgentClient(base_url=args.api_url) as client:
        service = MonitorService(client, InMemoryPlanCache(), LogNotifier())
        return await COMMANDS[args.command](service, args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info(f"Stopped {args.command} of {args.kind.value} {args.task_id}")
        return 130
