"""Command-line interface for flowstream."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from flowstream.config import ClientConfig, load_config
from flowstream.errors import ConfigError, EngineRequestError, EventParseError
from flowstream.logging import get_logger, set_verbosity
from flowstream.export import snapshot_to_dict
from flowstream.model.state import FlowState
from flowstream.protocol.events import parse_event
from flowstream.session import FlowSession
from flowstream.store import StateStore
from flowstream.transport.http import StartRequest
from flowstream.types.base import RunStatus
from flowstream.views import status_summary

logger = get_logger(__name__)


def _format_table(
    headers: List[str],
    rows: List[List[Any]],
    min_width: int = 8,
) -> str:
    """Format data as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width

    Returns:
        Formatted table string
    """
    if not rows:
        return ""

    all_data = [headers] + [[str(item) for item in row] for row in rows]
    col_widths = []
    for col_idx in range(len(headers)):
        max_width = max(len(str(row[col_idx])) for row in all_data)
        col_widths.append(max(max_width, min_width))

    def format_row(row_data: List[Any]) -> str:
        return "   " + " | ".join(
            f"{str(item):<{col_widths[i]}}" for i, item in enumerate(row_data)
        )

    lines = [format_row(headers)]
    lines.append("   " + "-+-".join("-" * width for width in col_widths))
    for row in all_data[1:]:
        lines.append(format_row(row))
    return "\n".join(lines)


def _format_status_line(state: FlowState) -> str:
    summary = status_summary(state)
    max_flow = "-" if summary.max_flow is None else summary.max_flow
    return (
        f"[{summary.status:<10}] it={summary.iteration} "
        f"flow={summary.current_flow}/{max_flow} "
        f"visited={summary.visited_count}/{summary.total_nodes} "
        f"| {summary.last_event}"
    )


def _print_summary(state: FlowState) -> None:
    summary = status_summary(state)
    traversal = state.traversal
    rows = [
        ["Status", summary.status],
        ["Phase", summary.phase],
        ["Iteration", summary.iteration],
        ["Current flow", summary.current_flow],
        ["Max flow", "-" if summary.max_flow is None else summary.max_flow],
        ["Visited nodes", f"{summary.visited_count} / {summary.total_nodes}"],
        ["Parallel paths", len(traversal.parallel_paths)],
        ["Rejected paths", len(traversal.rejected_paths)],
        ["Last event", summary.last_event],
    ]
    if state.execution.execution_time_ms is not None:
        rows.append(["Execution time", f"{state.execution.execution_time_ms}ms"])
    if state.execution.error:
        rows.append(["Error", state.execution.error])
    print(_format_table(["Field", "Value"], rows))


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def _resolve_config(args: argparse.Namespace) -> ClientConfig:
    config = load_config(args.config) if args.config else ClientConfig()
    if args.base_url:
        config.base_url = args.base_url
    if args.ws_url:
        config.ws_url = args.ws_url
    return config


def _replay(path: Path, json_out: Optional[Path]) -> int:
    """Fold a recorded JSON-lines event log through the reducer."""
    store = StateStore()
    applied = dropped = 0
    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                event = parse_event(line)
            except EventParseError as exc:
                logger.warning("%s:%d: %s", path, lineno, exc)
                dropped += 1
                continue
            store.dispatch(event)
            applied += 1

    print(f"Replayed {applied} event(s) from {path} ({dropped} dropped)")
    _print_summary(store.state)
    if json_out is not None:
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(
            json.dumps(snapshot_to_dict(store.state), indent=2), encoding="utf-8"
        )
        print(f"Snapshot written to {json_out}")
    return 0


async def _show_options(config: ClientConfig) -> int:
    async with FlowSession(config) as session:
        options = await session.fetch_options()
    rows = [
        ["Algorithms", ", ".join(options.algorithms) or "-"],
        ["Graph types", ", ".join(options.graph_types) or "-"],
        ["Predefined graphs", ", ".join(options.predefined_graphs) or "-"],
    ]
    print(_format_table(["Option", "Values"], rows))
    return 0


async def _watch(
    config: ClientConfig, request: Optional[StartRequest], timeout: Optional[float]
) -> int:
    finished = asyncio.Event()
    last_line = [""]

    def on_change(state: FlowState) -> None:
        line = _format_status_line(state)
        if line != last_line[0]:
            print(line, flush=True)
            last_line[0] = line
        if state.execution.status in (RunStatus.COMPLETE, RunStatus.ERROR):
            finished.set()

    async with FlowSession(config) as session:
        session.store.subscribe(on_change)
        if not await session.connect():
            print(f"Could not connect to {config.ws_url}; retrying in background")
        if request is not None:
            result = await session.start(request)
            if not result.ok:
                print(result.detail, file=sys.stderr)
                return 1
        try:
            await asyncio.wait_for(finished.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            print("Timed out waiting for the run to finish", file=sys.stderr)
            await session.stop()
            return 1
        finally:
            _print_summary(session.store.state)
    return 0 if session.store.state.execution.status is RunStatus.COMPLETE else 1


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``flowstream`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="flowstream",
        description="Follow a remote max-flow computation from its event stream.",
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{watch,config,replay}",
        help="Available commands",
    )

    watch_parser = subparsers.add_parser(
        "watch", help="Connect to the engine and print progress"
    )
    watch_parser.add_argument(
        "--start",
        action="store_true",
        help="Send a start request after connecting",
    )
    watch_parser.add_argument("--algorithm", default="dinic", help="Algorithm name")
    watch_parser.add_argument(
        "--graph-type", default="custom", help="Graph type understood by the engine"
    )
    watch_parser.add_argument(
        "--graph-file", default="SG.json", help="Predefined graph file name"
    )
    watch_parser.add_argument("--source", type=int, default=0, help="Source node id")
    watch_parser.add_argument("--sink", type=int, default=None, help="Sink node id")
    watch_parser.add_argument(
        "--speed", type=_positive_float, default=1.0, help="Playback speed multiplier"
    )
    watch_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up (and request a stop) after this many seconds",
    )

    config_parser = subparsers.add_parser(
        "config", help="List algorithms and graphs offered by the engine"
    )

    for p in (watch_parser, config_parser):
        p.add_argument(
            "--config",
            "-c",
            type=Path,
            default=None,
            help="Client config YAML",
        )
        p.add_argument("--base-url", default=None, help="Engine HTTP API root")
        p.add_argument("--ws-url", default=None, help="Engine event stream URL")

    replay_parser = subparsers.add_parser(
        "replay", help="Fold a recorded JSON-lines event log offline"
    )
    replay_parser.add_argument("events", type=Path, help="Path to event log")
    replay_parser.add_argument(
        "--json",
        dest="json_out",
        type=Path,
        default=None,
        help="Write the final snapshot as JSON to this file",
    )

    effective_args = sys.argv[1:] if argv is None else argv

    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if set_verbosity(args.verbose, args.quiet) == logging.DEBUG:
        logger.debug("Debug logging enabled")

    try:
        if args.command == "replay":
            code = _replay(args.events, args.json_out)
        else:
            config = _resolve_config(args)
            if args.command == "config":
                code = asyncio.run(_show_options(config))
            else:
                request = None
                if args.start:
                    request = StartRequest(
                        source=args.source,
                        sink=args.sink,
                        algorithm=args.algorithm,
                        graph_type=args.graph_type,
                        graph_file=args.graph_file,
                        speed=args.speed,
                    )
                code = asyncio.run(_watch(config, request, args.timeout))
    except (ConfigError, EngineRequestError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        raise SystemExit(130) from None

    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
