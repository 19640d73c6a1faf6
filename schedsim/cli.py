from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .algorithms import ALGORITHMS, run_algorithm
from .gantt import build_rich_gantt, render_gantt
from .mlq import run_mlq
from .models import Policy, ScheduleResult
from .workload_io import dump_result, load_queues, load_workload

logger = logging.getLogger(__name__)

DEFAULT_COMPARE = [p.value for p in ALGORITHMS]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedsim",
        description="CPU scheduling simulator (FCFS, SJF, Priority, RR, SRTF, MLQ).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log engine decisions (-v for a summary, -vv for every dispatch).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scheduling algorithm on a workload file.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help="Algorithm to use (fcfs, sjf, priority, rr, srtf).",
    )
    run_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    run_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=None,
        help="Time quantum for round-robin (ignored by the other algorithms).",
    )
    _add_output_args(run_parser)

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple algorithms on the same workload and compare average metrics.",
    )
    compare_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=DEFAULT_COMPARE,
        help=f"Algorithms to compare (default: {' '.join(DEFAULT_COMPARE)}).",
    )
    compare_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=2,
        help="Time quantum used for RR when included (default: 2).",
    )

    mlq_parser = subparsers.add_parser(
        "mlq",
        help="Run a multi-level queue simulation from a JSON queue file.",
    )
    mlq_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON file with a 'queues' list.",
    )
    mlq_parser.add_argument(
        "--relaxed-idle-jump",
        action="store_true",
        help=(
            "Let a lower queue run while the highest non-empty queue is still "
            "waiting for its next arrival."
        ),
    )
    _add_output_args(mlq_parser)

    return parser


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of tables.",
    )
    parser.add_argument(
        "--plain",
        action="store_true",
        help="Draw the Gantt chart as plain text.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Abort if the simulation loop runs more than this many steps.",
    )


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _print_result(result: ScheduleResult, console: Console, plain: bool = False) -> None:
    console.print(f"[bold]Algorithm:[/bold] {result.algorithm}")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum}")

    console.print()

    if plain:
        console.print(render_gantt(result.timeline), markup=False, highlight=False)
    else:
        panel, time_marks = build_rich_gantt(result.timeline)
        console.print(panel)
        if time_marks:
            console.print(time_marks)

    console.print()

    show_queue = result.policy is Policy.MLQ
    headers = [
        "PID",
        "Arrive",
        "Burst",
        "Start",
        "Complete",
        "Wait",
        "Turnaround",
        "Response",
        "Switches",
        "Priority",
    ]
    if show_queue:
        headers.append("Queue")

    proc_table = Table(title="Per-process metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "Priority", "Queue"} else "right"
        proc_table.add_column(h, justify=justify)

    for e in result.schedule:
        row = [
            e.pid,
            str(e.arrival_time),
            str(e.burst_time),
            str(e.start_time),
            str(e.completion_time),
            str(e.waiting_time),
            str(e.turnaround_time),
            str(e.response_time),
            str(e.context_switches),
            "" if e.priority is None else str(e.priority),
        ]
        if show_queue:
            row.append("" if e.queue_priority is None else str(e.queue_priority))
        proc_table.add_row(*row)

    console.print(proc_table)
    console.print()

    if result.metrics and result.system:
        avg = result.metrics
        system = result.system
        sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
        sys_table.add_column("Metric")
        sys_table.add_column("Value", justify="right")

        sys_table.add_row("Avg waiting", f"{avg.avg_waiting_time:.2f}")
        sys_table.add_row("Avg turnaround", f"{avg.avg_turnaround_time:.2f}")
        sys_table.add_row("Avg response", f"{avg.avg_response_time:.2f}")
        sys_table.add_row("Makespan", str(system.makespan))
        sys_table.add_row("Throughput (proc/time)", f"{system.throughput:.3f}")
        sys_table.add_row("CPU utilization", f"{system.cpu_utilization*100:.1f}%")
        sys_table.add_row("Starvation count", str(system.starvation_count))

        console.print(sys_table)


def _emit(result: ScheduleResult, args: argparse.Namespace, console: Console) -> None:
    if args.json:
        print(dump_result(result))
    else:
        _print_result(result, console, plain=args.plain)


def _run_compare(workload_path: Path, algorithms: List[str], quantum: int, console: Console) -> None:
    """
    Run each algorithm on the same workload and print the summary table.
    """
    processes = load_workload(workload_path)

    summary_table = Table(title=f"Algorithm comparison: {workload_path}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")
    summary_table.add_column("CPU util.", justify="right")

    for alg in algorithms:
        try:
            q = quantum if Policy.parse(alg) is Policy.RR else None
            result = run_algorithm(alg, processes, quantum=q)
        except ValueError as exc:
            # Unknown or queue-only policy, or e.g. priority without priorities.
            logger.warning("Skipping %s: %s", alg, exc)
            summary_table.add_row(alg, "", "-", "-", "-", "-")
            continue
        summary_table.add_row(
            result.algorithm,
            "" if result.quantum is None else str(result.quantum),
            f"{result.metrics.avg_waiting_time:.2f}",
            f"{result.metrics.avg_turnaround_time:.2f}",
            f"{result.metrics.avg_response_time:.2f}",
            f"{result.system.cpu_utilization*100:.1f}%",
        )

    console.print(summary_table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    console = Console()

    try:
        if args.command == "run":
            processes = load_workload(Path(args.workload))
            result = run_algorithm(
                args.algorithm, processes, quantum=args.quantum, max_steps=args.max_steps
            )
            _emit(result, args, console)
            return 0

        if args.command == "compare":
            _run_compare(Path(args.workload), args.algorithms, args.quantum, console)
            return 0

        if args.command == "mlq":
            queues = load_queues(Path(args.workload))
            result = run_mlq(
                queues,
                strict_idle_jump=not args.relaxed_idle_jump,
                max_steps=args.max_steps,
            )
            _emit(result, args, console)
            return 0
    except (ValueError, OSError) as exc:
        # Bad input or unreadable file; invariant errors propagate.
        logger.debug("Run aborted", exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        return 1

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
