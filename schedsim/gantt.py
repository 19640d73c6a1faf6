"""
Gantt chart rendering for schedule timelines.

Each time unit is ``scale`` characters wide. Idle CPU time is drawn as a gap,
and back-to-back segments of one process are drawn as a single bar. On MLQ
runs, bars are coloured by queue and a queue row is added under the labels.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .metrics import merge_segments
from .models import ExecutionSegment

PALETTE = ("red", "green", "yellow", "blue", "magenta", "cyan")

# (start, end, segment); segment is None for an idle gap.
Block = Tuple[int, int, Optional[ExecutionSegment]]


def _blocks(segments: List[ExecutionSegment]) -> Iterator[Block]:
    now = 0
    for seg in merge_segments(segments):
        if seg.start_time > now:
            yield now, seg.start_time, None
        yield seg.start_time, seg.end_time, seg
        now = seg.end_time


def _has_queues(segments: List[ExecutionSegment]) -> bool:
    return any(seg.queue_priority is not None for seg in segments)


def time_axis(segments: List[ExecutionSegment], scale: int = 1, offset: int = 0) -> str:
    """
    Time marks placed under the column where each bar or gap starts, plus the
    final completion time. ``offset`` is the column where time 0 is drawn.
    A mark that would touch the previous one is dropped.
    """
    bounds = sorted({b for start, end, _ in _blocks(segments) for b in (start, end)})
    axis = ""
    for t in bounds:
        col = offset + t * scale
        if axis and col <= len(axis):
            continue
        axis = axis.ljust(col) + str(t)
    return axis


def render_gantt(segments: List[ExecutionSegment], scale: int = 1) -> str:
    """
    Plain-text Gantt chart.
    """
    if not segments:
        return "(no execution)"

    show_queue = _has_queues(segments)
    bar = ""
    labels = ""
    queues = ""
    for start, end, seg in _blocks(segments):
        width = (end - start) * scale
        if seg is None:
            bar += "." * width
            labels += " " * width
            queues += " " * width
            continue
        bar += "=" * width
        labels += seg.pid[:width].center(width)
        if show_queue:
            queues += f"Q{seg.queue_priority}"[:width].center(width)

    lines = ["Gantt Chart:", f"|{bar}|", f" {labels}"]
    if show_queue:
        lines.append(f" {queues}")
    lines.append(time_axis(segments, scale, offset=1))
    return "\n".join(lines)


def build_rich_gantt(segments: List[ExecutionSegment], scale: int = 2) -> tuple[Panel, str]:
    """
    Build a Rich Panel containing a colored Gantt chart and the matching time axis.
    """
    if not segments:
        return Panel("No execution", title="Gantt Chart"), ""

    show_queue = _has_queues(segments)
    colors: Dict[object, str] = {}

    def color_for(seg: ExecutionSegment) -> str:
        key = seg.queue_priority if show_queue else seg.pid
        if key not in colors:
            colors[key] = PALETTE[len(colors) % len(PALETTE)]
        return colors[key]

    bar = Text()
    labels = Text()
    queues = Text()
    for start, end, seg in _blocks(segments):
        width = (end - start) * scale
        if seg is None:
            bar.append("·" * width, style="dim")
            labels.append(" " * width)
            queues.append(" " * width)
            continue
        bar.append(" " * width, style=f"on {color_for(seg)}")
        labels.append(seg.pid[:width].center(width), style="bold")
        if show_queue:
            queues.append(f"Q{seg.queue_priority}"[:width].center(width), style=color_for(seg))

    grid = Table.grid(padding=(0, 0))
    grid.add_row(bar)
    grid.add_row(labels)
    if show_queue:
        grid.add_row(queues)

    title = "Gantt Chart (by queue)" if show_queue else "Gantt Chart"
    return Panel.fit(grid, title=title), time_axis(segments, scale, offset=2)
