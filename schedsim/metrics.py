from __future__ import annotations

from typing import List, Optional

from .models import (
    AverageMetrics,
    ExecutionSegment,
    Process,
    ScheduleEntry,
    ScheduleResult,
    SystemMetrics,
)


def merge_segments(segments: List[ExecutionSegment]) -> List[ExecutionSegment]:
    """
    Sort segments by start time and fold back-to-back runs of the same
    process into one. Inputs are left untouched.
    """
    merged: List[ExecutionSegment] = []
    for seg in sorted(segments, key=lambda s: s.start_time):
        last = merged[-1] if merged else None
        if last is not None and last.pid == seg.pid and last.end_time == seg.start_time:
            last.end_time = seg.end_time
        else:
            merged.append(
                ExecutionSegment(
                    pid=seg.pid,
                    start_time=seg.start_time,
                    end_time=seg.end_time,
                    queue_priority=seg.queue_priority,
                )
            )
    return merged


def build_entry(
    process: Process,
    start_time: int,
    completion_time: int,
    segments: List[ExecutionSegment],
    context_switches: int = 0,
    queue_priority: Optional[int] = None,
) -> ScheduleEntry:
    """
    Derive turnaround, waiting and response time for one finished process.
    """
    turnaround_time = completion_time - process.arrival_time
    return ScheduleEntry(
        pid=process.pid,
        arrival_time=process.arrival_time,
        burst_time=process.burst_time,
        start_time=start_time,
        completion_time=completion_time,
        waiting_time=turnaround_time - process.burst_time,
        turnaround_time=turnaround_time,
        response_time=start_time - process.arrival_time,
        context_switches=context_switches,
        priority=process.priority,
        queue_priority=queue_priority,
        segments=merge_segments(segments),
    )


def summarize(schedule: List[ScheduleEntry]) -> AverageMetrics:
    """
    Return averages of the key per-process metrics for quick comparison.
    """
    if not schedule:
        return AverageMetrics(avg_turnaround_time=0.0, avg_waiting_time=0.0, avg_response_time=0.0)

    n = len(schedule)
    return AverageMetrics(
        avg_turnaround_time=sum(e.turnaround_time for e in schedule) / n,
        avg_waiting_time=sum(e.waiting_time for e in schedule) / n,
        avg_response_time=sum(e.response_time for e in schedule) / n,
    )


def compute_system_metrics(result: ScheduleResult) -> SystemMetrics:
    """
    Compute throughput and CPU utilization given populated schedule entries
    and timeline segments. Makespan runs from the first dispatch to the last
    completion, so a leading idle gap does not count against utilization.
    """
    if not result.schedule or not result.timeline:
        return SystemMetrics(cpu_busy_time=0, makespan=0, throughput=0.0, cpu_utilization=0.0)

    first_dispatch = min(seg.start_time for seg in result.timeline)
    makespan = max(e.completion_time for e in result.schedule) - first_dispatch
    cpu_busy_time = sum(seg.duration for seg in result.timeline)

    throughput = len(result.schedule) / makespan if makespan > 0 else 0.0
    cpu_utilization = cpu_busy_time / makespan if makespan > 0 else 0.0

    # Count processes whose waiting time is more than 2x the average waiting time.
    avg_wait = sum(e.waiting_time for e in result.schedule) / len(result.schedule)
    starvation_count = sum(1 for e in result.schedule if e.waiting_time > 2 * avg_wait)

    return SystemMetrics(
        cpu_busy_time=cpu_busy_time,
        makespan=makespan,
        throughput=throughput,
        cpu_utilization=cpu_utilization,
        starvation_count=starvation_count,
    )


def finalize(result: ScheduleResult) -> ScheduleResult:
    """Attach averages and system metrics to a freshly built result."""
    result.metrics = summarize(result.schedule)
    result.system = compute_system_metrics(result)
    return result
