import pytest

from schedsim.algorithms import next_arrival, select, make_jobs, schedule_fcfs
from schedsim.errors import SchedulerInvariantError
from schedsim.metrics import compute_system_metrics, merge_segments, summarize
from schedsim.models import ExecutionSegment, Policy, Process, ScheduleResult


def test_merge_adjacent_segments_of_same_process():
    segments = [
        ExecutionSegment("B", 3, 5),
        ExecutionSegment("A", 0, 2),
        ExecutionSegment("A", 2, 3),
        ExecutionSegment("B", 5, 6),
        ExecutionSegment("B", 8, 9),
    ]
    merged = merge_segments(segments)
    assert [(s.pid, s.start_time, s.end_time) for s in merged] == [
        ("A", 0, 3),
        ("B", 3, 6),
        ("B", 8, 9),
    ]
    # inputs are not modified
    assert segments[1].end_time == 2


def test_system_metrics_ignore_leading_idle_time():
    res = schedule_fcfs(
        [
            Process("P1", arrival_time=2, burst_time=2),
            Process("P2", arrival_time=6, burst_time=2),
        ]
    )
    system = res.system
    assert system.cpu_busy_time == 4
    assert system.makespan == 6
    assert system.cpu_utilization == pytest.approx(4 / 6)
    assert system.throughput == pytest.approx(2 / 6)


def test_summary_and_metrics_for_empty_result():
    avg = summarize([])
    assert avg.avg_waiting_time == 0.0
    system = compute_system_metrics(ScheduleResult(algorithm="FCFS", policy=Policy.FCFS, quantum=None))
    assert system.makespan == 0
    assert system.cpu_utilization == 0.0


def test_starvation_counts_long_waits():
    res = schedule_fcfs(
        [
            Process("A", arrival_time=0, burst_time=10),
            Process("B", arrival_time=0, burst_time=1),
            Process("C", arrival_time=0, burst_time=1),
        ]
    )
    # waits are 0, 10, 11; average 7, nothing above 14
    assert res.system.starvation_count == 0
    assert res.metrics.avg_waiting_time == pytest.approx(7.0)


def test_idle_advance_without_future_arrival_is_a_bug():
    jobs = make_jobs([Process("A", arrival_time=0, burst_time=1)])
    assert next_arrival(jobs, -1) == 0
    with pytest.raises(SchedulerInvariantError):
        next_arrival(jobs, 0)
    with pytest.raises(SchedulerInvariantError):
        select([], key=lambda j: j.remaining)
