from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterable, List, Optional

from .errors import SchedulerInvariantError, UnsupportedPolicyError, WorkloadError
from .metrics import build_entry, finalize
from .models import ExecutionSegment, Policy, Process, ScheduleEntry, ScheduleResult
from .validation import validate_processes

logger = logging.getLogger(__name__)


ALGORITHM_NAMES = {
    Policy.FCFS: "FCFS",
    Policy.SJF: "SJF (non-preemptive)",
    Policy.PRIORITY: "Priority (non-preemptive)",
    Policy.RR: "Round Robin",
    Policy.SRTF: "SRTF",
    Policy.MLQ: "MLQ",
}


@dataclass(eq=False)
class Job:
    """
    Private, per-run simulation state wrapped around one process.
    """

    process: Process
    remaining: int
    first_start: Optional[int] = None
    completion_time: Optional[int] = None
    context_switches: int = 0
    segments: List[ExecutionSegment] = field(default_factory=list)

    @property
    def pid(self) -> str:
        return self.process.pid

    @property
    def arrival_time(self) -> int:
        return self.process.arrival_time


def make_jobs(processes: Iterable[Process]) -> List[Job]:
    # Deep copy so a run never aliases the caller's records.
    return [Job(process=p, remaining=p.burst_time) for p in copy.deepcopy(list(processes))]


def step_budget(jobs: List[Job]) -> int:
    """
    Upper bound on loop iterations for any policy: every iteration either
    dispatches at least one time unit or jumps over an idle gap.
    """
    return 2 * (len(jobs) + sum(j.process.burst_time for j in jobs)) + 1


class StepGuard:
    def __init__(self, budget: int, algorithm: str) -> None:
        self.budget = budget
        self.algorithm = algorithm
        self.steps = 0

    @classmethod
    def for_jobs(cls, jobs: List[Job], algorithm: str, max_steps: Optional[int] = None) -> "StepGuard":
        budget = max_steps if max_steps is not None else step_budget(jobs)
        return cls(budget, algorithm)

    def tick(self) -> None:
        self.steps += 1
        if self.steps > self.budget:
            raise SchedulerInvariantError(
                f"{self.algorithm}: exceeded {self.budget} simulation steps without finishing"
            )


def next_arrival(jobs: Iterable[Job], now: int) -> int:
    """
    Next simulated time at which one of ``jobs`` becomes ready. Only called
    when nothing is ready, so there must be a future arrival.
    """
    future = [j.arrival_time for j in jobs if j.arrival_time > now]
    if not future:
        raise SchedulerInvariantError(f"Idle advance at t={now} with no future arrival")
    return min(future)


def select(ready: List[Job], key: Callable[[Job], int]) -> Job:
    # min() keeps the first of equal keys, which is the documented tie-break.
    if not ready:
        raise SchedulerInvariantError("Selection from an empty ready set")
    return min(ready, key=key)


def run_slice(
    job: Job,
    now: int,
    length: int,
    timeline: List[ExecutionSegment],
    queue_priority: Optional[int] = None,
) -> int:
    """
    Give ``job`` the CPU for ``length`` units starting at ``now``. Returns the
    new current time.
    """
    if length <= 0 or length > job.remaining:
        raise SchedulerInvariantError(
            f"Invalid slice of {length} for {job.pid} with {job.remaining} remaining"
        )

    segment = ExecutionSegment(
        pid=job.pid,
        start_time=now,
        end_time=now + length,
        queue_priority=queue_priority,
    )
    timeline.append(segment)
    job.segments.append(segment)
    if job.first_start is None:
        job.first_start = now
    job.remaining -= length
    logger.debug("t=%d: run %s for %d (remaining %d)", now, job.pid, length, job.remaining)
    return now + length


def admit_arrivals(backlog: Deque[Job], ready: Deque[Job], now: int) -> None:
    """Move arrived jobs from the arrival-ordered backlog to the ready queue."""
    while backlog and backlog[0].arrival_time <= now:
        ready.append(backlog.popleft())


def finish(job: Job, now: int, queue_priority: Optional[int] = None) -> ScheduleEntry:
    if job.remaining != 0:
        raise SchedulerInvariantError(f"{job.pid} finished with {job.remaining} remaining")
    job.completion_time = now
    return build_entry(
        job.process,
        start_time=job.first_start,
        completion_time=now,
        segments=job.segments,
        context_switches=job.context_switches,
        queue_priority=queue_priority,
    )


# Ordering key for each non-preemptive policy. Jobs in these policies never
# run partially, so burst time equals remaining time at selection.
SELECTION_KEYS: Dict[Policy, Callable[[Job], int]] = {
    Policy.FCFS: lambda j: j.arrival_time,
    Policy.SJF: lambda j: j.process.burst_time,
    Policy.PRIORITY: lambda j: j.process.priority,
}


def build_result(
    policy: Policy,
    quantum: Optional[int],
    schedule: List[ScheduleEntry],
    timeline: List[ExecutionSegment],
) -> ScheduleResult:
    result = ScheduleResult(
        algorithm=ALGORITHM_NAMES[policy],
        policy=policy,
        quantum=quantum,
        schedule=schedule,
        timeline=timeline,
    )
    finalize(result)
    logger.info(
        "%s scheduled %d processes in %d segments, makespan %d",
        result.algorithm,
        len(schedule),
        len(timeline),
        result.system.makespan,
    )
    return result


def _run_non_preemptive(
    policy: Policy,
    processes: List[Process],
    quantum: Optional[int],
    max_steps: Optional[int],
) -> ScheduleResult:
    """
    Shared loop for FCFS, SJF and Priority: pick one ready process by the
    policy key and run it to completion, jumping over idle gaps.
    """
    jobs = make_jobs(processes)
    if policy is Policy.FCFS:
        jobs.sort(key=lambda j: j.arrival_time)

    key = SELECTION_KEYS[policy]
    guard = StepGuard.for_jobs(jobs, ALGORITHM_NAMES[policy], max_steps)
    pool = list(jobs)

    time = 0
    timeline: List[ExecutionSegment] = []
    schedule: List[ScheduleEntry] = []

    while pool:
        guard.tick()
        ready = [j for j in pool if j.arrival_time <= time]
        if not ready:
            time = next_arrival(pool, time)
            logger.debug("CPU idle, advancing to t=%d", time)
            continue

        job = select(ready, key)
        time = run_slice(job, time, job.remaining, timeline)
        schedule.append(finish(job, time))
        pool.remove(job)

    return build_result(policy, quantum, schedule, timeline)


def schedule_fcfs(
    processes: List[Process], quantum: Optional[int] = None, max_steps: Optional[int] = None
) -> ScheduleResult:
    """
    First-Come First-Serve (non-preemptive) scheduling.
    """
    return _run_non_preemptive(Policy.FCFS, processes, quantum, max_steps)


def schedule_sjf(
    processes: List[Process], quantum: Optional[int] = None, max_steps: Optional[int] = None
) -> ScheduleResult:
    """
    Shortest Job First (non-preemptive).

    At each decision point, among processes that have arrived and are not yet
    completed, choose the one with the smallest burst time. Ties go to the
    process listed first in the input, not the one that arrived first.
    """
    return _run_non_preemptive(Policy.SJF, processes, quantum, max_steps)


def schedule_priority(
    processes: List[Process], quantum: Optional[int] = None, max_steps: Optional[int] = None
) -> ScheduleResult:
    """
    Static Priority scheduling (non-preemptive).

    Lower numeric priority value means higher priority. Ties go to the
    process listed first in the input.
    """
    return _run_non_preemptive(Policy.PRIORITY, processes, quantum, max_steps)


def schedule_rr(
    processes: List[Process], quantum: Optional[int] = None, max_steps: Optional[int] = None
) -> ScheduleResult:
    """
    Round Robin scheduling with a fixed time quantum.

    Processes arriving exactly when a slice ends are queued ahead of the
    process that was just preempted.
    """
    if quantum is None or quantum <= 0:
        raise WorkloadError("Round Robin requires a positive quantum (use --quantum)")

    jobs = make_jobs(processes)
    guard = StepGuard.for_jobs(jobs, ALGORITHM_NAMES[Policy.RR], max_steps)
    backlog: Deque[Job] = deque(sorted(jobs, key=lambda j: j.arrival_time))
    ready: Deque[Job] = deque()

    time = 0
    timeline: List[ExecutionSegment] = []
    entries: Dict[str, ScheduleEntry] = {}
    previous: Optional[Job] = None

    while ready or backlog:
        guard.tick()
        admit_arrivals(backlog, ready, time)
        if not ready:
            time = next_arrival(backlog, time)
            logger.debug("CPU idle, advancing to t=%d", time)
            continue

        job = ready.popleft()
        if previous is not None and previous is not job:
            job.context_switches += 1
        previous = job

        time = run_slice(job, time, min(job.remaining, quantum), timeline)

        # New arrivals go in before the preempted process is re-queued.
        admit_arrivals(backlog, ready, time)
        if job.remaining > 0:
            ready.append(job)
        else:
            entries[job.pid] = finish(job, time)

    schedule = [entries[j.pid] for j in jobs]
    return build_result(Policy.RR, quantum, schedule, timeline)


def schedule_srtf(
    processes: List[Process], quantum: Optional[int] = None, max_steps: Optional[int] = None
) -> ScheduleResult:
    """
    Shortest Remaining Time First (preemptive SJF).

    The running process is re-evaluated at every arrival and completion, so
    segment boundaries fall exactly on those events. Back-to-back segments of
    one process are merged in its schedule entry; ``timeline`` keeps them
    split.
    """
    jobs = sorted(make_jobs(processes), key=lambda j: j.arrival_time)
    guard = StepGuard.for_jobs(jobs, ALGORITHM_NAMES[Policy.SRTF], max_steps)

    time = 0
    timeline: List[ExecutionSegment] = []
    entries: Dict[str, ScheduleEntry] = {}
    previous: Optional[Job] = None

    while len(entries) < len(jobs):
        guard.tick()
        unfinished = [j for j in jobs if j.remaining > 0]
        ready = [j for j in unfinished if j.arrival_time <= time]
        if not ready:
            time = next_arrival(unfinished, time)
            logger.debug("CPU idle, advancing to t=%d", time)
            continue

        job = select(ready, key=lambda j: j.remaining)

        if previous is not None and previous is not job:
            if previous.remaining > 0:
                previous.context_switches += 1
            if job.first_start is not None:
                job.context_switches += 1
        previous = job

        # Run until completion or the next arrival, whichever comes first.
        upcoming = [j.arrival_time for j in unfinished if j.arrival_time > time]
        run_time = job.remaining
        if upcoming:
            run_time = min(run_time, min(upcoming) - time)

        time = run_slice(job, time, run_time, timeline)
        if job.remaining == 0:
            entries[job.pid] = finish(job, time)

    schedule = [entries[j.pid] for j in jobs]
    return build_result(Policy.SRTF, quantum, schedule, timeline)


ALGORITHMS = {
    Policy.FCFS: schedule_fcfs,
    Policy.SJF: schedule_sjf,
    Policy.RR: schedule_rr,
    Policy.PRIORITY: schedule_priority,
    Policy.SRTF: schedule_srtf,
}


def run_algorithm(
    name: "str | Policy",
    processes: List[Process],
    quantum: Optional[int] = None,
    max_steps: Optional[int] = None,
) -> ScheduleResult:
    """
    Validate the workload and dispatch to the requested single-queue
    algorithm. Quantum is only used by round-robin.
    """
    policy = Policy.parse(name)
    if policy not in ALGORITHMS:
        raise UnsupportedPolicyError(
            f"'{policy.value}' needs queue configurations; use run_mlq instead"
        )

    validate_processes(processes, policy, quantum)
    func = ALGORITHMS[policy]
    return func(processes, quantum=quantum, max_steps=max_steps)
