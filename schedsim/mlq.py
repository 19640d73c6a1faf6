"""
Multi-Level Queue scheduling.

Each queue has its own policy (FCFS, SJF, Priority or RR). Queues are served
strictly in ascending ``priority`` order: a queue only runs once every queue
with a smaller priority number is drained.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Deque, Iterable, List, Optional

from .algorithms import (
    SELECTION_KEYS,
    Job,
    StepGuard,
    admit_arrivals,
    build_result,
    finish,
    make_jobs,
    next_arrival,
    run_slice,
    select,
)
from .models import ExecutionSegment, Policy, QueueConfig, ScheduleEntry, ScheduleResult
from .validation import validate_queues

logger = logging.getLogger(__name__)


class QueueLevel:
    """
    Run state of one queue: its jobs and, for round-robin, its own FIFO
    ready queue and arrival backlog.
    """

    def __init__(self, config: QueueConfig) -> None:
        self.config = config
        self.jobs: List[Job] = make_jobs(config.processes)
        if config.policy is Policy.FCFS:
            self.jobs.sort(key=lambda j: j.arrival_time)
        self.backlog: Deque[Job] = deque(sorted(self.jobs, key=lambda j: j.arrival_time))
        self.ready: Deque[Job] = deque()

    @property
    def priority(self) -> int:
        return self.config.priority

    @property
    def policy(self) -> Policy:
        return self.config.policy

    def pending(self) -> List[Job]:
        return [j for j in self.jobs if j.remaining > 0]

    def has_work(self) -> bool:
        return any(j.remaining > 0 for j in self.jobs)

    def ready_jobs(self, now: int) -> List[Job]:
        if self.policy is Policy.RR:
            admit_arrivals(self.backlog, self.ready, now)
            return list(self.ready)
        return [j for j in self.jobs if j.remaining > 0 and j.arrival_time <= now]

    def pick(self, ready: List[Job]) -> Job:
        if self.policy is Policy.RR:
            return self.ready.popleft()
        return select(ready, SELECTION_KEYS[self.policy])

    def slice_length(self, job: Job) -> int:
        if self.policy is Policy.RR:
            return min(job.remaining, self.config.quantum)
        return job.remaining

    def after_slice(self, job: Job, now: int) -> None:
        if self.policy is Policy.RR:
            admit_arrivals(self.backlog, self.ready, now)
            if job.remaining > 0:
                self.ready.append(job)


def schedule_mlq(
    queues: Iterable[QueueConfig],
    strict_idle_jump: bool = True,
    max_steps: Optional[int] = None,
) -> ScheduleResult:
    """
    Run a multi-level queue simulation over already validated queues.

    With ``strict_idle_jump`` (the default) the highest-priority queue that
    still has unfinished work is always selected, even if none of its
    processes has arrived; time then jumps to that queue's next arrival,
    leaving ready work in lower queues waiting. With ``strict_idle_jump``
    off, the highest-priority queue with *ready* work runs instead and time
    only jumps when no queue has anything ready.
    """
    levels = [QueueLevel(q) for q in sorted(queues, key=lambda q: q.priority)]
    all_jobs = [j for level in levels for j in level.jobs]
    guard = StepGuard.for_jobs(all_jobs, "MLQ", max_steps)

    time = 0
    timeline: List[ExecutionSegment] = []
    schedule: List[ScheduleEntry] = []
    previous: Optional[Job] = None

    while True:
        active = [level for level in levels if level.has_work()]
        if not active:
            break
        guard.tick()

        if strict_idle_jump:
            level = active[0]
            ready = level.ready_jobs(time)
            if not ready:
                time = next_arrival(level.pending(), time)
                logger.debug("Queue %d idle, advancing to t=%d", level.priority, time)
                continue
        else:
            for level in active:
                ready = level.ready_jobs(time)
                if ready:
                    break
            else:
                time = next_arrival([j for lv in active for j in lv.pending()], time)
                logger.debug("All queues idle, advancing to t=%d", time)
                continue

        job = level.pick(ready)
        if previous is not None and previous is not job:
            job.context_switches += 1
        previous = job

        time = run_slice(job, time, level.slice_length(job), timeline, queue_priority=level.priority)
        level.after_slice(job, time)
        if job.remaining == 0:
            schedule.append(finish(job, time, queue_priority=level.priority))

    return build_result(Policy.MLQ, None, schedule, timeline)


def run_mlq(
    queues: Iterable[QueueConfig],
    strict_idle_jump: bool = True,
    max_steps: Optional[int] = None,
) -> ScheduleResult:
    """
    Normalize queue policy names, validate the queues and run the
    simulation. Any unsupported queue policy aborts the whole run.
    """
    normalized = [replace(q, policy=Policy.parse(q.policy)) for q in queues]
    validate_queues(normalized)
    return schedule_mlq(normalized, strict_idle_jump=strict_idle_jump, max_steps=max_steps)
