from __future__ import annotations

from typing import Iterable, List, Optional, Set

from .errors import UnsupportedPolicyError, WorkloadError
from .models import QUEUE_POLICIES, Policy, Process, QueueConfig


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_process(p: Process, seen: Set[str], needs_priority: bool) -> None:
    if not p.pid:
        raise WorkloadError("Missing required process data: pid")
    if p.pid in seen:
        raise WorkloadError(f"Duplicate process id: {p.pid}")
    seen.add(p.pid)

    if not _is_int(p.arrival_time) or p.arrival_time < 0:
        raise WorkloadError(f"Process {p.pid}: arrival_time must be a non-negative integer")
    if not _is_int(p.burst_time) or p.burst_time <= 0:
        raise WorkloadError(f"Process {p.pid}: burst_time must be a positive integer")
    if p.priority is not None and not _is_int(p.priority):
        raise WorkloadError(f"Process {p.pid}: priority must be an integer")
    if needs_priority and p.priority is None:
        raise WorkloadError(f"Process {p.pid}: priority is required for priority scheduling")


def _check_quantum(quantum: Optional[int], where: str) -> None:
    if not _is_int(quantum) or quantum <= 0:
        raise WorkloadError(f"{where} requires a positive integer quantum")


def validate_processes(
    processes: Iterable[Process],
    policy: Policy,
    quantum: Optional[int] = None,
) -> List[Process]:
    """
    Reject input the engine must never see: empty lists, duplicate ids,
    negative arrivals, non-positive bursts, a missing priority when the
    policy needs one and a missing quantum for round-robin.
    """
    processes = list(processes)
    if not processes:
        raise WorkloadError("Workload contains no processes")

    if policy is Policy.MLQ:
        raise WorkloadError("MLQ takes queue configurations, not a flat process list")
    if policy is Policy.RR:
        _check_quantum(quantum, "Round Robin")

    seen: Set[str] = set()
    for p in processes:
        _check_process(p, seen, needs_priority=policy is Policy.PRIORITY)
    return processes


def validate_queues(queues: Iterable[QueueConfig]) -> List[QueueConfig]:
    queues = list(queues)
    if not queues:
        raise WorkloadError("Invalid queues data: no queues given")

    priorities: Set[int] = set()
    seen: Set[str] = set()
    total = 0
    for q in queues:
        if not _is_int(q.priority):
            raise WorkloadError(f"Invalid queue format: priority {q.priority!r} is not an integer")
        if q.priority in priorities:
            raise WorkloadError(f"Duplicate queue priority: {q.priority}")
        priorities.add(q.priority)

        if q.policy not in QUEUE_POLICIES:
            raise UnsupportedPolicyError(
                f"Unsupported algorithm for queue {q.priority}: {getattr(q.policy, 'value', q.policy)}"
            )
        if q.policy is Policy.RR:
            _check_quantum(q.quantum, f"Round Robin queue {q.priority}")

        for p in q.processes:
            _check_process(p, seen, needs_priority=q.policy is Policy.PRIORITY)
        total += len(q.processes)

    if total == 0:
        raise WorkloadError("Queues contain no processes")
    return queues
