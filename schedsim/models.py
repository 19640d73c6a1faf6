from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import UnsupportedPolicyError


class Policy(str, Enum):
    FCFS = "fcfs"
    SJF = "sjf"
    PRIORITY = "priority"
    RR = "rr"
    SRTF = "srtf"
    MLQ = "mlq"

    @classmethod
    def parse(cls, name: "str | Policy") -> "Policy":
        """
        Map a user supplied policy name (case-insensitive, with a few common
        aliases) onto the enum.
        """
        if isinstance(name, Policy):
            return name
        key = str(name).strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedPolicyError(f"Unsupported algorithm: {name!r}") from None


_ALIASES = {
    "ps": "priority",
    "round-robin": "rr",
    "round_robin": "rr",
    "multilevel": "mlq",
}

# Policies a single MLQ queue may be configured with.
QUEUE_POLICIES = frozenset({Policy.FCFS, Policy.SJF, Policy.PRIORITY, Policy.RR})


@dataclass
class Process:
    pid: str
    arrival_time: int
    burst_time: int
    priority: Optional[int] = None


@dataclass
class QueueConfig:
    """
    One level of a multi-level queue. Lower ``priority`` is served first.
    """

    priority: int
    policy: Policy
    processes: List[Process] = field(default_factory=list)
    quantum: Optional[int] = None


@dataclass
class ExecutionSegment:
    """
    One contiguous interval [start_time, end_time) during which a single
    process occupies the CPU.
    """

    pid: str
    start_time: int
    end_time: int
    queue_priority: Optional[int] = None

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass
class ScheduleEntry:
    pid: str
    arrival_time: int
    burst_time: int
    start_time: int
    completion_time: int
    waiting_time: int
    turnaround_time: int
    response_time: int
    context_switches: int = 0
    priority: Optional[int] = None
    queue_priority: Optional[int] = None
    segments: List[ExecutionSegment] = field(default_factory=list)


@dataclass
class AverageMetrics:
    avg_turnaround_time: float
    avg_waiting_time: float
    avg_response_time: float


@dataclass
class SystemMetrics:
    cpu_busy_time: int
    makespan: int
    throughput: float
    cpu_utilization: float
    starvation_count: int = 0


@dataclass
class ScheduleResult:
    algorithm: str
    policy: Policy
    quantum: Optional[int]
    schedule: List[ScheduleEntry] = field(default_factory=list)
    timeline: List[ExecutionSegment] = field(default_factory=list)
    metrics: Optional[AverageMetrics] = None
    system: Optional[SystemMetrics] = None
