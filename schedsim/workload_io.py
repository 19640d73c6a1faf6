from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import WorkloadError
from .models import ExecutionSegment, Policy, Process, QueueConfig, ScheduleEntry, ScheduleResult

# Accepted spellings for each field: snake_case first, then the camelCase
# names used on the wire.
_PID_KEYS = ("pid", "processId", "id")
_ARRIVAL_KEYS = ("arrival_time", "arrivalTime")
_BURST_KEYS = ("burst_time", "burstTime")
_QUANTUM_KEYS = ("quantum", "timeQuantum", "time_quantum")


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a workload from a JSON or CSV file into a list of Process objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)

    raise WorkloadError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def load_queues(path: str | Path) -> List[QueueConfig]:
    """
    Load a multi-level queue workload: a JSON object with a ``queues`` list
    (or a bare list), each queue carrying ``priority``, ``algorithm`` or
    ``policy``, an optional quantum and its ``processes``.
    """
    raw = _read_json(Path(path))
    if isinstance(raw, Mapping):
        raw = raw.get("queues")
    if not isinstance(raw, list):
        raise WorkloadError("Invalid queues data: expected a list of queues")
    return [queue_from_mapping(entry) for entry in raw]


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise WorkloadError(f"{path}: invalid JSON ({exc})") from exc


def _load_json(path: Path) -> List[Process]:
    raw = _read_json(path)
    if isinstance(raw, Mapping):
        raw = raw.get("processes")

    if not isinstance(raw, list):
        raise WorkloadError("JSON workload must be a list of process objects")

    return [process_from_mapping(entry) for entry in raw]


def _load_csv(path: Path) -> List[Process]:
    processes: List[Process] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            processes.append(process_from_mapping(row))
    return processes


def _first(mapping: Mapping, keys) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    raise KeyError(keys[0])


def _to_int(value: Any) -> int:
    # Only real ints, or integer text from CSV cells. Floats and booleans
    # would otherwise be truncated to a different schedule.
    if isinstance(value, bool):
        raise TypeError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("+-").isdigit():
            return int(text)
    raise ValueError(f"expected an integer, got {value!r}")


def _optional_int(value: Any) -> Optional[int]:
    return _to_int(value) if value not in (None, "") else None


def process_from_mapping(mapping) -> Process:
    if not isinstance(mapping, Mapping):
        raise WorkloadError(f"Invalid process entry: {mapping!r}")
    try:
        raw_pid = _first(mapping, _PID_KEYS)
        arrival_time = _to_int(_first(mapping, _ARRIVAL_KEYS))
        burst_time = _to_int(_first(mapping, _BURST_KEYS))
        priority = _optional_int(mapping.get("priority"))
    except (KeyError, TypeError, ValueError) as exc:
        raise WorkloadError(f"Invalid process entry: {dict(mapping)!r}") from exc

    if raw_pid in (None, "", 0, "0"):
        raise WorkloadError(f"Missing required process data: id in {dict(mapping)!r}")

    return Process(
        pid=str(raw_pid),
        arrival_time=arrival_time,
        burst_time=burst_time,
        priority=priority,
    )


def queue_from_mapping(mapping) -> QueueConfig:
    if not isinstance(mapping, Mapping):
        raise WorkloadError(f"Invalid queue format: {mapping!r}")
    try:
        priority = _to_int(_first(mapping, ("priority", "queue_priority", "queuePriority")))
        policy_name = _first(mapping, ("algorithm", "policy"))
        processes = mapping["processes"]
    except (KeyError, TypeError, ValueError) as exc:
        raise WorkloadError(f"Invalid queue format: {dict(mapping)!r}") from exc

    if not isinstance(processes, list):
        raise WorkloadError(f"Queue {priority}: processes must be a list")

    quantum = None
    for key in _QUANTUM_KEYS:
        if key in mapping:
            try:
                quantum = _optional_int(mapping[key])
            except (TypeError, ValueError) as exc:
                raise WorkloadError(f"Queue {priority}: invalid quantum {mapping[key]!r}") from exc
            break

    return QueueConfig(
        priority=priority,
        policy=Policy.parse(policy_name),
        processes=[process_from_mapping(p) for p in processes],
        quantum=quantum,
    )


def _segment_to_dict(seg: ExecutionSegment) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "processId": seg.pid,
        "startTime": seg.start_time,
        "endTime": seg.end_time,
    }
    if seg.queue_priority is not None:
        data["queuePriority"] = seg.queue_priority
    return data


def _entry_to_dict(entry: ScheduleEntry) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "processId": entry.pid,
        "arrivalTime": entry.arrival_time,
        "burstTime": entry.burst_time,
        "startTime": entry.start_time,
        "completionTime": entry.completion_time,
        "turnaroundTime": entry.turnaround_time,
        "waitingTime": entry.waiting_time,
        "responseTime": entry.response_time,
        "contextSwitches": entry.context_switches,
        "timeline": [_segment_to_dict(s) for s in entry.segments],
    }
    if entry.priority is not None:
        data["priority"] = entry.priority
    if entry.queue_priority is not None:
        data["queuePriority"] = entry.queue_priority
    return data


def result_to_dict(result: ScheduleResult) -> Dict[str, Any]:
    """
    Serialize a result to the JSON shape served to front ends:
    ``{schedule, timeline, metrics, system, algorithm, quantum}``.
    """
    data: Dict[str, Any] = {
        "algorithm": result.algorithm,
        "quantum": result.quantum,
        "schedule": [_entry_to_dict(e) for e in result.schedule],
        "timeline": [_segment_to_dict(s) for s in result.timeline],
    }
    if result.metrics is not None:
        data["metrics"] = {
            "avgTurnaroundTime": result.metrics.avg_turnaround_time,
            "avgWaitingTime": result.metrics.avg_waiting_time,
            "avgResponseTime": result.metrics.avg_response_time,
        }
    if result.system is not None:
        data["system"] = {
            "cpuBusyTime": result.system.cpu_busy_time,
            "makespan": result.system.makespan,
            "throughput": result.system.throughput,
            "cpuUtilization": result.system.cpu_utilization,
            "starvationCount": result.system.starvation_count,
        }
    return data


def dump_result(result: ScheduleResult, indent: Optional[int] = 2) -> str:
    return json.dumps(result_to_dict(result), indent=indent)
