import json
from pathlib import Path

import pytest

from schedsim.algorithms import schedule_srtf
from schedsim.errors import UnsupportedPolicyError, WorkloadError
from schedsim.models import Policy, Process
from schedsim.workload_io import load_queues, load_workload, result_to_dict


def test_load_json(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"pid":"A","arrival_time":0,"burst_time":3,"priority":1},'
                 '{"pid":"B","arrival_time":1,"burst_time":2}]')
    procs = load_workload(p)
    assert isinstance(procs[0], Process)
    assert procs[1].priority is None
    assert procs[1].arrival_time == 1


def test_load_json_wire_names(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text(json.dumps({"processes": [{"processId": 7, "arrivalTime": 2, "burstTime": 4}]}))
    procs = load_workload(p)
    assert procs == [Process("7", arrival_time=2, burst_time=4)]


def test_load_csv(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text("pid,arrival_time,burst_time,priority\nA,0,3,1\nB,1,2,\n")
    procs = load_workload(p)
    assert procs[0].pid == "A"
    assert procs[1].priority is None


def test_rejects_bad_entries(tmp_path: Path):
    p = tmp_path / "w.json"
    p.write_text('[{"pid":"A","arrival_time":0}]')
    with pytest.raises(WorkloadError):
        load_workload(p)

    p.write_text('[{"processId":0,"arrivalTime":0,"burstTime":1}]')
    with pytest.raises(WorkloadError):
        load_workload(p)

    p.write_text("{not json")
    with pytest.raises(WorkloadError):
        load_workload(p)

    with pytest.raises(WorkloadError):
        load_workload(tmp_path / "w.txt")


@pytest.mark.parametrize(
    "entry",
    [
        {"pid": "A", "arrival_time": 1.5, "burst_time": 2},
        {"pid": "A", "arrival_time": 0, "burst_time": 1.9},
        {"pid": "A", "arrival_time": True, "burst_time": 2},
        {"pid": "A", "arrival_time": 0, "burst_time": 2, "priority": False},
    ],
)
def test_non_integer_times_are_rejected_not_truncated(tmp_path: Path, entry):
    p = tmp_path / "w.json"
    p.write_text(json.dumps([entry]))
    with pytest.raises(WorkloadError):
        load_workload(p)


def test_csv_cells_must_be_whole_numbers(tmp_path: Path):
    p = tmp_path / "w.csv"
    p.write_text("pid,arrival_time,burst_time\nA,1.5,2\n")
    with pytest.raises(WorkloadError):
        load_workload(p)

    p.write_text("pid,arrival_time,burst_time\nA, 2 ,3\n")
    assert load_workload(p) == [Process("A", arrival_time=2, burst_time=3)]


def test_queue_quantum_must_be_an_integer(tmp_path: Path):
    p = tmp_path / "q.json"
    p.write_text('{"queues": [{"priority": 1, "algorithm": "rr", "quantum": 2.5, "processes": []}]}')
    with pytest.raises(WorkloadError):
        load_queues(p)


def test_load_queues(tmp_path: Path):
    p = tmp_path / "q.json"
    p.write_text(
        json.dumps(
            {
                "queues": [
                    {
                        "priority": 2,
                        "algorithm": "rr",
                        "timeQuantum": 3,
                        "processes": [{"processId": 1, "arrivalTime": 0, "burstTime": 4}],
                    },
                    {
                        "priority": 1,
                        "algorithm": "ps",
                        "processes": [
                            {"processId": 2, "arrivalTime": 0, "burstTime": 1, "priority": 1}
                        ],
                    },
                ]
            }
        )
    )
    queues = load_queues(p)
    assert [q.policy for q in queues] == [Policy.RR, Policy.PRIORITY]
    assert queues[0].quantum == 3
    assert queues[1].quantum is None
    assert queues[1].processes[0].priority == 1


def test_load_queues_unknown_algorithm(tmp_path: Path):
    p = tmp_path / "q.json"
    p.write_text('{"queues": [{"priority": 1, "algorithm": "lottery", "processes": []}]}')
    with pytest.raises(UnsupportedPolicyError):
        load_queues(p)


def test_result_to_dict_uses_wire_names():
    res = schedule_srtf(
        [
            Process("P1", arrival_time=0, burst_time=3),
            Process("P2", arrival_time=1, burst_time=1),
        ]
    )
    data = result_to_dict(res)
    assert set(data) == {"algorithm", "quantum", "schedule", "timeline", "metrics", "system"}
    first = data["schedule"][0]
    assert first["processId"] == "P1"
    assert first["completionTime"] == 4
    assert first["contextSwitches"] == 2
    assert first["timeline"] == [
        {"processId": "P1", "startTime": 0, "endTime": 1},
        {"processId": "P1", "startTime": 2, "endTime": 4},
    ]
    assert data["metrics"]["avgWaitingTime"] == pytest.approx(0.5)
    json.dumps(data)
