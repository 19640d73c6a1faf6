"""
CPU scheduling simulator package.

Computes the exact schedule FCFS, SJF, Priority, Round Robin, SRTF and
Multi-Level Queue scheduling produce for a set of processes, with per-process
metrics and an execution timeline.
"""

from .algorithms import run_algorithm
from .mlq import run_mlq
from .models import Policy, Process, QueueConfig

__all__ = ["Policy", "Process", "QueueConfig", "run_algorithm", "run_mlq"]
