"""
Exceptions raised by the simulator.

Input problems derive from ``ValueError`` so callers that only know about the
builtin hierarchy still catch them. Invariant violations derive from
``RuntimeError``: they indicate a bug, not bad input, and are never retried.
"""


class SchedsimError(Exception):
    pass


class WorkloadError(SchedsimError, ValueError):
    """Invalid or incomplete process / queue input."""


class UnsupportedPolicyError(SchedsimError, ValueError):
    """A policy name that does not map to a known algorithm."""


class SchedulerInvariantError(SchedsimError, RuntimeError):
    """The engine reached a state a correct schedule can never produce."""
