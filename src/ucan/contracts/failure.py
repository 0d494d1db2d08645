"""Failure semantics shared across pipeline stages.

Contract violations fail fast and loud. Per-frame alignment failures are
data problems and follow the caller-selected ``FailurePolicy``.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """What the alignment stage does with a frame it could not align.

    DROP (default): Remove the frame from the output series, log a warning.
    REUSE_PREVIOUS: Resample the frame with the most recent successful
        transform. If no transform has succeeded yet, the frame is dropped.

    A NaN-filled or unaligned frame is never passed on to photometry.
    """
    DROP = "drop"
    REUSE_PREVIOUS = "reuse_previous"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a
    recoverable science problem.

    Key distinction:
    - ValueError / pydantic.ValidationError: user or config error
    - ucan.errors.UcanError: bad frame, bad picks, degenerate data
    - ContractViolation: pipeline bug (programmer error)
    """
    pass
