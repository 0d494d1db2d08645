"""Pipeline contracts: fail-fast enforcement of stage invariants.

Contracts check what a stage promised to hand to the next one (2-D frames,
a common pixel grid after alignment, a time-ordered series with a fixed set
of aperture columns). A violation means the pipeline itself is wrong, so it
raises immediately instead of becoming a per-frame failure record.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- ``ucan.errors`` covers bad data and science edge cases
"""

from ucan.contracts.failure import ContractViolation, FailurePolicy
from ucan.contracts.base import require
from ucan.contracts.frames import assert_frame, assert_aligned
from ucan.contracts.series import assert_series

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_frame",
    "assert_aligned",
    "assert_series",
]
