"""Recoverable error taxonomy for the photometry pipeline.

These describe bad inputs or science edge cases (unreadable frame, too few
stars picked, a zero comparison flux). They are caught at the series level
and turned into per-frame records where the pipeline allows it.

Pipeline bugs are NOT represented here; those raise
``ucan.contracts.ContractViolation``.
"""


class UcanError(Exception):
    """Base class for all recoverable pipeline errors."""


class LoadError(UcanError):
    """A frame file could not be read, parsed, or timestamped."""


class MissingHeaderField(UcanError, KeyError):
    """A required header key is absent from a loaded frame."""

    def __init__(self, key: str, source: str = None):
        self.key = key
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Header field '{key}' not found{where}")

    def __str__(self):
        return self.args[0]


class DegenerateCorrespondenceError(UcanError, ValueError):
    """Fewer than three, or collinear, point correspondences."""


class AlignmentFailure(UcanError):
    """No acceptable transform could be found for a frame."""


class NormalizationError(UcanError, ArithmeticError):
    """A normalization divisor is zero or not finite."""


class SourceNotFound(UcanError, LookupError):
    """No detected source satisfied the selection predicate."""


class CatalogQueryError(UcanError):
    """An external catalog request failed or returned unparseable data."""
