"""Build and normalize aperture light curves.

``PhotometricSeriesBuilder`` turns aligned frames into a
``pandas.DataFrame`` with one row per frame: ``time`` (UTC),
``frame_index`` (position in the aligned sequence) and one flux column per
aperture. Frames that cannot be measured, or that repeat an earlier
frame's timestamp, are left out and listed in ``failures``.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING

import numpy as np
import pandas as pd

from ucan.contracts import ContractViolation, assert_series
from ucan.errors import NormalizationError, UcanError
from ucan.imaging.frame import ImageFrame
from ucan.imaging.photometry import Aperture, aperture_ids, sum_apertures

if TYPE_CHECKING:
    from ucan.schemas import InternalConfig

__all__ = ['SeriesFailure', 'PhotometricSeriesBuilder', 'normalize', 'NORMALIZATION_METHODS']

logger = logging.getLogger(__name__)

NORMALIZATION_METHODS = ("median", "reference_aperture")


@dataclass(frozen=True)
class SeriesFailure:
    """A frame left out of the series, and why."""
    frame_index: int
    source: Optional[str]
    error: str


class PhotometricSeriesBuilder:
    """Measure apertures across a frame sequence.

    Parameters
    ----------
    config : InternalConfig, optional
        Not needed by ``build_series`` itself; kept for symmetry with the
        other pipeline stages.

    Attributes
    ----------
    failures : list of SeriesFailure
        Frames dropped by the most recent build.
    """

    def __init__(self, config: "InternalConfig" = None):
        self.config = config
        self.failures: List[SeriesFailure] = []

    def _measure(self, frame: ImageFrame, apertures: Sequence[Aperture], ids: Sequence[str]) -> dict:
        sums = sum_apertures(frame, apertures)
        fluxes = {ids[i]: sums[i] for i in range(len(ids))}
        bad = [k for k, v in fluxes.items() if not np.isfinite(v)]
        if bad:
            raise UcanError(f"Non-finite flux in aperture(s) {bad}")
        return fluxes

    def _assemble(self, rows: List[dict], ids: Sequence[str]) -> pd.DataFrame:
        df = pd.DataFrame(rows, columns=["time", "frame_index", *ids])
        if not df.empty:
            df["time"] = pd.to_datetime(df["time"], utc=True)
            df = df.sort_values("time", kind="stable").reset_index(drop=True)
        df["frame_index"] = df["frame_index"].astype(int)
        for col in ids:
            df[col] = df[col].astype(float)
        assert_series(df, ids)
        return df

    def _drop_duplicate_times(self, rows: List[dict], frames: Sequence[ImageFrame]) -> List[dict]:
        """Keep the first row per timestamp; later ones become failures."""
        first_at = {}
        kept = []
        for row in rows:
            index = row["frame_index"]
            first = first_at.setdefault(row["time"], index)
            if first != index:
                self._record_failure(index, frames[index], UcanError(
                    f"Duplicate timestamp {row['time'].isoformat()} (same as frame {first})"
                ))
                continue
            kept.append(row)
        return kept

    def _record_failure(self, index: int, frame: ImageFrame, error: Exception):
        failure = SeriesFailure(index, frame.source, str(error))
        self.failures.append(failure)
        logger.warning("Dropping frame %d (%s) from series: %s", index, frame.source, error)

    def build_series(self, frames: Sequence[ImageFrame], apertures: Sequence[Aperture]) -> pd.DataFrame:
        """One row per frame with the summed flux in every aperture.

        Parameters
        ----------
        frames : sequence of ImageFrame
            Aligned frames.
        apertures : sequence of Aperture
            Static apertures, placed on the aligned grid.

        Returns
        -------
        pd.DataFrame
            Columns ``time``, ``frame_index`` and the aperture ids, sorted
            by time.
        """
        self.failures = []
        ids = aperture_ids(apertures)

        rows = []
        for index, frame in enumerate(frames):
            try:
                fluxes = self._measure(frame, apertures, ids)
            except ContractViolation:
                raise
            except UcanError as e:
                self._record_failure(index, frame, e)
                continue
            rows.append({"time": frame.timestamp, "frame_index": index, **fluxes})

        rows = self._drop_duplicate_times(rows, frames)
        df = self._assemble(rows, ids)
        logger.info("Series built: %d row(s) from %d frame(s), %d aperture(s)",
                    len(df), len(frames), len(ids))
        return df

    def build_tracked_series(
        self,
        frames: Sequence[ImageFrame],
        locate: Callable[[ImageFrame], Sequence[Aperture]],
    ) -> pd.DataFrame:
        """Like ``build_series`` but apertures are placed per frame by ``locate``.

        ``locate`` (e.g. a ``TargetLocator``) must return the same number of
        apertures, with the same ids, for every frame. Frames where it
        raises are recorded as failures.
        """
        self.failures = []
        ids = None

        rows = []
        for index, frame in enumerate(frames):
            try:
                apertures = list(locate(frame))
                frame_ids = aperture_ids(apertures)
                if ids is None:
                    ids = frame_ids
                elif frame_ids != ids:
                    raise UcanError(f"Locator returned apertures {frame_ids}, expected {ids}")
                fluxes = self._measure(frame, apertures, ids)
            except ContractViolation:
                raise
            except (UcanError, ValueError) as e:
                self._record_failure(index, frame, e)
                continue
            rows.append({"time": frame.timestamp, "frame_index": index, **fluxes})

        rows = self._drop_duplicate_times(rows, frames)
        df = self._assemble(rows, ids or [])
        logger.info("Tracked series built: %d row(s) from %d frame(s)", len(df), len(frames))
        return df


def normalize(series: pd.DataFrame, method: str, reference: Optional[str] = None) -> pd.DataFrame:
    """Return a normalized copy of a series; the input is left untouched.

    Parameters
    ----------
    series : pd.DataFrame
        Output of ``build_series``.
    method : {"median", "reference_aperture"}
        ``"median"`` divides every aperture column by its own median.
        ``"reference_aperture"`` divides every aperture column (the
        reference included) by the ``reference`` column, row by row.
    reference : str, optional
        Comparison aperture id, required for ``"reference_aperture"``.

    Raises
    ------
    NormalizationError
        If a divisor is zero or not finite.
    ValueError
        Unknown method, or missing/unknown reference column.
    """
    ids = [c for c in series.columns if c not in ("time", "frame_index")]
    out = series.copy()

    if method == "median":
        for col in ids:
            med = float(series[col].median())
            if not np.isfinite(med) or med == 0.0:
                raise NormalizationError(f"Median of '{col}' is {med}; cannot normalize")
            out[col] = series[col] / med

    elif method == "reference_aperture":
        if reference is None:
            raise ValueError("A reference aperture is required for 'reference_aperture' normalization")
        if reference not in ids:
            raise ValueError(f"Reference aperture '{reference}' not in series columns {ids}")
        divisor = series[reference].to_numpy(dtype=float)
        bad = ~np.isfinite(divisor) | (divisor == 0.0)
        if bad.any():
            frames = series.loc[bad, "frame_index"].tolist()
            raise NormalizationError(
                f"Reference aperture '{reference}' is zero or non-finite in frame(s) {frames}"
            )
        for col in ids:
            out[col] = series[col].to_numpy(dtype=float) / divisor

    else:
        raise ValueError(f"Unknown normalization method: {method!r} (expected one of {NORMALIZATION_METHODS})")

    return out
