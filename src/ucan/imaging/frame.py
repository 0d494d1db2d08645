"""In-memory representation of one exposure.

An ``ImageFrame`` is immutable: pixels are held in a read-only array and
header values in a read-only mapping. Every transformation (calibration,
resampling) returns a new frame that shares the original header, so the
raw frame stays available for comparison.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import xarray as xr

from ucan.errors import MissingHeaderField

__all__ = ['ImageFrame', 'header_field', 'parse_timestamp', 'frames_to_dataarray']


def _readonly(pixels) -> np.ndarray:
    arr = np.array(pixels, dtype=float)
    arr.flags.writeable = False
    return arr


def parse_timestamp(value: Any) -> datetime:
    """Parse an observation time into a timezone-aware UTC datetime.

    Accepts ISO-8601 strings with or without a trailing ``Z`` as well as
    ``datetime`` objects. Naive values are read as UTC.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a time. Numbers (an MJD or
        JD float, say) are rejected rather than read as epoch offsets.
    """
    if not isinstance(value, (str, datetime, np.datetime64)):
        raise ValueError(f"Unsupported timestamp type {type(value).__name__}: {value!r}")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Unparseable timestamp {value!r}") from e
    if ts is pd.NaT:
        raise ValueError(f"Unparseable timestamp {value!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.to_pydatetime()


@dataclass(frozen=True, eq=False)
class ImageFrame:
    """One exposure: pixel array, header metadata and observation time.

    Parameters
    ----------
    pixels : array_like
        2-D pixel samples, indexed ``[row, column]`` (``[y, x]``).
    header : mapping
        Header keywords copied from the source file.
    timestamp : datetime
        Observation time, timezone-aware UTC.
    source : str, optional
        Path the frame was loaded from, for diagnostics.
    """

    pixels: np.ndarray
    header: Mapping[str, Any]
    timestamp: datetime
    source: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pixels", _readonly(self.pixels))
        if not isinstance(self.header, MappingProxyType):
            object.__setattr__(self, "header", MappingProxyType(dict(self.header)))

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width) of the pixel grid."""
        return tuple(self.pixels.shape)

    def with_pixels(self, pixels) -> "ImageFrame":
        """Return a new frame with replaced pixels and the same metadata."""
        return ImageFrame(pixels=pixels, header=self.header,
                          timestamp=self.timestamp, source=self.source)


def header_field(frame: ImageFrame, key: str) -> Any:
    """Return ``frame.header[key]``.

    Raises
    ------
    MissingHeaderField
        If the key is absent.
    """
    try:
        return frame.header[key]
    except KeyError:
        raise MissingHeaderField(key, frame.source) from None


def frames_to_dataarray(frames: Sequence[ImageFrame], name: str = "pixels") -> xr.DataArray:
    """Stack equally shaped frames into a ``(time, y, x)`` DataArray.

    Timestamps become a naive UTC ``time`` coordinate (NetCDF friendly);
    frame sources are kept as a ``source`` coordinate.
    """
    if not frames:
        raise ValueError("Cannot stack an empty frame sequence")

    shapes = {f.shape for f in frames}
    if len(shapes) != 1:
        raise ValueError(f"Frames have differing shapes: {sorted(shapes)}")

    h, w = frames[0].shape
    times = pd.DatetimeIndex([f.timestamp for f in frames]).tz_convert("UTC").tz_localize(None)

    return xr.DataArray(
        np.stack([f.pixels for f in frames]),
        dims=("time", "y", "x"),
        coords={
            "time": times,
            "y": np.arange(h),
            "x": np.arange(w),
            "source": ("time", [f.source or "" for f in frames]),
        },
        name=name,
        attrs={"units": "adu", "long_name": "aligned frame stack"},
    )
