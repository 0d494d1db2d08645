"""Circular aperture photometry.

Inclusion policy
----------------
A pixel contributes its full value to an aperture iff the distance from
the pixel centre to the aperture centre is ``<= r``. Pixel centres sit on
integer coordinates (``x`` = column, ``y`` = row). There is no fractional
overlap weighting, so sums are step functions of the radius and the
policy stays identical across a series.

Pixels outside the image contribute nothing; an aperture that misses the
image entirely sums to exactly ``0.0``.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import numpy as np

from ucan.imaging.frame import ImageFrame

__all__ = ['Aperture', 'aperture_mask', 'sum_apertures', 'aperture_ids']


@dataclass(frozen=True)
class Aperture:
    """Circular aperture in pixel coordinates."""

    x: float
    y: float
    r: float
    label: Optional[str] = None

    def __post_init__(self):
        if not self.r > 0:
            raise ValueError(f"Aperture radius must be > 0, got {self.r}")

    @classmethod
    def from_config(cls, ap) -> "Aperture":
        return cls(x=ap.x, y=ap.y, r=ap.r, label=ap.label)


def aperture_ids(apertures: Sequence[Aperture]):
    """Series column ids: the label if set, else ``ap{index}``."""
    ids = [ap.label or f"ap{i}" for i, ap in enumerate(apertures)]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate aperture ids: {ids}")
    return ids


def aperture_mask(shape, aperture: Aperture):
    """Boolean mask over the bounding box of ``aperture`` clipped to ``shape``.

    Returns
    -------
    tuple
        ``(slices, mask)``; ``mask`` is None when the aperture misses the
        image.
    """
    h, w = shape
    x0 = max(int(np.ceil(aperture.x - aperture.r)), 0)
    x1 = min(int(np.floor(aperture.x + aperture.r)), w - 1)
    y0 = max(int(np.ceil(aperture.y - aperture.r)), 0)
    y1 = min(int(np.floor(aperture.y + aperture.r)), h - 1)

    if x0 > x1 or y0 > y1:
        return None, None

    yy, xx = np.mgrid[y0:y1 + 1, x0:x1 + 1]
    mask = (xx - aperture.x) ** 2 + (yy - aperture.y) ** 2 <= aperture.r ** 2
    return (slice(y0, y1 + 1), slice(x0, x1 + 1)), mask


def sum_apertures(
    image: Union[ImageFrame, np.ndarray],
    apertures: Sequence[Aperture],
) -> Dict[int, float]:
    """Sum pixel values inside each aperture.

    Parameters
    ----------
    image : ImageFrame or 2-D ndarray
        Frame to measure.
    apertures : sequence of Aperture
        Apertures to measure, in order.

    Returns
    -------
    dict
        Aperture index -> summed flux. Non-finite pixels inside an aperture
        give a non-finite sum; callers decide what to do with it.

    Examples
    --------
    >>> sum_apertures(np.ones((5, 5)), [Aperture(2, 2, 1)])
    {0: 5.0}
    """
    pixels = image.pixels if isinstance(image, ImageFrame) else np.asarray(image, dtype=float)
    if pixels.ndim != 2:
        raise ValueError(f"Expected a 2-D image, got {pixels.ndim} dims")

    sums = {}
    for i, aperture in enumerate(apertures):
        slices, mask = aperture_mask(pixels.shape, aperture)
        if mask is None:
            sums[i] = 0.0
            continue
        sums[i] = float(pixels[slices][mask].sum())
    return sums
