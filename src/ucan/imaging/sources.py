"""Background estimation, threshold source detection and target selection.

The detector is deliberately simple: local maxima of the
background-subtracted image that rise above ``nsigma`` times an error map.
Picking the target is then a matter of filtering the candidates by a
spatial predicate and keeping the brightest one.
"""

from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple
import logging

import numpy as np
from astropy.stats import sigma_clip
from skimage.feature import peak_local_max
from skimage.transform import resize

from ucan.errors import SourceNotFound
from ucan.imaging.frame import ImageFrame
from ucan.imaging.photometry import Aperture

__all__ = [
    'SourceCandidate',
    'estimate_background',
    'detect_sources',
    'select_brightest',
    'TargetLocator',
]

logger = logging.getLogger(__name__)


class SourceCandidate(NamedTuple):
    """Detected local maximum (pixel coordinates, background-subtracted value)."""
    x: float
    y: float
    value: float


def estimate_background(
    image: np.ndarray,
    box_size: int,
    sigma: float = 1.0,
    filter_order: int = 3,
) -> Tuple[np.ndarray, np.ndarray]:
    """Estimate a spatially varying background and its RMS.

    The image is sigma-clipped to suppress stars, split into
    ``box_size`` x ``box_size`` boxes, reduced to a per-box median and
    standard deviation, and the coarse mesh is interpolated back to full
    resolution.

    Parameters
    ----------
    image : 2-D ndarray
        Science image.
    box_size : int
        Side of the square mesh boxes in pixels.
    sigma : float
        Clipping threshold in standard deviations.
    filter_order : int
        Spline order of the upsampling (3 = cubic, 1 = bilinear).

    Returns
    -------
    background, rms : ndarray
        Both with the shape of ``image``.
    """
    image = np.asarray(image, dtype=float)
    h, w = image.shape
    clipped = sigma_clip(image, sigma=sigma, masked=True)

    fallback_bkg = float(np.ma.median(clipped)) if clipped.count() else 0.0
    fallback_rms = float(np.ma.std(clipped)) if clipped.count() else 0.0

    ny = int(np.ceil(h / box_size))
    nx = int(np.ceil(w / box_size))
    padded = np.ma.masked_all((ny * box_size, nx * box_size))
    padded[:h, :w] = clipped

    boxes = padded.reshape(ny, box_size, nx, box_size).transpose(0, 2, 1, 3)
    boxes = boxes.reshape(ny, nx, box_size * box_size)

    bkg_mesh = np.ma.median(boxes, axis=-1).filled(fallback_bkg)
    rms_mesh = np.ma.std(boxes, axis=-1).filled(fallback_rms)

    background = resize(bkg_mesh, (h, w), order=filter_order, mode="edge",
                        anti_aliasing=False, preserve_range=True)
    rms = resize(rms_mesh, (h, w), order=filter_order, mode="edge",
                 anti_aliasing=False, preserve_range=True)
    return background, rms


def detect_sources(
    image: np.ndarray,
    background,
    error,
    nsigma: float = 3.0,
    box_size: int = 3,
) -> List[SourceCandidate]:
    """Find local maxima above ``nsigma * error`` after background removal.

    Parameters
    ----------
    image : 2-D ndarray
        Science image.
    background : ndarray or float
        Background map (or scalar level) to subtract.
    error : ndarray or float
        Per-pixel noise estimate (the labs use the master dark).
    nsigma : float
        Detection threshold in units of ``error``.
    box_size : int
        Side of the neighbourhood a peak must dominate.

    Returns
    -------
    list of SourceCandidate
        Sorted from brightest to faintest.
    """
    image = np.asarray(image, dtype=float)
    subtracted = image - background
    threshold = nsigma * np.broadcast_to(np.asarray(error, dtype=float), image.shape)

    peaks = peak_local_max(
        np.nan_to_num(subtracted, nan=-np.inf),
        min_distance=max(box_size // 2, 1),
        exclude_border=False,
    )

    candidates = []
    for row, col in peaks:
        value = subtracted[row, col]
        if value > threshold[row, col]:
            candidates.append(SourceCandidate(x=float(col), y=float(row), value=float(value)))

    candidates.sort(key=lambda c: c.value, reverse=True)
    return candidates


def select_brightest(
    candidates: Sequence[SourceCandidate],
    predicate: Optional[Callable[[SourceCandidate], bool]] = None,
) -> SourceCandidate:
    """Return the brightest candidate satisfying ``predicate``.

    Raises
    ------
    SourceNotFound
        If no candidate is left after filtering.
    """
    kept = [c for c in candidates if predicate is None or predicate(c)]
    if not kept:
        raise SourceNotFound(f"No source among {len(candidates)} candidate(s) matched")
    return max(kept, key=lambda c: c.value)


class TargetLocator:
    """Locate the target star in a frame and place an aperture on it.

    Sigma-clip, estimate the background, detect sources, keep those with
    ``x_min <= x <= x_max`` and put a circular aperture of
    ``detection.aperture_radius`` on the brightest.

    Parameters
    ----------
    config : InternalConfig
        Uses the ``background`` and ``detection`` sections.
    error : ndarray or float, optional
        Noise map for the detection threshold (e.g. the master dark).
        Defaults to the background RMS of each frame.
    label : str
        Label given to the returned aperture.
    """

    def __init__(self, config, error=None, label: str = "target"):
        self.box_size = config.background.box_size
        self.sigma = config.background.sigma
        self.filter_order = config.background.filter_order
        self.nsigma = config.detection.nsigma
        self.peak_box = config.detection.box_size
        self.x_min = config.detection.x_min
        self.x_max = config.detection.x_max
        self.radius = config.detection.aperture_radius
        self.error = error
        self.label = label

    def in_window(self, candidate: SourceCandidate) -> bool:
        if self.x_min is not None and candidate.x < self.x_min:
            return False
        if self.x_max is not None and candidate.x > self.x_max:
            return False
        return True

    def __call__(self, frame: ImageFrame) -> List[Aperture]:
        background, rms = estimate_background(
            frame.pixels, self.box_size, sigma=self.sigma, filter_order=self.filter_order
        )
        error = rms if self.error is None else self.error
        candidates = detect_sources(
            frame.pixels, background, error, nsigma=self.nsigma, box_size=self.peak_box
        )
        target = select_brightest(candidates, self.in_window)
        logger.debug("Target at (%.1f, %.1f) value=%.1f in %s",
                     target.x, target.y, target.value, frame.source)
        return [Aperture(target.x, target.y, self.radius, self.label)]
