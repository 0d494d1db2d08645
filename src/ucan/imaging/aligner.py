"""Point-set transforms and resampling onto a reference pixel grid.

``FrameAligner`` fits a ``GeometricTransform`` mapping moving-frame pixel
coordinates onto fixed-frame coordinates, either from hand-picked
``PointCorrespondence`` pairs or from star asterisms matched by
``astroalign``, and pulls the moving frame onto the fixed grid.

Conventions
-----------
- Coordinates are ``(x, y)`` = (column, row), 0-based, pixel centres on
  integers. This matches ``skimage.transform``.
- Resampling is backward: each output pixel is sampled from the moving
  frame at ``T^-1(x, y)``.
- Interpolation is bilinear (``order=1``) unless ``interpolation_order``
  is 0 (nearest). Samples falling outside the moving frame take
  ``fill_value`` (0.0 by default), never NaN and never wrapped.
"""

from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple
import logging

import astroalign
import numpy as np
from skimage.transform import AffineTransform, estimate_transform, warp

from ucan.errors import AlignmentFailure, DegenerateCorrespondenceError
from ucan.imaging.frame import ImageFrame

__all__ = ['PointCorrespondence', 'GeometricTransform', 'FrameAligner']

logger = logging.getLogger(__name__)

MIN_CORRESPONDENCES = 3


class PointCorrespondence(NamedTuple):
    """Pixel ``source`` in the moving frame matches ``destination`` in the fixed frame."""
    source: Tuple[float, float]
    destination: Tuple[float, float]


@dataclass(frozen=True, eq=False)
class GeometricTransform:
    """Moving-frame to fixed-frame mapping ``p' = linear @ p + translation``.

    ``residual`` is the RMS distance in pixels between the mapped sources
    and the destinations of the correspondences the transform was fitted
    on.
    """

    linear: np.ndarray
    translation: np.ndarray
    residual: float = 0.0
    model: str = "similarity"

    def __post_init__(self):
        linear = np.array(self.linear, dtype=float).reshape(2, 2)
        translation = np.array(self.translation, dtype=float).reshape(2)
        linear.flags.writeable = False
        translation.flags.writeable = False
        object.__setattr__(self, "linear", linear)
        object.__setattr__(self, "translation", translation)
        object.__setattr__(self, "residual", float(self.residual))

    @classmethod
    def identity(cls, model: str = "similarity") -> "GeometricTransform":
        return cls(np.eye(2), np.zeros(2), 0.0, model)

    @classmethod
    def from_matrix(cls, matrix, residual: float = 0.0, model: str = "affine") -> "GeometricTransform":
        matrix = np.asarray(matrix, dtype=float)
        return cls(matrix[:2, :2], matrix[:2, 2], residual, model)

    @property
    def matrix(self) -> np.ndarray:
        """3x3 homogeneous matrix."""
        m = np.eye(3)
        m[:2, :2] = self.linear
        m[:2, 2] = self.translation
        return m

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self.linear, np.eye(2)) and np.allclose(self.translation, 0.0))

    def apply(self, points) -> np.ndarray:
        """Map ``(N, 2)`` points (x, y) through the transform."""
        points = np.atleast_2d(np.asarray(points, dtype=float))
        return points @ self.linear.T + self.translation

    def inverse(self) -> "GeometricTransform":
        """Fixed-frame to moving-frame mapping (same residual)."""
        inv = np.linalg.inv(self.matrix)
        return GeometricTransform.from_matrix(inv, self.residual, self.model)

    def __repr__(self):
        return (f"GeometricTransform(model={self.model!r}, linear={self.linear.tolist()}, "
                f"translation={self.translation.tolist()}, residual={self.residual:.4f})")


def _check_spread(points: np.ndarray, which: str) -> None:
    """Reject point sets that do not span two dimensions."""
    centered = points - points.mean(axis=0)
    s = np.linalg.svd(centered, compute_uv=False)
    if s[1] <= 1e-9 * max(s[0], 1.0):
        raise DegenerateCorrespondenceError(f"{which} points are collinear or coincident")


class FrameAligner:
    """Fit transforms between frames and resample onto a reference grid.

    Parameters
    ----------
    config : InternalConfig
        Uses the ``aligner`` section (transform model, interpolation order,
        fill value, residual tolerance and asterism detection settings).

    Examples
    --------
    >>> aligner = FrameAligner(config)
    >>> pairs = [PointCorrespondence((10, 10), (12, 11)),
    ...          PointCorrespondence((50, 10), (52, 11)),
    ...          PointCorrespondence((10, 50), (12, 51))]
    >>> t = aligner.fit_transform(pairs)
    >>> t.translation
    array([2., 1.])
    >>> aligned = aligner.resample(moving, t, fixed.shape)
    """

    def __init__(self, config):
        self.model = config.aligner.model
        self.order = config.aligner.interpolation_order
        self.fill_value = config.aligner.fill_value
        self.max_residual_px = config.aligner.max_residual_px
        self.detection_sigma = config.aligner.detection_sigma
        self.min_area = config.aligner.min_area
        self.max_control_points = config.aligner.max_control_points

    def fit_transform(self, correspondences: Sequence[PointCorrespondence]) -> GeometricTransform:
        """Least-squares transform from moving to fixed coordinates.

        Raises
        ------
        DegenerateCorrespondenceError
            Fewer than three pairs, or source/destination points that are
            collinear (the system is rank-deficient).
        """
        if len(correspondences) < MIN_CORRESPONDENCES:
            raise DegenerateCorrespondenceError(
                f"Need at least {MIN_CORRESPONDENCES} correspondences, got {len(correspondences)}"
            )

        src = np.array([c.source for c in correspondences], dtype=float).reshape(-1, 2)
        dst = np.array([c.destination for c in correspondences], dtype=float).reshape(-1, 2)
        _check_spread(src, "Source")
        _check_spread(dst, "Destination")

        tform = estimate_transform(self.model, src, dst)
        params = getattr(tform, "params", None)
        if params is None or not np.all(np.isfinite(params)):
            raise DegenerateCorrespondenceError(f"{self.model} fit did not converge")

        transform = GeometricTransform.from_matrix(params, model=self.model)
        errors = np.linalg.norm(transform.apply(src) - dst, axis=1)
        residual = float(np.sqrt(np.mean(errors ** 2)))

        return GeometricTransform(transform.linear, transform.translation, residual, self.model)

    def check_residual(self, transform: GeometricTransform) -> GeometricTransform:
        """Raise ``AlignmentFailure`` when the fit residual is too large."""
        if not np.isfinite(transform.residual) or transform.residual > self.max_residual_px:
            raise AlignmentFailure(
                f"Residual {transform.residual:.3f} px exceeds {self.max_residual_px} px"
            )
        return transform

    def resample(self, frame: ImageFrame, transform: GeometricTransform, target_shape) -> ImageFrame:
        """Pull ``frame`` onto a grid of ``target_shape`` through ``transform``.

        Returns a new frame sharing the header and timestamp of ``frame``.
        """
        target_shape = tuple(int(n) for n in target_shape)
        if transform.is_identity and frame.shape == target_shape:
            return frame.with_pixels(frame.pixels.copy())

        inverse_map = AffineTransform(matrix=transform.matrix).inverse
        # frame pixels are read-only; warp needs a writable buffer
        pixels = warp(
            np.array(frame.pixels),
            inverse_map,
            output_shape=target_shape,
            order=self.order,
            mode="constant",
            cval=self.fill_value,
            preserve_range=True,
        )
        return frame.with_pixels(pixels)

    def register(self, moving: ImageFrame, fixed: ImageFrame) -> Tuple[GeometricTransform, ImageFrame]:
        """Align ``moving`` onto ``fixed`` by matching star asterisms.

        The control points found by ``astroalign`` are re-fitted with
        ``fit_transform`` so the transform model and residual are the same
        as for hand-picked correspondences.

        Raises
        ------
        AlignmentFailure
            If no consistent asterism match is found.
        DegenerateCorrespondenceError
            If the matched control points cannot constrain the model.
        """
        try:
            _, (src, dst) = astroalign.find_transform(
                np.array(moving.pixels),
                np.array(fixed.pixels),
                max_control_points=self.max_control_points,
                detection_sigma=self.detection_sigma,
                min_area=self.min_area,
            )
        except (astroalign.MaxIterError, ValueError, TypeError) as e:
            raise AlignmentFailure(f"Asterism matching failed for {moving.source}: {e}") from e

        correspondences = [PointCorrespondence(tuple(s), tuple(d)) for s, d in zip(src, dst)]
        logger.debug("astroalign matched %d control points for %s", len(correspondences), moving.source)

        transform = self.fit_transform(correspondences)
        return transform, self.resample(moving, transform, fixed.shape)
