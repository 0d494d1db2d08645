"""Frame I/O, calibration, photometry, source detection and alignment."""

from ucan.imaging.frame import ImageFrame, header_field, parse_timestamp, frames_to_dataarray
from ucan.imaging.loader import FrameLoader, read_fits
from ucan.imaging.calibration import subtract_dark
from ucan.imaging.photometry import Aperture, aperture_mask, sum_apertures, aperture_ids
from ucan.imaging.sources import (
    SourceCandidate,
    estimate_background,
    detect_sources,
    select_brightest,
    TargetLocator,
)
from ucan.imaging.aligner import PointCorrespondence, GeometricTransform, FrameAligner

__all__ = [
    'ImageFrame',
    'header_field',
    'parse_timestamp',
    'frames_to_dataarray',
    'FrameLoader',
    'read_fits',
    'subtract_dark',
    'Aperture',
    'aperture_mask',
    'sum_apertures',
    'aperture_ids',
    'SourceCandidate',
    'estimate_background',
    'detect_sources',
    'select_brightest',
    'TargetLocator',
    'PointCorrespondence',
    'GeometricTransform',
    'FrameAligner',
]
