"""Pipeline modules.

- alignment: Align a frame sequence onto a reference frame
- series: Aperture light curves and normalization
- orchestrator: End-to-end run controller
"""

from ucan.pipeline.alignment import (
    AlignmentPipeline,
    AlignmentResult,
    AlignmentState,
    FrameAlignmentRecord,
)
from ucan.pipeline.series import PhotometricSeriesBuilder, SeriesFailure, normalize
from ucan.pipeline.orchestrator import LightCurveOrchestrator, RunSummary

__all__ = [
    "AlignmentPipeline",
    "AlignmentResult",
    "AlignmentState",
    "FrameAlignmentRecord",
    "PhotometricSeriesBuilder",
    "SeriesFailure",
    "normalize",
    "LightCurveOrchestrator",
    "RunSummary",
]
