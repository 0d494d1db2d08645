"""Align an ordered frame sequence onto one reference frame.

Every non-reference frame walks ``PENDING -> ALIGNING -> {ALIGNED, FAILED}``.
A failure on one frame never aborts the series: it is captured in that
frame's ``FrameAlignmentRecord`` and resolved by the configured
``FailurePolicy`` (drop the frame, or reuse the last good transform).

Per-frame estimation may run in a thread pool; the reference frame is only
read by workers. Fallback resolution and output assembly are sequential.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

from ucan.contracts import ContractViolation, FailurePolicy, assert_aligned, assert_frame
from ucan.errors import AlignmentFailure, UcanError
from ucan.imaging.aligner import FrameAligner, GeometricTransform, PointCorrespondence
from ucan.imaging.frame import ImageFrame

if TYPE_CHECKING:
    from ucan.schemas import InternalConfig

__all__ = ['AlignmentState', 'FrameAlignmentRecord', 'AlignmentResult', 'AlignmentPipeline']

logger = logging.getLogger(__name__)


class AlignmentState(str, Enum):
    PENDING = "pending"
    ALIGNING = "aligning"
    ALIGNED = "aligned"
    FAILED = "failed"


@dataclass
class FrameAlignmentRecord:
    """Alignment diagnostics for one input frame."""

    index: int
    source: Optional[str] = None
    state: AlignmentState = AlignmentState.PENDING
    residual: Optional[float] = None
    transform: Optional[GeometricTransform] = None
    error: Optional[str] = None
    fallback: bool = False

    @property
    def reason(self) -> str:
        """Why the frame is not in the output (empty when it is)."""
        if self.state == AlignmentState.ALIGNED:
            return ""
        if self.error:
            return self.error
        return "not processed (run stopped)"


@dataclass
class AlignmentResult:
    """Aligned frames plus one record per input frame.

    Behaves as a read-only sequence of the aligned frames, so
    ``result[n]`` inspects the n-th aligned frame.
    """

    frames: List[ImageFrame] = field(default_factory=list)
    records: List[FrameAlignmentRecord] = field(default_factory=list)

    @property
    def dropped(self) -> List[FrameAlignmentRecord]:
        """Records of input frames missing from ``frames``."""
        return [r for r in self.records if r.state != AlignmentState.ALIGNED]

    @property
    def input_indices(self) -> List[int]:
        """Input index of each aligned frame."""
        return [r.index for r in self.records if r.state == AlignmentState.ALIGNED]

    def __len__(self):
        return len(self.frames)

    def __getitem__(self, i):
        return self.frames[i]

    def __iter__(self):
        return iter(self.frames)


class AlignmentPipeline:
    """Drive ``FrameAligner`` over a sequence of frames.

    Parameters
    ----------
    config : InternalConfig
        Uses the ``aligner`` section: ``method`` ("asterism" matches stars
        automatically, "manual" needs correspondences for every frame),
        ``reference_index``, ``failure_policy`` and ``max_workers``.
    aligner : FrameAligner, optional
        Injected aligner (tests); built from ``config`` otherwise.

    Examples
    --------
    >>> pipeline = AlignmentPipeline(config)
    >>> result = pipeline.align_series(frames)
    >>> len(result), [r.reason for r in result.dropped]
    (41, ['Residual 3.210 px exceeds 2.0 px'])
    """

    def __init__(self, config: "InternalConfig", aligner: Optional[FrameAligner] = None):
        self.config = config
        self.aligner = aligner or FrameAligner(config)
        self.method = config.aligner.method
        self.reference_index = config.aligner.reference_index
        self.failure_policy = FailurePolicy(config.aligner.failure_policy)
        self.max_workers = config.aligner.max_workers
        self._stop_event = threading.Event()

    def stop(self):
        """Stop aligning the frames that have not started yet."""
        self._stop_event.set()

    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def _align_one(
        self,
        frame: ImageFrame,
        reference: ImageFrame,
        record: FrameAlignmentRecord,
        pairs: Optional[Sequence[PointCorrespondence]],
    ) -> Optional[ImageFrame]:
        """Align one frame, filling in its record. Returns None on failure."""
        if self.stopped():
            return None

        record.state = AlignmentState.ALIGNING
        try:
            assert_frame(frame)
            aligned = None
            if pairs is not None:
                transform = self.aligner.fit_transform(pairs)
            elif self.method == "asterism":
                transform, aligned = self.aligner.register(frame, reference)
            else:
                raise AlignmentFailure("No point correspondences supplied for manual alignment")

            record.transform = transform
            record.residual = transform.residual
            self.aligner.check_residual(transform)

            if aligned is None:
                aligned = self.aligner.resample(frame, transform, reference.shape)

        except ContractViolation:
            raise

        except UcanError as e:
            record.state = AlignmentState.FAILED
            record.error = str(e)
            return None

        except Exception as e:
            logger.exception("Unexpected error aligning frame %d (%s)", record.index, frame.source)
            record.state = AlignmentState.FAILED
            record.error = f"{type(e).__name__}: {e}"
            return None

        record.state = AlignmentState.ALIGNED
        logger.debug("Aligned frame %d: residual=%.3f px", record.index, transform.residual)
        return aligned

    def _apply_fallback(self, frames, reference, records, outputs):
        """Resolve failed frames according to the failure policy (in order)."""
        last_good: Optional[GeometricTransform] = None

        for i, record in enumerate(records):
            if record.state == AlignmentState.ALIGNED:
                last_good = record.transform
                continue
            if record.state != AlignmentState.FAILED:
                continue

            if self.failure_policy == FailurePolicy.REUSE_PREVIOUS and last_good is not None:
                try:
                    outputs[i] = self.aligner.resample(frames[i], last_good, reference.shape)
                except ContractViolation:
                    raise
                except Exception as e:
                    logger.exception("Fallback resample failed for frame %d (%s)", i, frames[i].source)
                    record.error = f"{record.error}; fallback failed: {type(e).__name__}: {e}"
                    continue
                record.transform = last_good
                record.residual = last_good.residual
                record.state = AlignmentState.ALIGNED
                record.fallback = True
                logger.warning("Frame %d (%s): %s; reusing previous transform",
                               i, frames[i].source, record.error)
            else:
                logger.warning("Dropping frame %d (%s): %s", i, frames[i].source, record.error)

    def align_series(
        self,
        frames: Sequence[ImageFrame],
        correspondences: Optional[Dict[int, Sequence[PointCorrespondence]]] = None,
    ) -> AlignmentResult:
        """Align ``frames`` onto ``frames[reference_index]``.

        Parameters
        ----------
        frames : sequence of ImageFrame
            Time-ordered input frames.
        correspondences : dict, optional
            Frame index -> point pairs (moving -> reference). Frames without
            an entry are matched automatically when ``method`` is
            "asterism" and fail otherwise.

        Returns
        -------
        AlignmentResult
            Aligned frames in input order (reference unmodified) and one
            record per input frame.
        """
        frames = list(frames)
        correspondences = correspondences or {}
        if not frames:
            return AlignmentResult()

        ref_idx = self.reference_index
        if ref_idx >= len(frames):
            raise ValueError(f"reference_index {ref_idx} out of range for {len(frames)} frame(s)")

        reference = frames[ref_idx]
        assert_frame(reference)

        records = [FrameAlignmentRecord(index=i, source=f.source) for i, f in enumerate(frames)]
        outputs: List[Optional[ImageFrame]] = [None] * len(frames)

        ref_record = records[ref_idx]
        ref_record.state = AlignmentState.ALIGNED
        ref_record.transform = GeometricTransform.identity(self.aligner.model)
        ref_record.residual = 0.0
        outputs[ref_idx] = reference

        todo = [i for i in range(len(frames)) if i != ref_idx]
        logger.info("Aligning %d frame(s) to reference %d (%s)", len(todo), ref_idx, self.method)

        if self.max_workers > 1 and len(todo) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {
                    i: pool.submit(self._align_one, frames[i], reference, records[i], correspondences.get(i))
                    for i in todo
                }
                for i, future in futures.items():
                    outputs[i] = future.result()
        else:
            for i in todo:
                outputs[i] = self._align_one(frames[i], reference, records[i], correspondences.get(i))

        self._apply_fallback(frames, reference, records, outputs)

        result = AlignmentResult(
            frames=[out for out, rec in zip(outputs, records) if rec.state == AlignmentState.ALIGNED],
            records=records,
        )
        assert_aligned(result.frames, reference.shape)

        logger.info("Alignment complete: %d/%d frame(s) kept, %d dropped",
                    len(result), len(frames), len(result.dropped))
        return result
