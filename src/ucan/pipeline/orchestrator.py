"""Light-curve run orchestration.

Runs one batch end to end: load frames, subtract the master dark, align
onto the reference frame, measure apertures, normalize, and persist the
series, the aligned stack and plots. Per-frame problems degrade the run
(fewer rows); configuration problems and contract violations stop it.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

import pandas as pd

from ucan.contracts import ContractViolation
from ucan.errors import LoadError, NormalizationError
from ucan.imaging.aligner import PointCorrespondence
from ucan.imaging.calibration import subtract_dark
from ucan.imaging.frame import frames_to_dataarray
from ucan.imaging.loader import FrameLoader
from ucan.imaging.photometry import Aperture
from ucan.imaging.sources import TargetLocator
from ucan.pipeline.alignment import AlignmentPipeline, AlignmentResult
from ucan.pipeline.series import PhotometricSeriesBuilder, SeriesFailure, normalize
from ucan.setup_directories import get_aligned_path, get_log_path, get_plot_path, get_series_path
from ucan.visualization.plotter import LightCurvePlotter

if TYPE_CHECKING:
    from ucan.schemas import InternalConfig

__all__ = ['LightCurveOrchestrator', 'RunSummary']

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """What a run produced and what it had to leave out."""

    n_input: int = 0
    load_failures: List[tuple] = field(default_factory=list)
    alignment: Optional[AlignmentResult] = None
    series: Optional[pd.DataFrame] = None
    normalized: Optional[pd.DataFrame] = None
    series_failures: List[SeriesFailure] = field(default_factory=list)
    normalization_error: Optional[str] = None
    outputs: Dict[str, str] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def n_aligned(self) -> int:
        return len(self.alignment) if self.alignment is not None else 0

    @property
    def n_series(self) -> int:
        return len(self.series) if self.series is not None else 0

    def dropped(self) -> List[tuple]:
        """(stage, frame index, source, reason) for every frame left out.

        Files that never loaded have no frame index (``None``).
        """
        rows = [("load", None, path, reason) for path, reason in self.load_failures]
        if self.alignment is not None:
            for rec in self.alignment.dropped:
                rows.append(("alignment", rec.index, rec.source, rec.reason))
        for f in self.series_failures:
            rows.append(("photometry", f.frame_index, f.source, f.error))
        return rows


class LightCurveOrchestrator:
    """Run the photometry pipeline for one configured batch.

    Parameters
    ----------
    config : InternalConfig
        Fully resolved configuration. ``input_dir`` must be set.
    output_dirs : dict
        Paths from ``setup_output_directories``.

    Example usage::

        config = resolve_config(ParamConfig(), user_cfg, cli_cfg)
        output_dirs = setup_output_directories(config.base_dir)
        summary = LightCurveOrchestrator(config, output_dirs).run()
        print(summary.n_aligned, summary.n_series)
    """

    def __init__(self, config: "InternalConfig", output_dirs: Dict[str, Path]):
        self.config = config
        self.output_dirs = {k: Path(v) for k, v in output_dirs.items()}
        self.run_name = config.run_name

        self.loader = FrameLoader(config)
        self.alignment = AlignmentPipeline(config)
        self.builder = PhotometricSeriesBuilder(config)
        self.plotter = LightCurvePlotter(config) if config.visualization.enabled else None

    def _setup_logging(self):
        """Configure root logger with file and console handlers."""
        log_level = getattr(logging, self.config.logging.level)
        log_path = get_log_path(self.output_dirs, self.run_name)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def _persist_config(self):
        """Save the resolved configuration next to the outputs."""
        path = self.output_dirs["base"] / f"runtime_config_{self.run_name}.json"
        config_dict = self.config.model_dump()
        config_dict["created_at"] = datetime.now(timezone.utc).isoformat()
        with open(path, 'w') as f:
            json.dump(config_dict, f, indent=2, default=str)
        logger.info("Runtime config saved: %s", path)
        return path

    def stop(self):
        """Stop aligning frames that have not started yet."""
        self.alignment.stop()

    def _input_paths(self) -> List[Path]:
        if not self.config.input_dir:
            raise ValueError("input_dir is not configured")
        input_dir = Path(self.config.input_dir).expanduser()
        if not input_dir.is_dir():
            raise FileNotFoundError(f"Input directory not found: {input_dir}")
        return sorted(input_dir.glob(self.config.reader.file_pattern))

    def _load(self):
        paths = self._input_paths()
        logger.info("Found %d file(s) matching %s", len(paths), self.config.reader.file_pattern)
        frames = self.loader.load_many(paths)
        if not frames:
            raise LoadError(f"No readable frames in {self.config.input_dir}")

        dark = None
        if self.config.calibration.dark_path:
            dark = self.loader.load_pixels(self.config.calibration.dark_path)
            frames = [subtract_dark(f, dark) for f in frames]
            logger.info("Dark subtracted: %s", self.config.calibration.dark_path)
        return frames, dark

    def _resolve_picks(self, frames, correspondences):
        """Map picks keyed by frame file name onto positions in ``frames``.

        Positions shift when files are skipped or re-sorted at load time,
        so only file names are accepted as keys. Names matching no loaded
        frame are logged and ignored; the frames they were meant for then
        fail alignment for lack of picks.
        """
        if not correspondences:
            return None

        positions = {Path(f.source).name: i for i, f in enumerate(frames) if f.source}
        resolved = {}
        for name, pairs in correspondences.items():
            if not isinstance(name, str):
                raise ValueError(f"Manual picks must be keyed by frame file name, got {name!r}")
            index = positions.get(Path(name).name)
            if index is None:
                logger.warning("Picks for %s match no loaded frame", name)
                continue
            resolved[index] = pairs
        return resolved

    def _measure(self, frames, dark):
        if self.config.photometry.tracking:
            locator = TargetLocator(self.config, error=dark)
            return self.builder.build_tracked_series(frames, locator)

        apertures = [Aperture.from_config(ap) for ap in self.config.photometry.apertures]
        if not apertures:
            raise ValueError("No apertures configured and tracking is off")
        return self.builder.build_series(frames, apertures)

    def _save(self, summary: RunSummary):
        out = self.config.output
        if out.save_series and summary.series is not None:
            tables = {"series": summary.series}
            if summary.normalized is not None:
                tables["series_normalized"] = summary.normalized
            for key, df in tables.items():
                name = self.run_name if key == "series" else f"{self.run_name}_normalized"
                path = get_series_path(self.output_dirs, name, out.series_format)
                if out.series_format == "parquet":
                    compression = None if out.compression == "none" else out.compression
                    df.to_parquet(path, engine="pyarrow", compression=compression, index=False)
                else:
                    df.to_csv(path, index=False)
                summary.outputs[key] = str(path)
                logger.info("Saved %s: %s (%d rows)", key, path, len(df))

        if out.save_aligned_stack and summary.n_aligned:
            path = get_aligned_path(self.output_dirs, self.run_name)
            da = frames_to_dataarray(summary.alignment.frames)
            da.to_netcdf(path)
            summary.outputs["aligned_stack"] = str(path)
            logger.info("Saved aligned stack: %s %s", path, da.shape)

    def _plot(self, summary: RunSummary):
        if self.plotter is None:
            return
        table = summary.normalized if summary.normalized is not None else summary.series
        if table is not None and len(table):
            summary.outputs["lightcurve_plot"] = self.plotter.plot_light_curve(
                table,
                get_plot_path(self.output_dirs, self.run_name, "lightcurve"),
                title=self.run_name,
                ylabel="Relative flux" if summary.normalized is not None else "Flux",
            )
        if summary.n_aligned:
            ref_pos = summary.alignment.input_indices.index(self.config.aligner.reference_index)
            apertures = [Aperture.from_config(ap) for ap in self.config.photometry.apertures]
            summary.outputs["reference_plot"] = self.plotter.plot_frame(
                summary.alignment.frames[ref_pos],
                get_plot_path(self.output_dirs, self.run_name, "reference"),
                apertures=[] if self.config.photometry.tracking else apertures,
            )

    def run(self, correspondences: Optional[Dict[str, Sequence[PointCorrespondence]]] = None) -> RunSummary:
        """Execute the run and return its summary.

        Parameters
        ----------
        correspondences : dict, optional
            Frame file name -> point pairs for manual alignment.

        Raises
        ------
        ContractViolation
            A stage broke its guarantees (pipeline bug).
        LoadError, ValueError, FileNotFoundError
            Nothing usable to process.
        """
        self._setup_logging()
        start = time.time()

        logger.info("=" * 60)
        logger.info("Starting light-curve run: %s", self.run_name)
        logger.info("=" * 60)
        self._persist_config()

        summary = RunSummary()
        try:
            frames, dark = self._load()
            summary.n_input = len(frames)
            summary.load_failures = list(self.loader.skipped)

            picks = self._resolve_picks(frames, correspondences)
            summary.alignment = self.alignment.align_series(frames, picks)
            summary.series = self._measure(summary.alignment.frames, dark)
            summary.series_failures = list(self.builder.failures)

            method = self.config.series.normalization
            if method != "none":
                try:
                    summary.normalized = normalize(
                        summary.series, method, self.config.series.reference_aperture
                    )
                except NormalizationError as e:
                    summary.normalization_error = str(e)
                    logger.error("Normalization failed, keeping raw series: %s", e)

            self._save(summary)
            self._plot(summary)

        except ContractViolation as e:
            logger.critical("Pipeline contract violated: %s", e)
            logger.critical("This indicates a bug in pipeline logic. Stopping run.")
            raise

        summary.elapsed = time.time() - start
        logger.info("=" * 60)
        logger.info("Run complete in %.1f s: input=%d aligned=%d series=%d dropped=%d",
                    summary.elapsed, summary.n_input, summary.n_aligned,
                    summary.n_series, len(summary.dropped()))
        logger.info("=" * 60)
        return summary
