"""Light-curve and frame visualization.

Renders the photometric series (one line per aperture column) and a
z-scaled frame with its apertures drawn on top. Files only (Agg backend).
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.patches import Circle
from astropy.visualization import ZScaleInterval

from ucan.imaging.frame import ImageFrame
from ucan.imaging.photometry import Aperture, aperture_ids

__all__ = ['LightCurvePlotter']

logger = logging.getLogger(__name__)


class LightCurvePlotter:
    """Render light curves and aperture overlays to image files.

    Parameters
    ----------
    config : InternalConfig
        Uses the ``visualization`` section (dpi, figsize, output format,
        z-scale contrast, marker size).
    """

    def __init__(self, config):
        viz = config.visualization
        self.dpi = viz.dpi
        self.figsize = tuple(viz.figsize)
        self.output_format = viz.output_format
        self.zscale = ZScaleInterval(contrast=viz.zscale_contrast)
        self.marker_size = viz.marker_size

    def _save_figure(self, fig: plt.Figure, output_path: Path) -> str:
        """Save figure in configured format."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_file = output_path.with_suffix(f'.{self.output_format}')

        fig.savefig(output_file, dpi=self.dpi, bbox_inches='tight', format=self.output_format)
        plt.close(fig)
        logger.info("Plot saved: %s", output_file)
        return str(output_file)

    def plot_light_curve(
        self,
        series: pd.DataFrame,
        output_path: Path,
        title: Optional[str] = None,
        ylabel: str = "Flux",
    ) -> str:
        """Plot every aperture column of ``series`` against time."""
        columns = [c for c in series.columns if c not in ("time", "frame_index")]

        fig, ax = plt.subplots(figsize=self.figsize)
        for col in columns:
            ax.plot(series["time"], series[col], marker="o", markersize=self.marker_size,
                    linestyle="-", linewidth=0.8, label=col)

        ax.set_xlabel("Time (UTC)")
        ax.set_ylabel(ylabel)
        if title:
            ax.set_title(title)
        if columns:
            ax.legend(loc="best", fontsize=9)
        ax.grid(alpha=0.3)
        fig.autofmt_xdate()

        return self._save_figure(fig, output_path)

    def plot_frame(
        self,
        frame: ImageFrame,
        output_path: Path,
        apertures: Sequence[Aperture] = (),
        title: Optional[str] = None,
    ) -> str:
        """Show a frame with z-scale stretch and its apertures circled."""
        vmin, vmax = self.zscale.get_limits(frame.pixels)

        height, width = frame.shape
        fig, ax = plt.subplots(figsize=_frame_figsize(width, height, self.figsize))
        ax.imshow(frame.pixels, origin="lower", cmap="gray", vmin=vmin, vmax=vmax)

        for ap, label in zip(apertures, aperture_ids(apertures)):
            ax.add_patch(Circle((ap.x, ap.y), ap.r, fill=False, edgecolor="lime", linewidth=1.0))
            ax.annotate(label, (ap.x + ap.r, ap.y + ap.r), color="lime", fontsize=8)

        ax.set_xlabel("x (px)")
        ax.set_ylabel("y (px)")
        ax.set_title(title or frame.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"))

        return self._save_figure(fig, output_path)


def _frame_figsize(width: int, height: int, figsize: Tuple[float, float]) -> Tuple[float, float]:
    """Keep the configured figure width and follow the image aspect ratio."""
    w = figsize[0]
    return (w, max(w * height / width, 1.0))
