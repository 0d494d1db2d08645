"""Visualization modules.

- plotter: Light curves and aperture overlays
"""

from ucan.visualization.plotter import LightCurvePlotter

__all__ = ["LightCurvePlotter"]
