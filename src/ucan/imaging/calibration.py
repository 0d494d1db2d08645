"""Dark-frame calibration."""

import logging

import numpy as np

from ucan.imaging.frame import ImageFrame

__all__ = ['subtract_dark']

logger = logging.getLogger(__name__)


def subtract_dark(frame: ImageFrame, dark) -> ImageFrame:
    """Subtract a master dark from a frame.

    Parameters
    ----------
    frame : ImageFrame
        Raw exposure.
    dark : ImageFrame or array_like
        Master dark with the same shape.

    Returns
    -------
    ImageFrame
        New frame; ``frame`` is left untouched.

    Raises
    ------
    ValueError
        If the shapes differ.
    """
    dark_pixels = dark.pixels if isinstance(dark, ImageFrame) else np.asarray(dark, dtype=float)
    if dark_pixels.shape != frame.pixels.shape:
        raise ValueError(
            f"Dark shape {dark_pixels.shape} does not match frame shape {frame.pixels.shape}"
        )
    logger.debug("Dark subtracted from %s", frame.source)
    return frame.with_pixels(frame.pixels - dark_pixels)
