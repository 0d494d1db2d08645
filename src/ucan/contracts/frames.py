"""Frame and alignment stage contracts.

Enforces that loaded frames are usable 2-D images and that, after
alignment, every frame sits on the reference pixel grid.
"""

from typing import TYPE_CHECKING, Sequence, Tuple

import numpy as np
from ucan.contracts.base import require

if TYPE_CHECKING:
    from ucan.imaging.frame import ImageFrame


def assert_frame(frame: "ImageFrame") -> None:
    """Enforce load stage contract.

    Parameters
    ----------
    frame : ImageFrame
        Frame returned by the loader or a frame transformation.

    Raises
    ------
    ContractViolation
        If pixels are not a non-empty 2-D array or the timestamp is naive.
    """
    pixels = frame.pixels
    require(
        isinstance(pixels, np.ndarray),
        f"Frame contract violated: pixels is {type(pixels)}, expected ndarray"
    )
    require(
        pixels.ndim == 2,
        f"Frame contract violated: pixels has {pixels.ndim} dims, expected 2"
    )
    require(
        pixels.size > 0,
        "Frame contract violated: pixels array is empty"
    )
    require(
        frame.timestamp.tzinfo is not None,
        "Frame contract violated: timestamp must be timezone-aware"
    )


def assert_aligned(frames: Sequence["ImageFrame"], reference_shape: Tuple[int, int]) -> None:
    """Enforce alignment stage contract.

    Called after ``AlignmentPipeline.align_series``. Verifies that all
    returned frames share the reference grid and stay time ordered.

    Parameters
    ----------
    frames : sequence of ImageFrame
        Aligned output, reference frame included.

    reference_shape : tuple of int
        (height, width) of the reference frame.

    Raises
    ------
    ContractViolation
        If any frame differs in shape or the sequence is out of order.
    """
    reference_shape = tuple(reference_shape)
    for i, frame in enumerate(frames):
        require(
            frame.shape == reference_shape,
            f"Alignment contract violated: frame {i} has shape {frame.shape}, "
            f"expected {reference_shape}"
        )

    times = [frame.timestamp for frame in frames]
    require(
        all(a <= b for a, b in zip(times, times[1:])),
        "Alignment contract violated: output frames are not in time order"
    )
