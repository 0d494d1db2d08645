import numpy as np
import pytest

from ucan.imaging import PointCorrespondence
from tests.helpers.fake_frames import make_shifted_series

SHIFT = np.array([2.0, 1.0])


@pytest.fixture
def shifted_frames():
    """Four frames of one star field drifting by (2, 1) px per frame."""
    frames, positions = make_shifted_series(n=4, shift=tuple(SHIFT))
    return frames, positions


@pytest.fixture
def picks(shifted_frames):
    """Factory for exact point picks from frame ``i`` onto frame ``ref``."""
    _, positions = shifted_frames

    def _picks(i, ref=0, n=5):
        src = positions[:n] + SHIFT * i
        dst = positions[:n] + SHIFT * ref
        return [PointCorrespondence(tuple(s), tuple(d)) for s, d in zip(src, dst)]

    return _picks


@pytest.fixture
def manual_config(make_config):
    """Manual alignment, drop policy, serial."""
    return make_config(ALIGN_METHOD="manual")

