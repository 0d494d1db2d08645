"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

from datetime import datetime, timedelta

import pytest
import pandas as pd
import numpy as np

pytestmark = pytest.mark.unit

from ucan.contracts import (
    ContractViolation,
    FailurePolicy,
    require,
    assert_frame,
    assert_aligned,
    assert_series,
)
from tests.helpers.fake_frames import T0, make_frame


def _series(times, **columns):
    data = {"time": pd.to_datetime(times, utc=True), "frame_index": range(len(times))}
    data.update(columns)
    return pd.DataFrame(data)


class TestRequire:

    def test_require_passes_on_true(self):
        require(True, "never raised")

    def test_require_raises_with_message(self):
        with pytest.raises(ContractViolation, match="broken"):
            require(False, "broken")

    def test_contract_violation_is_runtime_error(self):
        assert issubclass(ContractViolation, RuntimeError)


class TestFailurePolicy:

    def test_values(self):
        assert FailurePolicy("drop") is FailurePolicy.DROP
        assert FailurePolicy("reuse_previous") is FailurePolicy.REUSE_PREVIOUS


class TestFrameContract:
    """Test load stage contract."""

    def test_frame_contract_passes(self):
        assert_frame(make_frame(np.ones((4, 5))))

    def test_frame_contract_fails_on_naive_timestamp(self):
        frame = make_frame(np.ones((4, 4)), t=datetime(2024, 1, 1))
        with pytest.raises(ContractViolation, match="timezone-aware"):
            assert_frame(frame)

    def test_frame_contract_fails_on_3d_pixels(self):
        frame = make_frame(np.ones((2, 4, 4)))
        with pytest.raises(ContractViolation, match="3 dims"):
            assert_frame(frame)

    def test_frame_contract_fails_on_empty(self):
        frame = make_frame(np.ones((0, 4)))
        with pytest.raises(ContractViolation, match="empty"):
            assert_frame(frame)


class TestAlignedContract:
    """Test alignment stage contract."""

    def test_aligned_contract_passes(self):
        frames = [make_frame(np.ones((4, 4)), t=T0 + timedelta(seconds=i)) for i in range(3)]
        assert_aligned(frames, (4, 4))

    def test_aligned_contract_fails_on_shape(self):
        frames = [make_frame(np.ones((4, 4))), make_frame(np.ones((4, 5)), t=T0 + timedelta(seconds=1))]
        with pytest.raises(ContractViolation, match="frame 1 has shape"):
            assert_aligned(frames, (4, 4))

    def test_aligned_contract_fails_on_order(self):
        frames = [make_frame(np.ones((4, 4)), t=T0 + timedelta(seconds=5)), make_frame(np.ones((4, 4)))]
        with pytest.raises(ContractViolation, match="time order"):
            assert_aligned(frames, (4, 4))


class TestSeriesContract:
    """Test series stage contract."""

    def test_series_contract_passes(self):
        df = _series([T0, T0 + timedelta(seconds=4)], ap0=[1.0, 2.0])
        assert_series(df, ["ap0"])

    def test_series_contract_passes_when_empty(self):
        df = pd.DataFrame(columns=["time", "frame_index", "ap0"])
        assert_series(df, ["ap0"])

    def test_series_contract_fails_on_missing_column(self):
        df = _series([T0], ap0=[1.0])
        with pytest.raises(ContractViolation, match="missing required column 'ap1'"):
            assert_series(df, ["ap0", "ap1"])

    def test_series_contract_fails_on_extra_column(self):
        df = _series([T0], ap0=[1.0], ap1=[2.0])
        with pytest.raises(ContractViolation, match="unexpected columns"):
            assert_series(df, ["ap0"])

    def test_series_contract_fails_on_duplicate_time(self):
        df = _series([T0, T0], ap0=[1.0, 2.0])
        with pytest.raises(ContractViolation, match="strictly increasing"):
            assert_series(df, ["ap0"])

    def test_series_contract_fails_on_nan(self):
        df = _series([T0, T0 + timedelta(seconds=1)], ap0=[1.0, np.nan])
        with pytest.raises(ContractViolation, match="non-finite"):
            assert_series(df, ["ap0"])


class TestInvariantRegistry:

    def test_every_stage_has_a_requirement(self):
        from ucan.contracts.invariants import PIPELINE_INVARIANTS, STAGE_REQUIREMENTS

        assert set(PIPELINE_INVARIANTS) <= set(STAGE_REQUIREMENTS)
        assert set(STAGE_REQUIREMENTS.values()) <= {"REQUIRED", "OPTIONAL"}
