"""Tests for ImageFrame, timestamps, stacking and dark subtraction."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from ucan.errors import MissingHeaderField
from ucan.imaging import (
    ImageFrame,
    frames_to_dataarray,
    header_field,
    parse_timestamp,
    subtract_dark,
)
from tests.helpers.fake_frames import T0, make_frame


class TestImageFrame:

    def test_pixels_are_read_only(self):
        frame = make_frame(np.zeros((3, 4)))
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 1.0

    def test_frame_is_frozen(self):
        frame = make_frame(np.zeros((3, 4)))
        with pytest.raises(FrozenInstanceError):
            frame.pixels = np.ones((3, 4))

    def test_header_is_read_only(self):
        frame = make_frame(np.zeros((3, 4)))
        with pytest.raises(TypeError):
            frame.header["EXPTIME"] = 1.0

    def test_input_array_is_copied(self):
        arr = np.zeros((3, 4))
        frame = make_frame(arr)
        arr[0, 0] = 5.0
        assert frame.pixels[0, 0] == 0.0

    def test_shape_is_height_width(self):
        assert make_frame(np.zeros((3, 4))).shape == (3, 4)

    def test_with_pixels_keeps_metadata(self):
        frame = make_frame(np.zeros((3, 4)), source="a.fits")
        new = frame.with_pixels(np.ones((3, 4)))
        assert new is not frame
        assert new.timestamp == frame.timestamp
        assert new.source == "a.fits"
        assert new.header["EXPTIME"] == frame.header["EXPTIME"]
        assert frame.pixels.sum() == 0.0


class TestHeaderField:

    def test_present_key(self):
        frame = make_frame(np.zeros((2, 2)))
        assert header_field(frame, "EXPTIME") == 3.2

    def test_missing_key_raises(self):
        frame = make_frame(np.zeros((2, 2)), source="frame_007.fits")
        with pytest.raises(MissingHeaderField, match="GAIN.*frame_007.fits"):
            header_field(frame, "GAIN")

    def test_missing_key_is_key_error(self):
        frame = make_frame(np.zeros((2, 2)))
        with pytest.raises(KeyError):
            header_field(frame, "GAIN")


class TestParseTimestamp:

    def test_iso_with_z(self):
        ts = parse_timestamp("2024-03-05T04:12:00Z")
        assert ts == T0
        assert ts.utcoffset() == timedelta(0)

    def test_naive_string_is_utc(self):
        assert parse_timestamp("2024-03-05T04:12:00.000") == T0

    def test_offset_is_converted(self):
        ts = parse_timestamp("2024-03-05T06:12:00+02:00")
        assert ts == T0
        assert ts.utcoffset() == timedelta(0)

    def test_datetime_input(self):
        assert parse_timestamp(datetime(2024, 3, 5, 4, 12)) == T0

    @pytest.mark.parametrize("value", ["not a time", None, ""])
    def test_garbage_raises(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    @pytest.mark.parametrize("value", [60374.175, 2460374, 1.7e18])
    def test_numbers_are_not_epoch_offsets(self, value):
        with pytest.raises(ValueError, match="Unsupported timestamp type"):
            parse_timestamp(value)


class TestFramesToDataArray:

    def test_stack_dims_and_coords(self):
        frames = [make_frame(np.full((3, 4), i), t=T0 + timedelta(seconds=4 * i), source=f"f{i}")
                  for i in range(3)]
        da = frames_to_dataarray(frames)

        assert da.dims == ("time", "y", "x")
        assert da.shape == (3, 3, 4)
        assert list(da["source"].values) == ["f0", "f1", "f2"]
        assert da["time"].values[0] == np.datetime64("2024-03-05T04:12:00")
        assert float(da.isel(time=2).mean()) == 2.0

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            frames_to_dataarray([])

    def test_mixed_shapes_raise(self):
        frames = [make_frame(np.zeros((3, 4))), make_frame(np.zeros((4, 4)))]
        with pytest.raises(ValueError, match="differing shapes"):
            frames_to_dataarray(frames)


class TestSubtractDark:

    def test_subtract_array(self):
        frame = make_frame(np.full((3, 3), 10.0))
        out = subtract_dark(frame, np.full((3, 3), 4.0))
        np.testing.assert_allclose(out.pixels, 6.0)
        np.testing.assert_allclose(frame.pixels, 10.0)

    def test_subtract_frame(self):
        frame = make_frame(np.full((3, 3), 10.0))
        dark = make_frame(np.full((3, 3), 1.5))
        np.testing.assert_allclose(subtract_dark(frame, dark).pixels, 8.5)

    def test_shape_mismatch_raises(self):
        frame = make_frame(np.zeros((3, 3)))
        with pytest.raises(ValueError, match="does not match"):
            subtract_dark(frame, np.zeros((2, 3)))
