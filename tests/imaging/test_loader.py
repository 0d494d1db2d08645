"""Tests for FITS frame loading."""

from datetime import timedelta

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from ucan.errors import LoadError
from ucan.imaging import FrameLoader, read_fits
from tests.helpers.fake_frames import T0, write_fits


@pytest.fixture
def loader(internal_config):
    return FrameLoader(internal_config)


class TestReadFits:

    def test_reads_pixels_and_header(self, temp_dir):
        path = write_fits(temp_dir / "a.fits", np.arange(12).reshape(3, 4), EXPTIME=3.2)
        pixels, header = read_fits(path)

        assert pixels.shape == (3, 4)
        assert pixels.dtype == np.float64
        assert pixels[2, 3] == 11.0
        assert header["EXPTIME"] == pytest.approx(3.2)
        assert header["DATE-OBS"] == "2024-03-05T04:12:00.000"

    def test_single_plane_cube_is_squeezed(self, temp_dir):
        path = write_fits(temp_dir / "cube.fits", np.ones((1, 5, 6)))
        pixels, _ = read_fits(path)
        assert pixels.shape == (5, 6)

    def test_no_image_data(self, temp_dir):
        path = write_fits(temp_dir / "cube.fits", np.ones((3, 5, 6)))
        with pytest.raises(LoadError, match="No 2-D image data"):
            read_fits(path)

    def test_garbage_file(self, temp_dir):
        path = temp_dir / "junk.fits"
        path.write_bytes(b"this is not a FITS file")
        with pytest.raises(LoadError):
            read_fits(path)


class TestFrameLoader:

    def test_load_frame(self, loader, temp_dir):
        path = write_fits(temp_dir / "a.fits", np.full((4, 5), 7.0))
        frame = loader.load(path)

        assert frame.shape == (4, 5)
        assert frame.timestamp == T0
        assert frame.source == str(path)
        assert frame.header["DATE-OBS"] == "2024-03-05T04:12:00.000"

    def test_missing_file(self, loader, temp_dir):
        with pytest.raises(LoadError, match="File not found"):
            loader.load(temp_dir / "nope.fits")

    def test_missing_timestamp(self, loader, temp_dir):
        path = write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs=None)
        with pytest.raises(LoadError, match="DATE-OBS"):
            loader.load(path)

    def test_bad_timestamp(self, loader, temp_dir):
        path = write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs="not-a-date")
        with pytest.raises(LoadError, match="Bad 'DATE-OBS'"):
            loader.load(path)

    def test_numeric_timestamp_rejected(self, loader, temp_dir):
        path = write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs=60374.175)
        with pytest.raises(LoadError, match="Unsupported timestamp type"):
            loader.load(path)

    def test_custom_timestamp_key(self, make_config, temp_dir):
        loader = FrameLoader(make_config(TIMESTAMP_KEY="DATE-BEG"))
        path = write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs=None,
                          **{"DATE-BEG": "2024-03-05T04:12:08"})
        assert loader.load(path).timestamp == T0 + timedelta(seconds=8)

    def test_load_pixels_ignores_timestamp(self, loader, temp_dir):
        path = write_fits(temp_dir / "dark.fits", np.full((4, 5), 2.0), date_obs=None)
        pixels = loader.load_pixels(path)
        assert pixels.shape == (4, 5)
        assert pixels.mean() == 2.0

    def test_load_many_sorts_by_time(self, loader, temp_dir):
        # file names deliberately out of time order
        write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs="2024-03-05T04:12:08")
        write_fits(temp_dir / "b.fits", np.ones((4, 5)), date_obs="2024-03-05T04:12:00")
        write_fits(temp_dir / "c.fits", np.ones((4, 5)), date_obs="2024-03-05T04:12:04")

        frames = loader.load_many(sorted(temp_dir.glob("*.fits")))

        assert [f.source.rsplit("/", 1)[-1] for f in frames] == ["b.fits", "c.fits", "a.fits"]

    def test_load_many_skips_unreadable(self, loader, temp_dir):
        write_fits(temp_dir / "a.fits", np.ones((4, 5)))
        (temp_dir / "b.fits").write_bytes(b"garbage")

        frames = loader.load_many(sorted(temp_dir.glob("*.fits")))
        assert len(frames) == 1
        ((path, reason),) = loader.skipped
        assert path.endswith("b.fits")
        assert "b.fits" in reason

        loader.load_many([temp_dir / "a.fits"])
        assert loader.skipped == []

    def test_load_many_strict(self, make_config, temp_dir):
        loader = FrameLoader(make_config(reader={"skip_unreadable": False}))
        write_fits(temp_dir / "a.fits", np.ones((4, 5)))
        (temp_dir / "b.fits").write_bytes(b"garbage")

        with pytest.raises(LoadError):
            loader.load_many(sorted(temp_dir.glob("*.fits")))

    def test_scan_directory(self, loader, temp_dir):
        write_fits(temp_dir / "a.fits", np.ones((4, 5)), date_obs="2024-03-05T04:12:08", EXPTIME=3.2)
        write_fits(temp_dir / "b.fits", np.ones((4, 5)), date_obs="2024-03-05T04:12:00", EXPTIME=3.2)
        (temp_dir / "c.fits").write_bytes(b"garbage")
        (temp_dir / "notes.txt").write_text("not a frame")

        df = loader.scan_directory(temp_dir)

        assert list(df.columns) == ["path", "time", "EXPTIME", "GAIN", "INSTRUME"]
        assert len(df) == 2
        assert df["path"].iloc[0].endswith("b.fits")
        assert df["time"].is_monotonic_increasing
        assert df["GAIN"].isna().all()

    def test_scan_empty_directory(self, loader, temp_dir):
        df = loader.scan_directory(temp_dir)
        assert df.empty
        assert "time" in df.columns
