"""Read telescope exposures into ``ImageFrame`` objects.

Each supported file format is a small reader adapter returning
``(pixels, header)``; the loader picks one by ``reader.file_format`` and
handles timestamp recovery, batch sorting and skipping of bad files the
same way for every format.

Currently only FITS (via ``astropy.io.fits``) is supported, which covers
the eVscope exports used in the labs.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Tuple
import logging

import numpy as np
import pandas as pd
from astropy.io import fits

from ucan.contracts import assert_frame
from ucan.errors import LoadError
from ucan.imaging.frame import ImageFrame, parse_timestamp

__all__ = ['FrameLoader', 'read_fits']

logger = logging.getLogger(__name__)


def read_fits(path: Path) -> Tuple[np.ndarray, dict]:
    """Return pixels and header of the first HDU holding 2-D image data.

    A cube with a single plane (``(1, h, w)``) is squeezed to 2-D.
    """
    try:
        with fits.open(path) as hdul:
            for hdu in hdul:
                data = hdu.data
                if data is None:
                    continue
                data = np.squeeze(np.asarray(data))
                if data.ndim != 2:
                    continue
                # FITS data is big-endian; copy into native float
                pixels = np.array(data, dtype=float)
                header = {key: value for key, value in hdu.header.items() if key}
                return pixels, header
    except (OSError, ValueError) as e:
        raise LoadError(f"Unreadable FITS file {path}: {e}") from e

    raise LoadError(f"No 2-D image data in {path}")


# file_format -> reader adapter
READERS: Dict[str, Callable[[Path], Tuple[np.ndarray, dict]]] = {
    "fits": read_fits,
}


class FrameLoader:
    """Load frame files according to the reader configuration.

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration; uses the ``reader`` section.

    Examples
    --------
    >>> loader = FrameLoader(config)
    >>> frames = loader.load_many(sorted(Path("data").glob("*.fits")))
    >>> frames[0].shape
    (1080, 1280)
    """

    def __init__(self, config):
        self.config = config
        self.file_format = config.reader.file_format
        self.timestamp_key = config.reader.timestamp_key
        self.header_keys = list(config.reader.header_keys)
        self.skip_unreadable = config.reader.skip_unreadable
        self.skipped: List[Tuple[str, str]] = []

    def _reader(self):
        try:
            return READERS[self.file_format]
        except KeyError:
            raise LoadError(f"Unsupported file format: {self.file_format!r}") from None

    def load_pixels(self, path) -> np.ndarray:
        """Read only the pixel array (master darks need no timestamp)."""
        path = Path(path)
        if not path.is_file():
            raise LoadError(f"File not found: {path}")
        pixels, _ = self._reader()(path)
        if pixels.size == 0:
            raise LoadError(f"Empty image in {path}")
        return pixels

    def load(self, path) -> ImageFrame:
        """Load one file.

        Raises
        ------
        LoadError
            If the file is missing, unparseable, holds no (or empty) 2-D
            image data, or has no recoverable timestamp.
        """
        path = Path(path)
        if not path.is_file():
            raise LoadError(f"File not found: {path}")

        pixels, header = self._reader()(path)

        if pixels.size == 0:
            raise LoadError(f"Empty image in {path}")

        if self.timestamp_key not in header:
            raise LoadError(f"No '{self.timestamp_key}' timestamp in {path}")
        try:
            timestamp = parse_timestamp(header[self.timestamp_key])
        except ValueError as e:
            raise LoadError(f"Bad '{self.timestamp_key}' in {path}: {e}") from e

        frame = ImageFrame(pixels=pixels, header=header, timestamp=timestamp, source=str(path))
        assert_frame(frame)

        logger.debug("Loaded %s: shape=%s time=%s", path.name, frame.shape, frame.timestamp.isoformat())
        return frame

    def load_many(self, paths: Iterable) -> List[ImageFrame]:
        """Load a batch of files, sorted by timestamp.

        Files raising ``LoadError`` are logged and skipped when
        ``reader.skip_unreadable`` is set, otherwise the error propagates.
        Skipped files are listed in ``skipped`` as ``(path, reason)``.
        """
        self.skipped = []
        frames = []
        for path in paths:
            try:
                frames.append(self.load(path))
            except LoadError as e:
                if not self.skip_unreadable:
                    raise
                self.skipped.append((str(path), str(e)))
                logger.warning("Skipping unreadable frame: %s", e)

        frames.sort(key=lambda f: f.timestamp)
        logger.info("Loaded %d frame(s)", len(frames))
        return frames

    def scan_directory(self, directory, pattern: str = None) -> pd.DataFrame:
        """List frame files in a directory with their times and header keys.

        Files that fail to read are left out (and
        logged) regardless of ``skip_unreadable``.

        Returns
        -------
        pd.DataFrame
            Columns ``path``, ``time`` and one per ``reader.header_keys``
            entry, sorted by time.
        """
        directory = Path(directory)
        pattern = pattern or self.config.reader.file_pattern
        columns = ["path", "time", *self.header_keys]

        rows = []
        for path in sorted(directory.glob(pattern)):
            try:
                _, header = self._reader()(path)
                time = parse_timestamp(header[self.timestamp_key])
            except (LoadError, KeyError, ValueError) as e:
                logger.warning("Cannot index %s: %s", path.name, e)
                continue

            row = {"path": str(path), "time": pd.Timestamp(time)}
            for key in self.header_keys:
                row[key] = header.get(key)
            rows.append(row)

        df = pd.DataFrame(rows, columns=columns)
        if not df.empty:
            df = df.sort_values("time").reset_index(drop=True)
        return df
