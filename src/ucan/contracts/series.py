"""Photometric series contract.

Enforces the guarantee that a light-curve table is time ordered, carries
the same aperture columns on every row and holds only finite fluxes.
"""

from typing import Sequence

import numpy as np
import pandas as pd
from ucan.contracts.base import require


def assert_series(df: pd.DataFrame, aperture_ids: Sequence[str]) -> None:
    """Enforce series stage contract.

    Called after ``PhotometricSeriesBuilder.build_series``. We do NOT check
    the photometric values themselves, only the table structure.

    Parameters
    ----------
    df : pd.DataFrame
        Series table with ``time``, ``frame_index`` and aperture columns.

    aperture_ids : sequence of str
        Aperture column names expected in the table, in order.

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Series contract violated: output is {type(df)}, expected DataFrame"
    )

    for col in ["time", "frame_index", *aperture_ids]:
        require(
            col in df.columns,
            f"Series contract violated: missing required column '{col}'"
        )

    extra = [c for c in df.columns if c not in {"time", "frame_index", *aperture_ids}]
    require(
        not extra,
        f"Series contract violated: unexpected columns {extra}"
    )

    if len(df) > 1:
        require(
            bool((df["time"].diff().iloc[1:] > pd.Timedelta(0)).all()),
            "Series contract violated: time must be strictly increasing"
        )

    if len(df) > 0 and aperture_ids:
        values = df[list(aperture_ids)].to_numpy(dtype=float)
        require(
            bool(np.isfinite(values).all()),
            "Series contract violated: non-finite flux values"
        )
