"""AAVSO Target Tool client and eclipsing-binary observing shortlist.

Thin wrapper around the Target Tool REST API
(https://targettool.aavso.org/TargetTool/api). Authentication is HTTP
basic auth with the personal API key as user name and the literal
password ``api_token``.
"""

import logging

import pandas as pd
import requests
from astropy import units as u
from astropy.coordinates import SkyCoord

from ucan.analysis.quantities import (
    DEFAULT_BASELINE,
    ExposureBaseline,
    flux_factor,
    max_gain,
    recommended_gain,
)
from ucan.errors import CatalogQueryError

__all__ = ['AAVSOClient', 'select_candidates', 'ephemeris_url']

logger = logging.getLogger(__name__)

TARGET_TOOL_URL = "https://targettool.aavso.org/TargetTool/api/v1/targets"

CANDIDATE_COLUMNS = [
    "star_name", "period", "ra", "ra_deci", "dec", "dec_deci",
    "V_mag", "gain", "ephem_url",
]


class AAVSOClient:
    """Query the AAVSO Target Tool.

    Parameters
    ----------
    api_key : str
        Personal API key shown on the Target Tool API page.
    timeout : float
        Seconds before a request is abandoned. There are no retries.
    url : str
        Targets endpoint.

    Examples
    --------
    >>> client = AAVSOClient(Path("data/.aavso_key").read_text().strip())
    >>> targets = client.query_targets(obs_section="eb", orderby="period")
    >>> shortlist = select_candidates(targets)
    """

    def __init__(self, api_key: str, timeout: float = 30.0, url: str = TARGET_TOOL_URL):
        if not api_key:
            raise ValueError("An AAVSO API key is required")
        self.api_key = api_key
        self.timeout = timeout
        self.url = url

    def query_targets(self, obs_section: str = "eb", orderby: str = "period", **params) -> pd.DataFrame:
        """Fetch targets as a DataFrame (one row per target).

        Extra keyword arguments are passed as query parameters (e.g.
        ``latitude``, ``longitude``, ``observable``).

        Raises
        ------
        CatalogQueryError
            On network errors, HTTP errors or an unexpected response body.
        """
        query = {"obs_section": obs_section, "orderby": orderby, **params}
        logger.info("Querying AAVSO Target Tool: %s", query)

        try:
            response = requests.get(
                self.url,
                params=query,
                auth=(self.api_key, "api_token"),
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise CatalogQueryError(f"AAVSO request failed: {e}") from e
        except ValueError as e:
            raise CatalogQueryError(f"AAVSO response is not JSON: {e}") from e

        if not isinstance(body, dict) or not isinstance(body.get("targets"), list):
            raise CatalogQueryError("AAVSO response has no 'targets' list")

        df = pd.DataFrame(body["targets"])
        logger.info("AAVSO returned %d target(s)", len(df))
        return df


def ephemeris_url(other_info: str) -> str:
    """Pull the ephemeris link out of a ``[[Ephemeris info <url>]]`` note."""
    return other_info.split("Ephemeris info ")[-1].split("]]")[0]


def select_candidates(
    targets: pd.DataFrame,
    baseline: ExposureBaseline = DEFAULT_BASELINE,
    t_exp: float = 4000.0,
    min_faint_mag: float = 9.0,
    min_amplitude: float = 0.5,
    max_period: float = 3.0,
    band: str = "V",
) -> pd.DataFrame:
    """Shortlist eclipsing binaries worth observing with a smart telescope.

    Keeps targets fainter than ``min_faint_mag`` at minimum, with at least
    ``min_amplitude`` mag of depth measured in ``band``, a period of at
    most ``max_period`` days and a published ephemeris. Adds the mean
    magnitude, the recommended gain at ``t_exp`` ms and sexagesimal
    coordinates.

    Returns
    -------
    pd.DataFrame
        Columns: star_name, period (days), ra, ra_deci, dec, dec_deci,
        V_mag, gain, ephem_url; sorted by period.
    """
    required = ["star_name", "period", "ra", "dec", "min_mag", "max_mag",
                "min_mag_band", "max_mag_band", "other_info"]
    missing = [c for c in required if c not in targets.columns]
    if missing:
        raise CatalogQueryError(f"Target table is missing columns {missing}")

    df = targets.dropna(subset=required)
    df = df[
        (df["min_mag"] > min_faint_mag)
        & (df["min_mag"] - df["max_mag"] >= min_amplitude)
        & (df["min_mag_band"] == band)
        & (df["max_mag_band"] == band)
        & (df["period"] <= max_period)
        & df["other_info"].astype(str).str.startswith("[[Ephemeris")
    ].copy()

    if df.empty:
        return pd.DataFrame(columns=CANDIDATE_COLUMNS)

    df["ephem_url"] = df["other_info"].map(ephemeris_url)
    df["V_mag"] = (df["min_mag"] + df["max_mag"]) / 2.0
    df["gain"] = [
        recommended_gain(max_gain(flux_factor(v, t_exp, baseline), baseline))
        for v in df["V_mag"]
    ]

    coords = SkyCoord(ra=df["ra"].to_numpy(float) * u.deg, dec=df["dec"].to_numpy(float) * u.deg)
    df["ra_deci"] = df["ra"].astype(float)
    df["dec_deci"] = df["dec"].astype(float)
    df["ra"] = coords.ra.to_string(unit=u.hour, sep=":", precision=1)
    df["dec"] = coords.dec.to_string(unit=u.deg, sep=":", precision=0, alwayssign=True)

    return df.sort_values("period").reset_index(drop=True)[CANDIDATE_COLUMNS]
