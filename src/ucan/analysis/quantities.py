"""Physical quantities derived from measured frames and light curves.

Small, stateless formulas. Invalid (non-physical) inputs raise
``ValueError``; nothing here catches errors.

Notes
-----
``parallax_distance`` uses the small-angle shortcut
``d [AU] = 0.00138 * b [km] / theta [arcsec]``. The exact conversion
(``parallax_distance_exact``) differs slightly because 1 AU is not exactly
1 / 0.00138 * 206265 km.

The occultation formulas accept ``uncertainties`` values and propagate
their errors linearly, so a timing read off a light curve as ``5 +/- 0.5 s``
gives the chord with its error bar.
"""

from dataclasses import dataclass
import math

import numpy as np
from astropy import constants as const
from astropy import units as u
from uncertainties import UFloat, umath

__all__ = [
    'PLATE_SCALE_EVSCOPE2',
    'PARALLAX_CONSTANT',
    'parallax_shift_arcsec',
    'parallax_distance',
    'parallax_distance_exact',
    'percent_difference',
    'ExposureBaseline',
    'flux_factor',
    'max_gain',
    'recommended_gain',
    'orbital_velocity',
    'asteroid_diameter',
]

PLATE_SCALE_EVSCOPE2 = 1.326  # arcsec / px
PARALLAX_CONSTANT = 0.00138   # AU * arcsec / km
GAIN_STEP = 1.122             # flux ratio per dB of gain


def _require_positive(**values):
    for name, value in values.items():
        if not value > 0:
            raise ValueError(f"{name} must be > 0, got {value}")


def parallax_shift_arcsec(dest_xy, src_xy, plate_scale: float = PLATE_SCALE_EVSCOPE2) -> float:
    """Angular shift between two pixel positions of the same object.

    Parameters
    ----------
    dest_xy, src_xy : (float, float)
        Pixel positions (x, y) of the object in the two aligned frames.
    plate_scale : float
        Arcseconds per pixel.
    """
    _require_positive(plate_scale=plate_scale)
    dx = dest_xy[0] - src_xy[0]
    dy = dest_xy[1] - src_xy[1]
    return float(math.hypot(dx, dy) * plate_scale)


def parallax_distance(baseline_km: float, shift_arcsec: float) -> float:
    """Distance in AU from observer baseline and parallax shift.

    >>> round(parallax_distance(621, 0.85), 3)
    1.008
    """
    _require_positive(baseline_km=baseline_km, shift_arcsec=shift_arcsec)
    return PARALLAX_CONSTANT * baseline_km / shift_arcsec


def parallax_distance_exact(baseline_km: float, shift_arcsec: float) -> u.Quantity:
    """Unit-checked version of ``parallax_distance`` (returns AU)."""
    _require_positive(baseline_km=baseline_km, shift_arcsec=shift_arcsec)
    theta = (shift_arcsec * u.arcsec).to(u.rad)
    return (baseline_km * u.km / theta.value).to(u.au)


def percent_difference(measured: float, expected: float) -> float:
    """Signed difference of ``measured`` from ``expected``, in percent."""
    if expected == 0:
        raise ValueError("expected must be non-zero")
    return 100.0 * (measured - expected) / expected


@dataclass(frozen=True)
class ExposureBaseline:
    """Reference exposure that put a star's peak pixel at ``peak_px`` ADU."""
    v_mag: float = 11.7
    t_exp: float = 3200.0  # ms
    gain: float = 25.0     # dB
    peak_px: int = 3000    # ADU


DEFAULT_BASELINE = ExposureBaseline()


def flux_factor(v_mag: float, t_exp: float, baseline: ExposureBaseline = DEFAULT_BASELINE) -> float:
    """Collected flux of a target relative to the baseline exposure.

    Parameters
    ----------
    v_mag : float
        Target V magnitude.
    t_exp : float
        Planned exposure time in ms.
    """
    _require_positive(t_exp=t_exp)
    f_mag = 10 ** ((v_mag - baseline.v_mag) / -2.5)
    return f_mag * t_exp / baseline.t_exp


def max_gain(f: float, baseline: ExposureBaseline = DEFAULT_BASELINE) -> float:
    """Highest gain (dB) keeping the peak pixel at the baseline level."""
    _require_positive(flux_factor=f)
    return baseline.gain - np.log10(f) / np.log10(GAIN_STEP)


def recommended_gain(gain_max: float) -> int:
    """Round the maximum gain down and keep one dB of headroom."""
    if not np.isfinite(gain_max):
        raise ValueError(f"gain_max must be finite, got {gain_max}")
    return int(math.floor(gain_max) - 1)


GM_SUN_KM3_S2 = const.GM_sun.to_value(u.km ** 3 / u.s ** 2)
AU_KM = u.au.to(u.km)


def _nominal(value):
    return value.nominal_value if isinstance(value, UFloat) else value


def orbital_velocity(r_au, gm=const.GM_sun):
    """Circular orbital speed ``sqrt(GM / r)`` at ``r_au`` AU.

    Parameters
    ----------
    r_au : float or UFloat
        Orbital radius in AU.
    gm : Quantity or UFloat, optional
        Gravitational parameter. A ``UFloat`` is read as a multiple of
        GM_sun, e.g. ``ufloat(1, 7e-5)``.

    Returns
    -------
    Quantity or UFloat
        km/s. When ``r_au`` or ``gm`` carries an uncertainty the result is
        a ``UFloat`` in km/s with the error propagated to first order.

    Examples
    --------
    >>> orbital_velocity(ufloat(2.7, 0.5), gm=ufloat(1, 0.00007))
    18.1+/-1.7
    """
    _require_positive(r_au=_nominal(r_au))

    if isinstance(r_au, UFloat) or isinstance(gm, UFloat):
        if isinstance(gm, UFloat):
            gm_km = gm * GM_SUN_KM3_S2
        else:
            gm_km = u.Quantity(gm).to_value(u.km ** 3 / u.s ** 2)
        return umath.sqrt(gm_km / (r_au * AU_KM))

    return np.sqrt(gm / (r_au * u.au)).to(u.km / u.s)


def asteroid_diameter(velocity_km_s, duration_s):
    """Chord length ``v * dt`` swept during an occultation, in km.

    ``velocity_km_s`` may be a Quantity, a float in km/s or a ``UFloat``;
    ``duration_s`` a float or ``UFloat`` in seconds. With any ``UFloat``
    input the chord comes back as a ``UFloat`` in km.
    """
    _require_positive(duration_s=_nominal(duration_s))

    if isinstance(velocity_km_s, UFloat) or isinstance(duration_s, UFloat):
        if isinstance(velocity_km_s, u.Quantity):
            velocity_km_s = velocity_km_s.to_value(u.km / u.s)
        _require_positive(velocity_km_s=_nominal(velocity_km_s))
        return velocity_km_s * duration_s

    velocity = velocity_km_s if isinstance(velocity_km_s, u.Quantity) else velocity_km_s * u.km / u.s
    _require_positive(velocity_km_s=velocity.to_value(u.km / u.s))
    return (velocity * duration_s * u.s).to(u.km)
