"""Derived physical quantities (parallax, exposure planning, occultation size)."""

from ucan.analysis.quantities import (
    PLATE_SCALE_EVSCOPE2,
    ExposureBaseline,
    parallax_shift_arcsec,
    parallax_distance,
    parallax_distance_exact,
    percent_difference,
    flux_factor,
    max_gain,
    recommended_gain,
    orbital_velocity,
    asteroid_diameter,
)

__all__ = [
    'PLATE_SCALE_EVSCOPE2',
    'ExposureBaseline',
    'parallax_shift_arcsec',
    'parallax_distance',
    'parallax_distance_exact',
    'percent_difference',
    'flux_factor',
    'max_gain',
    'recommended_gain',
    'orbital_velocity',
    'asteroid_diameter',
]
