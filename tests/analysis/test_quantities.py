"""Tests for parallax, exposure planning and occultation formulas."""

import numpy as np
import pytest
from astropy import constants as const
from astropy import units as u
from uncertainties import ufloat

pytestmark = pytest.mark.unit

from ucan.analysis import (
    ExposureBaseline,
    asteroid_diameter,
    flux_factor,
    max_gain,
    orbital_velocity,
    parallax_distance,
    parallax_distance_exact,
    parallax_shift_arcsec,
    percent_difference,
    recommended_gain,
)


class TestParallax:

    def test_shift_uses_plate_scale(self):
        assert parallax_shift_arcsec((3, 4), (0, 0), plate_scale=1.0) == 5.0
        assert parallax_shift_arcsec((3, 4), (0, 0)) == pytest.approx(5.0 * 1.326)

    def test_shift_is_symmetric(self):
        assert parallax_shift_arcsec((10, 2), (4, 10)) == parallax_shift_arcsec((4, 10), (10, 2))

    def test_distance(self):
        assert parallax_distance(621, 0.85) == pytest.approx(1.008, abs=5e-4)

    def test_exact_distance_is_close(self):
        exact = parallax_distance_exact(621, 0.85)
        assert exact.unit == u.au
        assert exact.value == pytest.approx(parallax_distance(621, 0.85), rel=2e-3)

    @pytest.mark.parametrize("baseline, shift", [(0, 0.85), (621, 0), (-1, 1)])
    def test_non_positive_rejected(self, baseline, shift):
        with pytest.raises(ValueError):
            parallax_distance(baseline, shift)

    def test_percent_difference(self):
        assert percent_difference(1.008, 1.0) == pytest.approx(0.8)
        assert percent_difference(0.9, 1.0) == pytest.approx(-10.0)
        with pytest.raises(ValueError):
            percent_difference(1.0, 0.0)


class TestExposurePlanning:

    def test_baseline_star_is_unity(self):
        assert flux_factor(11.7, 3200.0) == pytest.approx(1.0)
        assert max_gain(1.0) == pytest.approx(25.0)

    def test_fainter_star_allows_more_gain(self):
        f = flux_factor(14.2, 3200.0)
        assert f == pytest.approx(0.1)
        assert max_gain(f) == pytest.approx(45.0, abs=0.01)
        assert recommended_gain(max_gain(f)) == 44

    def test_longer_exposure_scales_flux(self):
        assert flux_factor(11.7, 6400.0) == pytest.approx(2.0)

    def test_custom_baseline(self):
        baseline = ExposureBaseline(v_mag=10.0, t_exp=1000.0, gain=20.0)
        assert flux_factor(10.0, 1000.0, baseline) == pytest.approx(1.0)
        assert max_gain(1.0, baseline) == pytest.approx(20.0)

    def test_recommended_gain_keeps_headroom(self):
        assert recommended_gain(25.0) == 24
        assert recommended_gain(25.9) == 24

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            flux_factor(11.7, 0)
        with pytest.raises(ValueError):
            max_gain(0.0)
        with pytest.raises(ValueError):
            recommended_gain(float("nan"))


class TestOccultation:

    def test_earth_orbital_velocity(self):
        v = orbital_velocity(1.0)
        assert v.unit == u.km / u.s
        assert v.value == pytest.approx(29.78, rel=1e-3)

    def test_velocity_falls_with_distance(self):
        assert orbital_velocity(2.7) < orbital_velocity(1.0)

    def test_diameter(self):
        assert asteroid_diameter(20.0, 3.5).to_value(u.km) == pytest.approx(70.0)

    def test_diameter_accepts_quantity(self):
        d = asteroid_diameter(18.0 * u.km / u.s, 2.0)
        assert d.to_value(u.km) == pytest.approx(36.0)

    def test_invalid_duration(self):
        with pytest.raises(ValueError):
            asteroid_diameter(20.0, 0.0)


class TestOccultationUncertainty:
    """Occultation lab: GM_sun = 1 +/- 7e-5, r = 2.7 +/- 0.5 AU, dt = 5 +/- 0.5 s."""

    def test_velocity_error_bar(self):
        v = orbital_velocity(ufloat(2.7, 0.5), gm=ufloat(1.0, 0.00007))

        expected = np.sqrt(const.GM_sun / (2.7 * u.au)).to_value(u.km / u.s)
        assert v.nominal_value == pytest.approx(expected, rel=1e-9)
        assert v.nominal_value == pytest.approx(18.13, abs=0.01)
        rel = 0.5 * np.hypot(0.00007, 0.5 / 2.7)
        assert v.std_dev / v.nominal_value == pytest.approx(rel, rel=1e-6)

    def test_diameter_error_bar(self):
        v = orbital_velocity(ufloat(2.7, 0.5), gm=ufloat(1.0, 0.00007))
        d = asteroid_diameter(v, ufloat(5.0, 0.5))

        assert d.nominal_value == pytest.approx(5.0 * v.nominal_value)
        assert d.nominal_value == pytest.approx(90.6, abs=0.1)
        rel = np.hypot(0.5 * np.hypot(0.00007, 0.5 / 2.7), 0.1)
        assert d.std_dev / d.nominal_value == pytest.approx(rel, rel=1e-6)
        assert d.std_dev == pytest.approx(12.35, abs=0.05)

    def test_uncertain_radius_only(self):
        v = orbital_velocity(ufloat(1.0, 0.0))
        assert v.nominal_value == pytest.approx(orbital_velocity(1.0).value)
        assert v.std_dev == 0.0

    def test_quantity_velocity_with_uncertain_duration(self):
        d = asteroid_diameter(20.0 * u.km / u.s, ufloat(3.5, 0.5))
        assert d.nominal_value == pytest.approx(70.0)
        assert d.std_dev == pytest.approx(10.0)

    def test_nonpositive_uncertain_inputs_rejected(self):
        with pytest.raises(ValueError):
            orbital_velocity(ufloat(-1.0, 0.1))
        with pytest.raises(ValueError):
            asteroid_diameter(ufloat(18.0, 1.0), 0.0)
