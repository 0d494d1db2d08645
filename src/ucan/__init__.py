"""`ucan` - aperture photometry on aligned telescope frame series.

Subpackages:
- imaging: Frame loading, calibration, source detection, photometry, alignment
- pipeline: Alignment series, photometric series, run orchestration
- analysis: Derived physical quantities (parallax, occultation size, gain)
- catalogs: AAVSO target queries
- visualization: Plotting
"""

__version__ = "0.1.0"
