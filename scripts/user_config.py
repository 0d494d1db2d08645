"""UCAN User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Advanced settings are defaults in
src/ucan/schemas/param.py and can be overridden through the nested sections.

Usage:
    python scripts/run_lightcurve.py scripts/user_config.py
    python scripts/run_lightcurve.py scripts/user_config.py --reference-index 3
    ucan-lightcurve scripts/user_config.py --base-dir /tmp/ucan_output

The defaults below reproduce the asteroid occultation light curve: one
aperture on the occulted star, one on a comparison star, frames aligned by
asterism matching and the target divided by the comparison.
"""

CONFIG = {
    # ========================================================================
    # INPUT / OUTPUT
    # ========================================================================
    "INPUT_DIR": "data/eVscope-zzdq7q",   # Directory with the FITS frames
    "FILE_PATTERN": "*.fits",
    "BASE_DIR": "output/occultation",     # All outputs go here
    "RUN_NAME": "zzdq7q",
    "DARK_PATH": None,                    # Master dark (FITS), optional

    # ========================================================================
    # ALIGNMENT
    # ========================================================================
    "ALIGN_METHOD": "asterism",   # "asterism" (automatic) or "manual"
    "TRANSFORM_MODEL": "similarity",
    "REFERENCE_INDEX": 0,         # Frame the others are aligned onto
    "MAX_RESIDUAL_PX": 2.0,
    "FAILURE_POLICY": "drop",     # "drop" or "reuse_previous"

    # ========================================================================
    # PHOTOMETRY
    # ========================================================================
    # (x, y, r, label) in reference-frame pixels, x = column
    "APERTURES": [
        (668, 510, 11, "target"),
        (147, 577, 11, "comp1"),
    ],
    "NORMALIZATION": "reference_aperture",  # "none", "median" or "reference_aperture"
    "REFERENCE_APERTURE": "comp1",

    # ========================================================================
    # ADVANCED (nested overrides)
    # ========================================================================
    "aligner": {
        "detection_sigma": 3.0,
        "max_workers": 1,
    },
    "output": {
        "series_format": "parquet",
        "save_aligned_stack": False,
    },
}
