"""Formal pipeline invariants.

Documents what each stage MUST produce. Reviewer anchor, not code.
"""

PIPELINE_INVARIANTS = {
    "load": [
        "ImageFrame.pixels is a non-empty 2-D float array",
        "ImageFrame.timestamp is timezone-aware (UTC)",
        "ImageFrame is never mutated; transformations return new frames",
    ],

    "alignment": [
        "Reference frame is returned unmodified with the identity transform",
        "Every returned frame has exactly the reference frame's shape",
        "Output keeps input time order and never grows",
        "Every input frame has exactly one alignment record",
        "Residual (RMS px) is reported for every fitted transform",
    ],

    "photometry": [
        "Aperture membership: pixel centre within distance r (inclusive)",
        "Pixels outside the image contribute zero",
        "Aperture fully outside the image sums to exactly 0.0",
    ],

    "series": [
        "One row per successfully measured frame",
        "time column strictly increasing, timezone-aware",
        "Identical aperture columns on every row",
        "All flux values finite",
    ],

    "normalization": [
        "Returns a new table; raw series is left untouched",
        "Median method: each aperture column has median 1.0",
        "Zero or non-finite divisor raises NormalizationError",
    ],
}

# Which stages are optional vs required
STAGE_REQUIREMENTS = {
    "load": "REQUIRED",
    "calibration": "OPTIONAL",     # Only with a master dark
    "alignment": "REQUIRED",
    "photometry": "REQUIRED",
    "series": "REQUIRED",
    "normalization": "OPTIONAL",
}
