"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully
validated, normalized, and frozen.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, model_validator
from ucan.schemas.base import UcanBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalReaderConfig(UcanBaseModel):
    """Runtime reader configuration."""
    file_format: Literal["fits"]
    file_pattern: str
    timestamp_key: str
    header_keys: list[str]
    skip_unreadable: bool


class InternalCalibrationConfig(UcanBaseModel):
    """Runtime calibration configuration."""
    dark_path: Optional[str]


class InternalBackgroundConfig(UcanBaseModel):
    """Runtime background estimation configuration."""
    box_size: int = Field(ge=2)
    sigma: float = Field(gt=0)
    filter_order: Literal[1, 3]


class InternalDetectionConfig(UcanBaseModel):
    """Runtime source detection configuration."""
    nsigma: float = Field(gt=0)
    box_size: int = Field(ge=1)
    x_min: Optional[float]
    x_max: Optional[float]
    aperture_radius: float = Field(gt=0)


class InternalAlignerConfig(UcanBaseModel):
    """Runtime alignment configuration."""
    method: Literal["asterism", "manual"]
    model: Literal["similarity", "euclidean", "affine"]
    interpolation_order: Literal[0, 1]
    fill_value: float
    max_residual_px: float = Field(gt=0)
    detection_sigma: float = Field(gt=0)
    min_area: int = Field(ge=1)
    max_control_points: int = Field(ge=3)
    reference_index: int = Field(ge=0)
    failure_policy: Literal["drop", "reuse_previous"]
    max_workers: int = Field(ge=1)


class InternalApertureConfig(UcanBaseModel):
    """Runtime static aperture."""
    x: float
    y: float
    r: float = Field(gt=0)
    label: Optional[str]


class InternalPhotometryConfig(UcanBaseModel):
    """Runtime aperture placement."""
    apertures: list[InternalApertureConfig]
    tracking: bool


class InternalSeriesConfig(UcanBaseModel):
    """Runtime normalization settings."""
    normalization: Literal["none", "median", "reference_aperture"]
    reference_aperture: Optional[str]


class InternalOutputConfig(UcanBaseModel):
    """Runtime output configuration."""
    save_series: bool
    series_format: Literal["parquet", "csv"]
    compression: Literal["snappy", "gzip", "lz4", "none"]
    save_aligned_stack: bool


class InternalVisualizationConfig(UcanBaseModel):
    """Runtime visualization settings."""
    enabled: bool
    dpi: int
    figsize: tuple[float, float]
    output_format: Literal["png", "pdf", "jpeg"]
    zscale_contrast: float
    marker_size: float


class InternalLoggingConfig(UcanBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(UcanBaseModel):
    """Authoritative runtime configuration.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.order = config.aligner.interpolation_order  # NOT .get()
            self.fill_value = config.aligner.fill_value

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    input_dir: Optional[str]  # Required by the orchestrator, not by library use
    base_dir: Optional[str]
    run_name: str
    reader: InternalReaderConfig
    calibration: InternalCalibrationConfig
    background: InternalBackgroundConfig
    detection: InternalDetectionConfig
    aligner: InternalAlignerConfig
    photometry: InternalPhotometryConfig
    series: InternalSeriesConfig
    output: InternalOutputConfig
    visualization: InternalVisualizationConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )

    @model_validator(mode="after")
    def check_reference_aperture(self):
        """A comparison-star normalization must name a known aperture."""
        if self.series.normalization != "reference_aperture":
            return self

        ref = self.series.reference_aperture
        if ref is None:
            raise ValueError("series.reference_aperture is required for 'reference_aperture' normalization")

        apertures = self.photometry.apertures
        if apertures and not self.photometry.tracking:
            ids = [ap.label or f"ap{i}" for i, ap in enumerate(apertures)]
            if ref not in ids:
                raise ValueError(f"series.reference_aperture '{ref}' not in apertures {ids}")

        return self
