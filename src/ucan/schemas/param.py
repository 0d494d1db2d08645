"""ParamConfig: Expert defaults for the photometry pipeline.

This module defines the complete default configuration. ALL pipeline
parameters have defaults here; runtime code never defines fallbacks.

Runtime code NEVER reads from ParamConfig directly - it only receives
InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from ucan.schemas.base import UcanBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ReaderConfig(UcanBaseModel):
    """Frame file reader configuration."""
    file_format: Literal["fits"] = "fits"
    file_pattern: str = "*.fits"
    timestamp_key: str = "DATE-OBS"
    header_keys: list[str] = Field(default_factory=lambda: ["EXPTIME", "GAIN", "INSTRUME"])
    skip_unreadable: bool = True


class CalibrationConfig(UcanBaseModel):
    """Dark-frame calibration."""
    dark_path: Optional[str] = None


class BackgroundConfig(UcanBaseModel):
    """Background mesh estimation (sigma-clipped box statistics)."""
    box_size: int = Field(24, ge=2)
    sigma: float = Field(1.0, gt=0)
    filter_order: Literal[1, 3] = 3


class DetectionConfig(UcanBaseModel):
    """Threshold source detection and brightest-target selection."""
    nsigma: float = Field(3.0, gt=0)
    box_size: int = Field(3, ge=1)
    x_min: Optional[float] = None
    x_max: Optional[float] = None
    aperture_radius: float = Field(24.0, gt=0)


class AlignerConfig(UcanBaseModel):
    """Frame alignment configuration."""
    method: Literal["asterism", "manual"] = "asterism"
    model: Literal["similarity", "euclidean", "affine"] = "similarity"
    interpolation_order: Literal[0, 1] = 1
    fill_value: float = 0.0
    max_residual_px: float = Field(2.0, gt=0, description="Reject fits with larger RMS residual")
    detection_sigma: float = Field(3.0, gt=0)
    min_area: int = Field(5, ge=1)
    max_control_points: int = Field(50, ge=3)
    reference_index: int = Field(0, ge=0)
    failure_policy: Literal["drop", "reuse_previous"] = "drop"
    max_workers: int = Field(1, ge=1)

    @field_validator("method", "model", "failure_policy", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize option names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class ApertureConfig(UcanBaseModel):
    """One static circular aperture (pixel coordinates, x = column)."""
    x: float
    y: float
    r: float = Field(gt=0)
    label: Optional[str] = None


class PhotometryConfig(UcanBaseModel):
    """Aperture placement."""
    apertures: list[ApertureConfig] = Field(default_factory=list)
    tracking: bool = False


class SeriesConfig(UcanBaseModel):
    """Light-curve normalization."""
    normalization: Literal["none", "median", "reference_aperture"] = "none"
    reference_aperture: Optional[str] = None


class OutputConfig(UcanBaseModel):
    """Output file configuration."""
    save_series: bool = True
    series_format: Literal["parquet", "csv"] = "parquet"
    compression: Literal["snappy", "gzip", "lz4", "none"] = "snappy"
    save_aligned_stack: bool = False


class VisualizationConfig(UcanBaseModel):
    """Visualization settings."""
    enabled: bool = True
    dpi: int = Field(150, ge=50)
    figsize: tuple[float, float] = (10.0, 4.0)
    output_format: Literal["png", "pdf", "jpeg"] = "png"
    zscale_contrast: float = Field(0.25, gt=0, le=1.0)
    marker_size: float = Field(6.0, gt=0)


class LoggingConfig(UcanBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(UcanBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.

    Usage
    -----
    Not used directly by runtime code. It is the base layer in config
    resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    input_dir: Optional[str] = None
    base_dir: Optional[str] = None
    run_name: str = "lightcurve"
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    background: BackgroundConfig = Field(default_factory=BackgroundConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    aligner: AlignerConfig = Field(default_factory=AlignerConfig)
    photometry: PhotometryConfig = Field(default_factory=PhotometryConfig)
    series: SeriesConfig = Field(default_factory=SeriesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
