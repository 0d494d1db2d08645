"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with aliases for the flat upper-case names
used in config files (e.g., INPUT_DIR -> input_dir, APERTURES -> apertures).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Apertures may be written as
``(x, y, r)`` / ``(x, y, r, label)`` tuples or as dicts.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from ucan.schemas.base import UcanBaseModel


def _coerce_aperture(value: Any) -> Any:
    """Turn an (x, y, r[, label]) tuple into an aperture dict."""
    if isinstance(value, (tuple, list)):
        if len(value) not in (3, 4):
            raise ValueError(f"Aperture tuple must be (x, y, r) or (x, y, r, label), got {value!r}")
        keys = ("x", "y", "r", "label")
        return dict(zip(keys, value))
    return value


class UserApertureConfig(UcanBaseModel):
    """User-facing aperture."""
    x: float
    y: float
    r: float = Field(gt=0)
    label: Optional[str] = None


class UserReaderConfig(UcanBaseModel):
    """User-facing reader config."""
    file_format: Optional[str] = None
    file_pattern: Optional[str] = None
    timestamp_key: Optional[str] = None
    header_keys: Optional[list[str]] = None
    skip_unreadable: Optional[bool] = None

    @field_validator("file_format", mode="before")
    @classmethod
    def normalize_format(cls, v):
        """Normalize format names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserBackgroundConfig(UcanBaseModel):
    """User-facing background config."""
    box_size: Optional[int] = None
    sigma: Optional[float] = None
    filter_order: Optional[int] = None


class UserDetectionConfig(UcanBaseModel):
    """User-facing detection config."""
    nsigma: Optional[float] = None
    box_size: Optional[int] = None
    x_min: Optional[float] = None
    x_max: Optional[float] = None
    aperture_radius: Optional[float] = None


class UserAlignerConfig(UcanBaseModel):
    """User-facing aligner config."""
    method: Optional[str] = None
    model: Optional[str] = None
    interpolation_order: Optional[int] = None
    fill_value: Optional[float] = None
    max_residual_px: Optional[float] = None
    detection_sigma: Optional[float] = None
    min_area: Optional[int] = None
    max_control_points: Optional[int] = None
    reference_index: Optional[int] = None
    failure_policy: Optional[str] = None
    max_workers: Optional[int] = None

    @field_validator("method", "model", "failure_policy", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize option names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserPhotometryConfig(UcanBaseModel):
    """User-facing photometry config."""
    apertures: Optional[list[UserApertureConfig]] = None
    tracking: Optional[bool] = None

    @field_validator("apertures", mode="before")
    @classmethod
    def coerce_apertures(cls, v):
        """Accept tuples as well as dicts."""
        if v is None:
            return v
        return [_coerce_aperture(a) for a in v]


class UserSeriesConfig(UcanBaseModel):
    """User-facing series config."""
    normalization: Optional[str] = None
    reference_aperture: Optional[str] = None


class UserOutputConfig(UcanBaseModel):
    """User-facing output config."""
    save_series: Optional[bool] = None
    series_format: Optional[str] = None
    compression: Optional[str] = None
    save_aligned_stack: Optional[bool] = None


class UserConfig(UcanBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify what
    they want to override from ParamConfig defaults.

    Usage
    -----
        user_cfg = UserConfig(
            INPUT_DIR="data/eVscope-zzdq7q",
            APERTURES=[(668, 510, 11, "target"), (147, 577, 11, "comp1")],
            NORMALIZATION="reference_aperture",
            REFERENCE_APERTURE="comp1",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level run settings
    input_dir: Optional[str] = Field(None, alias="INPUT_DIR")
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    run_name: Optional[str] = Field(None, alias="RUN_NAME")

    # Reader / calibration (flat aliases)
    file_pattern: Optional[str] = Field(None, alias="FILE_PATTERN")
    timestamp_key: Optional[str] = Field(None, alias="TIMESTAMP_KEY")
    dark_path: Optional[str] = Field(None, alias="DARK_PATH")

    # Alignment (flat aliases)
    align_method: Optional[str] = Field(None, alias="ALIGN_METHOD")
    transform_model: Optional[str] = Field(None, alias="TRANSFORM_MODEL")
    reference_index: Optional[int] = Field(None, alias="REFERENCE_INDEX")
    max_residual_px: Optional[float] = Field(None, alias="MAX_RESIDUAL_PX")
    failure_policy: Optional[str] = Field(None, alias="FAILURE_POLICY")

    # Photometry / series (flat aliases)
    apertures: Optional[list[UserApertureConfig]] = Field(None, alias="APERTURES")
    tracking: Optional[bool] = Field(None, alias="TRACKING")
    normalization: Optional[str] = Field(None, alias="NORMALIZATION")
    reference_aperture: Optional[str] = Field(None, alias="REFERENCE_APERTURE")

    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    reader: Optional[UserReaderConfig] = None
    background: Optional[UserBackgroundConfig] = None
    detection: Optional[UserDetectionConfig] = None
    aligner: Optional[UserAlignerConfig] = None
    photometry: Optional[UserPhotometryConfig] = None
    series: Optional[UserSeriesConfig] = None
    output: Optional[UserOutputConfig] = None

    model_config = UcanBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("apertures", mode="before")
    @classmethod
    def coerce_apertures(cls, v):
        """Accept tuples as well as dicts."""
        if v is None:
            return v
        return [_coerce_aperture(a) for a in v]

    @field_validator("align_method", "transform_model", "failure_policy", "normalization", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize option names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        for key in ("input_dir", "base_dir", "run_name"):
            value = getattr(self, key)
            if value is not None:
                overrides[key] = str(value)

        # Reader section
        reader = {}
        if self.file_pattern is not None:
            reader["file_pattern"] = self.file_pattern
        if self.timestamp_key is not None:
            reader["timestamp_key"] = self.timestamp_key
        if self.reader is not None:
            reader.update(self.reader.model_dump(exclude_none=True))
        if reader:
            overrides["reader"] = reader

        if self.dark_path is not None:
            overrides["calibration"] = {"dark_path": self.dark_path}

        if self.background is not None:
            background = self.background.model_dump(exclude_none=True)
            if background:
                overrides["background"] = background

        if self.detection is not None:
            detection = self.detection.model_dump(exclude_none=True)
            if detection:
                overrides["detection"] = detection

        # Aligner section
        aligner = {}
        if self.align_method is not None:
            aligner["method"] = self.align_method
        if self.transform_model is not None:
            aligner["model"] = self.transform_model
        if self.reference_index is not None:
            aligner["reference_index"] = self.reference_index
        if self.max_residual_px is not None:
            aligner["max_residual_px"] = self.max_residual_px
        if self.failure_policy is not None:
            aligner["failure_policy"] = self.failure_policy
        if self.aligner is not None:
            aligner.update(self.aligner.model_dump(exclude_none=True))
        if aligner:
            overrides["aligner"] = aligner

        # Photometry section
        photometry = {}
        if self.apertures is not None:
            photometry["apertures"] = [ap.model_dump() for ap in self.apertures]
        if self.tracking is not None:
            photometry["tracking"] = self.tracking
        if self.photometry is not None:
            photometry.update(self.photometry.model_dump(exclude_none=True))
        if photometry:
            overrides["photometry"] = photometry

        # Series section
        series = {}
        if self.normalization is not None:
            series["normalization"] = self.normalization
        if self.reference_aperture is not None:
            series["reference_aperture"] = self.reference_aperture
        if self.series is not None:
            series.update(self.series.model_dump(exclude_none=True))
        if series:
            overrides["series"] = series

        if self.output is not None:
            output = self.output.model_dump(exclude_none=True)
            if output:
                overrides["output"] = output

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
