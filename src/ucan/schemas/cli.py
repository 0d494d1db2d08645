"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: input directory, output root, reference frame, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field
from ucan.schemas.base import UcanBaseModel


class CLIConfig(UcanBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            input_dir="data/eVscope-zzdq7q",
            base_dir="/scratch/ucan_output",
            reference_index=3,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    input_dir: Optional[str] = None
    base_dir: Optional[str] = None
    run_name: Optional[str] = None
    reference_index: Optional[int] = Field(None, ge=0)
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.input_dir is not None:
            overrides["input_dir"] = str(self.input_dir)

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.run_name is not None:
            overrides["run_name"] = self.run_name

        if self.reference_index is not None:
            overrides["aligner"] = {"reference_index": self.reference_index}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
