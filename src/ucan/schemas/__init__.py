"""Pydantic configuration schemas for the ucan pipeline.

All configuration validation, coercion, and normalization happens at
schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from ucan.schemas.resolve import resolve_config
from ucan.schemas.internal import InternalConfig
from ucan.schemas.param import ParamConfig
from ucan.schemas.user import UserConfig
from ucan.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
