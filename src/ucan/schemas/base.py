"""Base Pydantic model with strict defaults for ucan configs.

All config schemas inherit from this base so parameter, user, CLI and
internal configs validate the same way.
"""

from pydantic import BaseModel, ConfigDict


class UcanBaseModel(BaseModel):
    """Base model for all ucan configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Stores enum values, not enum members
    - Strips surrounding whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
