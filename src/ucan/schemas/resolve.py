"""Merge the three configuration layers into one ``InternalConfig``.

``resolve_config()`` is the only way runtime code obtains a configuration.
Layers are applied lowest first:

    ParamConfig (expert defaults) < UserConfig (config file) < CLIConfig

Each layer may be passed as its model or as a plain dict.
"""

from typing import Optional, Type, TypeVar, Union

from ucan.schemas.base import UcanBaseModel
from ucan.schemas.param import ParamConfig
from ucan.schemas.user import UserConfig
from ucan.schemas.cli import CLIConfig
from ucan.schemas.internal import InternalConfig

MAX_ALIGN_WORKERS = 32

Layer = TypeVar("Layer", bound=UcanBaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Dicts present on both sides are merged key by key; anything else
    (scalars, lists of apertures) from a later mapping replaces the
    earlier value outright. ``base`` is not modified.

    >>> deep_merge({"aligner": {"model": "similarity", "max_workers": 1}},
    ...            {"aligner": {"max_workers": 4}})
    {'aligner': {'model': 'similarity', 'max_workers': 4}}
    """
    merged = dict(base)

    for layer in overrides:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value

    return merged


def _as_layer(cfg, model: Type[Layer]) -> Layer:
    """Validate a dict (or pass through a model instance) as ``model``."""
    if isinstance(cfg, model):
        return cfg
    if not cfg:
        return model()
    return model.model_validate(cfg)


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the frozen runtime configuration for one run.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Complete expert defaults. An empty dict means "all defaults".
    user_cfg : dict or UserConfig, optional
        Overrides from the user config file (upper-case aliases allowed).
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides; these win over everything else.

    Returns
    -------
    InternalConfig

    Raises
    ------
    pydantic.ValidationError
        If a layer, or the merged result, is invalid (for example an
        unknown transform model or a reference aperture that is not
        configured).

    Examples
    --------
    >>> user = UserConfig(APERTURES=[(668, 510, 11, "target")])
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.photometry.apertures[0].label
    'target'
    """
    param = _as_layer(param_cfg, ParamConfig)
    user = _as_layer(user_cfg, UserConfig)
    cli = _as_layer(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )

    aligner = merged["aligner"]
    aligner["max_workers"] = min(aligner["max_workers"], MAX_ALIGN_WORKERS)

    return InternalConfig.model_validate(merged)
