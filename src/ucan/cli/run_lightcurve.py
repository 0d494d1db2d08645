"""Core light-curve run logic behind the ``ucan-lightcurve`` command.

Scripts are thin wrappers; this is the real implementation.
"""

import sys
import json
import shutil
import logging
import argparse
import importlib.util
from pathlib import Path
from typing import Optional, Dict, Any, List

from ucan.setup_directories import setup_output_directories
from ucan.pipeline.orchestrator import LightCurveOrchestrator, RunSummary
from ucan.imaging.aligner import PointCorrespondence
from ucan.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig
from ucan.errors import UcanError


logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load config module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def load_correspondences(path: str) -> Dict[str, List[PointCorrespondence]]:
    """Read manual point picks from JSON.

    The file maps a frame file name to a list of
    ``[src_x, src_y, dst_x, dst_y]`` rows, e.g.
    ``{"frame_001.fits": [[1023, 747, 1017, 747], ...]}``.
    """
    with open(path) as f:
        raw = json.load(f)

    picks = {}
    for key, rows in raw.items():
        picks[key] = [
            PointCorrespondence((float(r[0]), float(r[1])), (float(r[2]), float(r[3])))
            for r in rows
        ]
    return picks


def print_summary(summary: RunSummary) -> None:
    """Report series length against input length and every dropped frame."""
    print(f"\n{'='*60}")
    print(f"Input frames:   {summary.n_input}")
    print(f"Aligned frames: {summary.n_aligned}")
    print(f"Series rows:    {summary.n_series}")

    dropped = summary.dropped()
    print(f"Dropped frames: {len(dropped)}")
    for stage, index, source, reason in dropped:
        name = Path(source).name if source else "?"
        where = f"#{index} " if index is not None else ""
        print(f"  [{stage}] {where}{name}: {reason}")

    if summary.normalization_error:
        print(f"Normalization failed: {summary.normalization_error}")
    for key, path in summary.outputs.items():
        print(f"{key:16s}: {path}")
    print('='*60)


def run_lightcurve(
    user_config_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    correspondences_path: Optional[str] = None,
    rerun: bool = False,
    verbose: bool = False,
) -> RunSummary:
    """Execute one light-curve run.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Optionally cleans the output root (``rerun``)
    3. Sets up output directories
    4. Runs the orchestrator and returns its summary

    Parameters
    ----------
    user_config_path : str
        Path to user config file (Python file with CONFIG dict).
    cli_args : dict, optional
        Overrides. Keys: input_dir, base_dir, run_name, reference_index,
        log_level. All optional.
    correspondences_path : str, optional
        JSON file with manual point picks (see ``load_correspondences``).
    rerun : bool, optional
        If True, delete the output root before running.
    verbose : bool, optional
        If True, enable DEBUG logging and print the resolved config.

    Examples
    --------
    Run with user config only::

        run_lightcurve("scripts/user_config.py")

    Run with a different reference frame::

        run_lightcurve("scripts/user_config.py", cli_args={"reference_index": 5})
    """
    param_cfg = ParamConfig()

    user_cfg_dict = load_user_config_dict(user_config_path)
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and "log_level" not in cli_args:
        cli_args["log_level"] = "DEBUG"

    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    if rerun and config.base_dir:
        base_dir_path = Path(config.base_dir)
        if base_dir_path.exists():
            print(f"Cleaning output directory: {base_dir_path}")
            shutil.rmtree(base_dir_path)
            print("Output directory cleaned")

    output_dirs = setup_output_directories(config.base_dir)

    print(f"\n{'='*60}")
    print("UCAN Light-Curve Pipeline")
    print('='*60)
    print(f"Config: {user_config_path}")
    print(f"Input:  {config.input_dir}")
    print(f"Align:  {config.aligner.method} ({config.aligner.model}), reference #{config.aligner.reference_index}")
    print(f"Output: {output_dirs['base']}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2, default=str))
        print('='*60)

    correspondences = load_correspondences(correspondences_path) if correspondences_path else None

    orchestrator = LightCurveOrchestrator(config, output_dirs)
    return orchestrator.run(correspondences)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Align frames and build an aperture light curve")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--input-dir", help="Directory with the frame files")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--run-name", help="Prefix for output files")
    parser.add_argument("--reference-index", type=int, help="Frame to align onto (0-based)")
    parser.add_argument("--correspondences", help="JSON file with manual point picks")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    try:
        summary = run_lightcurve(
            args.config,
            cli_args={
                "input_dir": args.input_dir,
                "base_dir": args.base_dir,
                "run_name": args.run_name,
                "reference_index": args.reference_index,
            },
            correspondences_path=args.correspondences,
            rerun=args.rerun,
            verbose=args.verbose,
        )
    except (UcanError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
