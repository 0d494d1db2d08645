"""
Directory setup for the light-curve pipeline.

One output root per run, with a subdirectory per output type:
- series: light-curve tables (Parquet / CSV)
- aligned: aligned frame stacks (NetCDF)
- plots: light curves and aperture overlays
- logs: pipeline logs
"""

from pathlib import Path
from datetime import datetime, timezone


def setup_output_directories(base_output_dir=None):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory. If None, ``./output`` under the current
        working directory.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'series', 'aligned', 'plots', 'logs'
    """
    if base_output_dir is None:
        base_output_dir = Path.cwd() / "output"

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "series": base_output_dir / "series",
        "aligned": base_output_dir / "aligned",
        "plots": base_output_dir / "plots",
        "logs": base_output_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    return directories


def get_series_path(output_dirs, run_name, fmt="parquet"):
    """
    Get light-curve table path.

    Example
    -------
    >>> get_series_path(dirs, 'zzdq7q', 'parquet')
    Path('output/series/zzdq7q_series.parquet')
    """
    ext = fmt if not fmt.startswith('.') else fmt[1:]
    return Path(output_dirs["series"]) / f"{run_name}_series.{ext}"


def get_aligned_path(output_dirs, run_name):
    """
    Get aligned stack NetCDF path.

    Example
    -------
    >>> get_aligned_path(dirs, 'zzdq7q')
    Path('output/aligned/zzdq7q_aligned.nc')
    """
    return Path(output_dirs["aligned"]) / f"{run_name}_aligned.nc"


def get_plot_path(output_dirs, run_name, plot_type="lightcurve"):
    """
    Get plot path (extension set by the plotter).

    Example
    -------
    >>> get_plot_path(dirs, 'zzdq7q', 'lightcurve')
    Path('output/plots/zzdq7q_lightcurve')
    """
    return Path(output_dirs["plots"]) / f"{run_name}_{plot_type}"


def get_log_path(output_dirs, run_name=None):
    """
    Get log file path, timestamped per run.

    Returns
    -------
    Path
        Full path to log file
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    if run_name:
        filename = f"lightcurve_{run_name}_{timestamp}.log"
    else:
        filename = "lightcurve_latest.log"

    return log_dir / filename
