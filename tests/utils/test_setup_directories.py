from pathlib import Path

from ucan.setup_directories import (
    get_aligned_path,
    get_log_path,
    get_plot_path,
    get_series_path,
    setup_output_directories,
)


def test_setup_output_directories_creates_all(tmp_path):
    dirs = setup_output_directories(tmp_path)

    expected = {"base", "series", "aligned", "plots", "logs"}

    assert set(dirs.keys()) == expected

    for path in dirs.values():
        assert isinstance(path, Path)
        assert path.exists()
        assert path.is_dir()


def test_setup_output_directories_is_idempotent(tmp_path):
    dirs1 = setup_output_directories(tmp_path)
    dirs2 = setup_output_directories(tmp_path)

    assert dirs1 == dirs2


def test_default_base_is_cwd_output(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    dirs = setup_output_directories()
    assert dirs["base"] == (tmp_path / "output").resolve()


def test_series_path(tmp_path):
    dirs = setup_output_directories(tmp_path)
    assert get_series_path(dirs, "zzdq7q") == dirs["series"] / "zzdq7q_series.parquet"
    assert get_series_path(dirs, "zzdq7q", ".csv").name == "zzdq7q_series.csv"


def test_aligned_and_plot_paths(tmp_path):
    dirs = setup_output_directories(tmp_path)
    assert get_aligned_path(dirs, "zzdq7q").name == "zzdq7q_aligned.nc"
    assert get_plot_path(dirs, "zzdq7q", "reference") == dirs["plots"] / "zzdq7q_reference"


def test_log_path(tmp_path):
    dirs = setup_output_directories(tmp_path)
    assert get_log_path(dirs, "zzdq7q").name.startswith("lightcurve_zzdq7q_")
    assert get_log_path(dirs).name == "lightcurve_latest.log"
