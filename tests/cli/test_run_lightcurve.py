"""Tests for the ucan-lightcurve command."""

import json

import pytest

from ucan.cli import main, run_lightcurve
from ucan.cli.run_lightcurve import load_correspondences, load_user_config_dict
from tests.helpers.fake_frames import make_shifted_series, write_fits

pytestmark = [pytest.mark.unit, pytest.mark.pipeline, pytest.mark.usefixtures("restore_root_logger")]

SHIFT = (2.0, 1.0)


@pytest.fixture
def workspace(temp_dir):
    """FITS frames, a user config file and a picks file."""
    frames, positions = make_shifted_series(n=3, shift=SHIFT)
    frame_dir = temp_dir / "frames"
    frame_dir.mkdir()
    for i, frame in enumerate(frames):
        write_fits(frame_dir / f"frame_{i:03d}.fits", frame.pixels,
                   date_obs=frame.timestamp.strftime("%Y-%m-%dT%H:%M:%S"))

    (tx, ty), (cx, cy) = positions[0], positions[1]
    config_path = temp_dir / "user_config.py"
    config_path.write_text(
        "CONFIG = {\n"
        f"    'INPUT_DIR': {str(frame_dir)!r},\n"
        f"    'BASE_DIR': {str(temp_dir / 'output')!r},\n"
        "    'RUN_NAME': 'cli',\n"
        "    'ALIGN_METHOD': 'manual',\n"
        f"    'APERTURES': [({tx:.0f}, {ty:.0f}, 5, 'target'), ({cx:.0f}, {cy:.0f}, 5, 'comp1')],\n"
        "    'NORMALIZATION': 'median',\n"
        "    'output': {'series_format': 'csv'},\n"
        "}\n"
    )

    picks = {}
    for i in (1, 2):
        picks[f"frame_{i:03d}.fits"] = [[x + SHIFT[0] * i, y + SHIFT[1] * i, x, y] for x, y in positions[:5].tolist()]
    picks_path = temp_dir / "picks.json"
    picks_path.write_text(json.dumps(picks))

    return {"config": config_path, "picks": picks_path, "output": temp_dir / "output", "root": temp_dir}


def test_load_user_config_dict(workspace):
    cfg = load_user_config_dict(workspace["config"])
    assert cfg["RUN_NAME"] == "cli"


def test_load_user_config_missing(temp_dir):
    with pytest.raises(FileNotFoundError):
        load_user_config_dict(temp_dir / "nope.py")


def test_load_user_config_without_dict(temp_dir):
    path = temp_dir / "empty_config.py"
    path.write_text("SETTINGS = 1\n")
    with pytest.raises(ValueError, match="No CONFIG dict"):
        load_user_config_dict(path)


def test_load_correspondences(workspace):
    picks = load_correspondences(workspace["picks"])
    assert sorted(picks) == ["frame_001.fits", "frame_002.fits"]
    assert len(picks["frame_001.fits"]) == 5
    src, dst = picks["frame_002.fits"][0]
    assert src[0] - dst[0] == pytest.approx(4.0)


def test_run_lightcurve(workspace):
    summary = run_lightcurve(str(workspace["config"]), correspondences_path=str(workspace["picks"]))

    assert summary.n_input == 3
    assert summary.n_series == 3
    assert summary.outputs["series"].endswith("cli_series.csv")
    assert summary.normalized is not None


def test_cli_overrides(workspace):
    summary = run_lightcurve(
        str(workspace["config"]),
        cli_args={"run_name": "override", "input_dir": None},
        correspondences_path=str(workspace["picks"]),
    )
    assert summary.outputs["series"].endswith("override_series.csv")


def test_rerun_cleans_output(workspace):
    stale = workspace["output"] / "stale.txt"
    stale.parent.mkdir(parents=True, exist_ok=True)
    stale.write_text("old")

    run_lightcurve(str(workspace["config"]), correspondences_path=str(workspace["picks"]), rerun=True)

    assert not stale.exists()
    assert (workspace["output"] / "series").is_dir()


def test_main_success(workspace, capsys):
    code = main([str(workspace["config"]), "--correspondences", str(workspace["picks"])])

    assert code == 0
    out = capsys.readouterr().out
    assert "Input frames:   3" in out
    assert "Dropped frames: 0" in out


def test_main_reports_dropped_frames(workspace, temp_dir, capsys):
    picks = json.loads(workspace["picks"].read_text())
    del picks["frame_002.fits"]
    partial = temp_dir / "partial.json"
    partial.write_text(json.dumps(picks))

    assert main([str(workspace["config"]), "--correspondences", str(partial)]) == 0
    out = capsys.readouterr().out
    assert "Dropped frames: 1" in out
    assert "[alignment] #2 frame_002.fits" in out


def test_main_missing_input(workspace, temp_dir, capsys):
    code = main([str(workspace["config"]), "--input-dir", str(temp_dir / "missing")])

    assert code == 1
    assert "Input directory not found" in capsys.readouterr().err


def test_main_bad_reference_index(workspace, capsys):
    code = main([str(workspace["config"]), "--reference-index", "7",
                 "--correspondences", str(workspace["picks"])])
    assert code == 1
    assert "out of range" in capsys.readouterr().err


def test_main_reports_unreadable_files(workspace, capsys):
    (workspace["root"] / "frames" / "frame_001.fits").write_bytes(b"garbage")

    assert main([str(workspace["config"]), "--correspondences", str(workspace["picks"])]) == 0
    out = capsys.readouterr().out
    assert "Input frames:   2" in out
    assert "Series rows:    2" in out
    assert "[load] frame_001.fits:" in out
