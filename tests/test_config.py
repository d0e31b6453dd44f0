"""Tests for configuration loading."""

from pathlib import Path

import yaml

from camfilter.config import Config


def test_defaults():
    cfg = Config()

    assert cfg.storage.calibration_path == Path(".") / "camera_calibr.dat"
    assert (cfg.target.columns, cfg.target.rows, cfg.target.square_size_mm) == (10, 7, 31.5)
    assert cfg.solver.max_images == 30
    assert cfg.solver.radial_terms == 2


def test_yaml_round_trip(tmp_path):
    cfg = Config()
    cfg.storage.data_dir = tmp_path / "data"
    cfg.target.columns = 9
    cfg.solver.flip_y = True

    path = tmp_path / "config.yaml"
    cfg.to_yaml(path)
    loaded = Config.from_yaml(path)

    assert yaml.safe_load(path.read_text())["storage"]["data_dir"] == str(tmp_path / "data")
    assert loaded.storage.data_dir == tmp_path / "data"
    assert loaded.storage.calibration_path == tmp_path / "data" / "camera_calibr.dat"
    assert loaded.target.columns == 9
    assert loaded.solver.flip_y is True


def test_partial_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("solver:\n  max_images: 12\nverbose: true\n")

    cfg = Config.from_yaml(path)

    assert cfg.solver.max_images == 12
    assert cfg.solver.min_images == 3
    assert cfg.target.rows == 7
    assert cfg.verbose is True
