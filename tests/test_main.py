"""Tests for the command-line entry point."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

import yaml

from autocalib.calibration import load_calibration
from autocalib.config import ConfigManager
from autocalib.models import CameraCalibration, CameraType
from main import main

if TYPE_CHECKING:
    from pathlib import Path


def _write_config(tmp_path: Path, **overrides) -> Path:
    config = copy.deepcopy(ConfigManager.DEFAULT_CONFIG)
    config["output"]["directory"] = str(tmp_path / "output")
    config["calibration"]["path"] = str(tmp_path / "output" / "cameraCalibration.yaml")
    for section, values in overrides.items():
        config[section].update(values)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return config_path


def test_validate_only(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = _write_config(tmp_path)

    assert main(["--config", str(config_path), "--validate"]) == 0
    assert not (tmp_path / "output" / "cameraCalibration.yaml").exists()


def test_reset_writes_zero_calibration(tmp_path: Path, monkeypatch):
    """--reset で補正なしのキャリブレーションを保存する"""

    monkeypatch.chdir(tmp_path)
    config_path = _write_config(tmp_path)
    calibration_path = tmp_path / "output" / "cameraCalibration.yaml"
    calibration_path.parent.mkdir(parents=True)
    calibration_path.write_text("lower_camera:\n  roll_deg: 3.0\n", encoding="utf-8")

    assert main(["--config", str(config_path), "--reset"]) == 0

    assert load_calibration(calibration_path) == CameraCalibration()
    assert (tmp_path / "output" / "system.log").exists()


def test_show_reads_saved_calibration(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = _write_config(tmp_path)
    calibration_path = tmp_path / "output" / "cameraCalibration.yaml"
    calibration_path.parent.mkdir(parents=True)
    calibration_path.write_text("upper_camera:\n  tilt_deg: 1.5\n", encoding="utf-8")

    assert main(["--config", str(config_path)]) == 0

    assert load_calibration(calibration_path).camera_correction(CameraType.UPPER)[1] > 0.0
    assert "tilt = +1.500 deg" in (tmp_path / "output" / "system.log").read_text(encoding="utf-8")


def test_invalid_config_returns_error(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = _write_config(tmp_path, calibrator={"num_of_angles": 0})

    assert main(["--config", str(config_path)]) == 1
