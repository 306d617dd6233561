"""Unit tests for calibration persistence."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import pytest
import yaml

from autocalib.calibration import load_calibration, save_calibration
from autocalib.models import CameraCalibration, CameraType

if TYPE_CHECKING:
    from pathlib import Path


def test_save_and_load(tmp_path: Path):
    """度単位で保存し、読み込み時にラジアンへ戻す。"""

    calibration = CameraCalibration(
        camera_rotation_corrections={CameraType.LOWER: (math.radians(1.0), 0.0), CameraType.UPPER: (0.0, math.radians(-2.0))},
        body_rotation_correction=(0.0, math.radians(0.5)),
    )
    path = tmp_path / "nested" / "cameraCalibration.yaml"

    saved = save_calibration(calibration, path)

    assert saved == path
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["lower_camera"]["roll_deg"] == pytest.approx(1.0)
    assert data["body"]["tilt_deg"] == pytest.approx(0.5)

    loaded = load_calibration(path)
    assert loaded.camera_correction(CameraType.UPPER) == pytest.approx((0.0, math.radians(-2.0)))
    assert loaded.body_rotation_correction == pytest.approx((0.0, math.radians(0.5)))


def test_missing_file_returns_zero_calibration(tmp_path: Path):
    assert load_calibration(tmp_path / "missing.yaml") == CameraCalibration()


def test_empty_file_returns_zero_calibration(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_calibration(path) == CameraCalibration()


def test_invalid_file_raises(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("lower_camera: [1, 2", encoding="utf-8")

    with pytest.raises(ValueError, match="YAML"):
        load_calibration(path)


def test_invalid_values_raise(tmp_path: Path):
    """角度が数値でない場合はエラーになる。"""

    path = tmp_path / "values.yaml"
    path.write_text("lower_camera:\n  roll_deg: abc\n", encoding="utf-8")

    with pytest.raises(ValueError, match="キャリブレーション値"):
        load_calibration(path)


def test_non_dict_file_raises(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ValueError, match="辞書形式"):
        load_calibration(path)
