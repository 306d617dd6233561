"""キャリブレーション値の保存と読み込み（YAML、度単位）。"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from autocalib.models.data_models import CameraCalibration

logger = logging.getLogger(__name__)


def load_calibration(path: str | Path) -> CameraCalibration:
    """保存済みキャリブレーションを読み込む。

    Args:
        path: YAML ファイルのパス

    Returns:
        CameraCalibration。ファイルが無い場合はゼロ補正

    Raises:
        ValueError: ファイルの形式が不正な場合
    """
    calibration_path = Path(path)
    if not calibration_path.exists():
        logger.warning(f"キャリブレーションファイル '{calibration_path}' が見つかりません。補正なしで開始します。")
        return CameraCalibration()

    try:
        with calibration_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"YAML解析エラー: {e}") from e

    if data is None:
        logger.warning(f"キャリブレーションファイル '{calibration_path}' が空です。補正なしで開始します。")
        return CameraCalibration()
    if not isinstance(data, dict):
        raise ValueError("キャリブレーションファイルは辞書形式である必要があります。")

    try:
        calibration = CameraCalibration.from_degrees(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"キャリブレーション値が不正です: {e}") from e

    logger.info(f"キャリブレーションを読み込みました: {calibration_path}")
    return calibration


def save_calibration(calibration: CameraCalibration, path: str | Path) -> Path:
    """キャリブレーションを度単位で保存する。

    Args:
        calibration: 保存するキャリブレーション
        path: 保存先 YAML ファイルのパス

    Returns:
        保存先パス
    """
    calibration_path = Path(path)
    calibration_path.parent.mkdir(parents=True, exist_ok=True)
    with calibration_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(calibration.to_degrees(), f, default_flow_style=False, sort_keys=False)
    logger.info(f"キャリブレーションを保存しました: {calibration_path}")
    return calibration_path
