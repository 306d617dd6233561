"""Configuration management module for the automatic camera calibrator."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from autocalib.models.data_models import Resolution

logger = logging.getLogger(__name__)


class ConfigManager:
    """設定ファイル管理クラス

    YAML/JSON形式の設定ファイルを読み込み、検証し、設定値を提供する。

    Attributes:
        config_path: 設定ファイルのパス
        config: 読み込まれた設定データ
    """

    # 必須項目の定義
    REQUIRED_KEYS = {
        "calibrator": [
            "num_of_angles",
            "hough_sector_deg",
            "sobel_thresh_value",
            "termination_criterion",
            "min_successive_convergences",
        ],
        "field_dimensions": [
            "field_lines_width",
            "x_pos_opponent_ground_line",
            "x_pos_opponent_goal_area",
            "x_pos_opponent_penalty_mark",
        ],
        "cameras": ["upper", "lower"],
        "calibration": ["path"],
        "output": ["directory"],
    }

    # デフォルト設定値
    DEFAULT_CONFIG = {
        "calibrator": {
            "num_of_angles": 360,
            "hough_sector_deg": 10.0,
            "sobel_thresh_value": 0.3,
            "min_dis_image": 3.0,
            "angle_error_divisor_deg": 1.0,
            "distance_error_divisor": 10.0,
            "pixel_inaccuracy_per_meter": 5.0,
            "not_valid_error": 10000000.0,
            "termination_criterion": 0.00001,
            "min_successive_convergences": 5,
            "discards_until_increase": 30,
            "increase": 10.0,
            "jacobian_epsilon": 0.0001,
            "damping": 0.000000001,
            "restart_perturbation_deg": 0.5,
        },
        "field_dimensions": {
            "field_lines_width": 50.0,
            "x_pos_opponent_ground_line": 4500.0,
            "x_pos_opponent_goal_area": 3900.0,
            "x_pos_opponent_penalty_mark": 3200.0,
        },
        "robot_dimensions": {
            "neck_height": 126.5,
            "upper_camera_x": 58.71,
            "upper_camera_z": 63.64,
            "upper_camera_tilt_deg": 1.2,
            "lower_camera_x": 50.71,
            "lower_camera_z": 17.74,
            "lower_camera_tilt_deg": 39.7,
        },
        "cameras": {
            "upper": {
                "image_width": 640,
                "image_height": 480,
                "focal_length": 560.0,
                "center_x": 320.0,
                "center_y": 240.0,
                "dist_coeffs": [0.0, 0.0, 0.0, 0.0, 0.0],
            },
            "lower": {
                "image_width": 640,
                "image_height": 480,
                "focal_length": 560.0,
                "center_x": 320.0,
                "center_y": 240.0,
                "dist_coeffs": [0.0, 0.0, 0.0, 0.0, 0.0],
            },
        },
        "resolution_request": {
            "upper": "w1280h960",
            "lower": "w640h480",
        },
        "calibration": {"path": "output/cameraCalibration.yaml"},
        "output": {
            "directory": "output",
            "debug_mode": False,
        },
    }

    def __init__(self, config_path: str = "config.yaml"):
        """ConfigManagerを初期化する

        Args:
            config_path: 設定ファイルのパス（デフォルト: config.yaml）
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """設定ファイルを読み込む

        Returns:
            読み込まれた設定データ

        Raises:
            ValueError: 設定ファイルの形式が不正な場合
        """
        if not os.path.exists(self.config_path):
            logger.warning(f"設定ファイル '{self.config_path}' が見つかりません。デフォルト設定を使用します。")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                file_ext = Path(self.config_path).suffix.lower()

                if file_ext in [".yaml", ".yml"]:
                    config = yaml.safe_load(f)
                elif file_ext == ".json":
                    config = json.load(f)
                else:
                    raise ValueError(f"サポートされていないファイル形式: {file_ext}")

                if config is None:
                    logger.warning("設定ファイルが空です。デフォルト設定を使用します。")
                    return copy.deepcopy(self.DEFAULT_CONFIG)
                if not isinstance(config, dict):
                    raise ValueError("設定ファイルは辞書形式である必要があります。")

                logger.info(f"設定ファイル '{self.config_path}' を読み込みました。")
                return config

        except yaml.YAMLError as e:
            raise ValueError(f"YAML解析エラー: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON解析エラー: {e}") from e
        except OSError as e:
            raise ValueError(f"設定ファイルの読み込みに失敗しました: {e}") from e

    def validate(self) -> bool:
        """設定値の妥当性を検証する

        必須項目の存在チェック、型チェック、値の範囲チェックを実行する。

        Returns:
            検証が成功した場合True

        Raises:
            ValueError: 設定値が不正な場合
        """
        # 必須セクションの存在チェック
        for section in self.REQUIRED_KEYS.keys():
            if section not in self.config:
                raise ValueError(f"必須セクション '{section}' が設定ファイルに存在しません。")

        # 各セクションの必須項目チェック
        for section, required_keys in self.REQUIRED_KEYS.items():
            section_config = self.config.get(section, {})
            if not isinstance(section_config, dict):
                raise ValueError(f"セクション '{section}' は辞書型である必要があります。")
            for key in required_keys:
                if key not in section_config:
                    raise ValueError(f"必須項目 '{section}.{key}' が設定ファイルに存在しません。")

        self._validate_calibrator_config()
        self._validate_field_dimensions_config()
        self._validate_cameras_config()

        if "robot_dimensions" in self.config:
            self._validate_robot_dimensions_config()
        if "resolution_request" in self.config:
            self._validate_resolution_request_config()

        self._validate_output_config()

        logger.info("設定ファイルの検証が完了しました。")
        return True

    def _validate_calibrator_config(self):
        """calibrator セクションの検証"""
        calibrator_config = self.config.get("calibrator", {})

        num_of_angles = calibrator_config.get("num_of_angles")
        if not isinstance(num_of_angles, int) or num_of_angles < 2:
            raise ValueError("calibrator.num_of_angles は2以上の整数である必要があります。")

        sector = calibrator_config.get("hough_sector_deg")
        if not isinstance(sector, (int, float)) or not (0.0 < sector < 90.0):
            raise ValueError("calibrator.hough_sector_deg は 0 より大きく 90 未満である必要があります。")

        sobel = calibrator_config.get("sobel_thresh_value")
        if not isinstance(sobel, (int, float)) or not (0.0 < sobel <= 1.0):
            raise ValueError("calibrator.sobel_thresh_value は 0.0 より大きく 1.0 以下である必要があります。")

        criterion = calibrator_config.get("termination_criterion")
        if not isinstance(criterion, (int, float)) or criterion <= 0:
            raise ValueError("calibrator.termination_criterion は正の数値である必要があります。")

        # 正の整数項目
        for key in ["min_successive_convergences", "discards_until_increase"]:
            if key in calibrator_config:
                value = calibrator_config[key]
                if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                    raise ValueError(f"calibrator.{key} は正の整数である必要があります。")

        # 正の数値項目
        positive_keys = [
            "angle_error_divisor_deg",
            "distance_error_divisor",
            "not_valid_error",
            "jacobian_epsilon",
        ]
        for key in positive_keys:
            if key in calibrator_config:
                value = calibrator_config[key]
                if not isinstance(value, (int, float)) or value <= 0:
                    raise ValueError(f"calibrator.{key} は正の数値である必要があります。")

        # 非負の数値項目
        non_negative_keys = [
            "min_dis_image",
            "pixel_inaccuracy_per_meter",
            "increase",
            "damping",
            "restart_perturbation_deg",
        ]
        for key in non_negative_keys:
            if key in calibrator_config:
                value = calibrator_config[key]
                if not isinstance(value, (int, float)) or value < 0:
                    raise ValueError(f"calibrator.{key} は非負の数値である必要があります。")

    def _validate_field_dimensions_config(self):
        """field_dimensions セクションの検証"""
        field_config = self.config.get("field_dimensions", {})

        for key in self.REQUIRED_KEYS["field_dimensions"]:
            value = field_config.get(key)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"field_dimensions.{key} は正の数値である必要があります。")

        # ゴールライン > ゴールエリア前端 > ペナルティマーク の順に並ぶ
        ground = field_config["x_pos_opponent_ground_line"]
        goal_area = field_config["x_pos_opponent_goal_area"]
        penalty_mark = field_config["x_pos_opponent_penalty_mark"]
        if not (ground > goal_area > penalty_mark):
            raise ValueError(
                "field_dimensions は x_pos_opponent_ground_line > x_pos_opponent_goal_area > "
                "x_pos_opponent_penalty_mark を満たす必要があります。"
            )

    def _validate_cameras_config(self):
        """cameras セクションの検証"""
        cameras_config = self.config.get("cameras", {})

        for camera in ["upper", "lower"]:
            camera_config = cameras_config.get(camera)
            if not isinstance(camera_config, dict):
                raise ValueError(f"cameras.{camera} は辞書型である必要があります。")

            for key in ["image_width", "image_height"]:
                if key in camera_config:
                    value = camera_config[key]
                    if not isinstance(value, int) or value <= 0:
                        raise ValueError(f"cameras.{camera}.{key} は正の整数である必要があります。")

            if "focal_length" in camera_config:
                focal_length = camera_config["focal_length"]
                if not isinstance(focal_length, (int, float)) or focal_length <= 0:
                    raise ValueError(f"cameras.{camera}.focal_length は正の数値である必要があります。")

            for key in ["center_x", "center_y"]:
                if key in camera_config and not isinstance(camera_config[key], (int, float)):
                    raise ValueError(f"cameras.{camera}.{key} は数値である必要があります。")

            # dist_coeffs の検証（任意）
            if camera_config.get("dist_coeffs") is not None:
                dist_coeffs = camera_config["dist_coeffs"]
                if not isinstance(dist_coeffs, list) or len(dist_coeffs) not in (4, 5, 8):
                    raise ValueError(f"cameras.{camera}.dist_coeffs は長さ 4, 5, 8 のリストである必要があります。")
                if not all(isinstance(c, (int, float)) for c in dist_coeffs):
                    raise ValueError(f"cameras.{camera}.dist_coeffs の各要素は数値である必要があります。")

    def _validate_robot_dimensions_config(self):
        """robot_dimensions セクションの検証"""
        robot_config = self.config.get("robot_dimensions", {})
        if not isinstance(robot_config, dict):
            raise ValueError("robot_dimensions は辞書型である必要があります。")

        for key, value in robot_config.items():
            if not isinstance(value, (int, float)):
                raise ValueError(f"robot_dimensions.{key} は数値である必要があります。")

        if "neck_height" in robot_config and robot_config["neck_height"] <= 0:
            raise ValueError("robot_dimensions.neck_height は正の数値である必要があります。")

    def _validate_resolution_request_config(self):
        """resolution_request セクションの検証"""
        resolution_config = self.config.get("resolution_request", {})
        if not isinstance(resolution_config, dict):
            raise ValueError("resolution_request は辞書型である必要があります。")

        valid = [resolution.value for resolution in Resolution]
        for camera, resolution in resolution_config.items():
            if camera not in ["upper", "lower"]:
                raise ValueError(f"resolution_request.{camera} は未知のカメラです。")
            if resolution not in valid:
                raise ValueError(f"resolution_request.{camera} は {valid} のいずれかである必要があります。")

    def _validate_output_config(self):
        """output / calibration セクションの検証"""
        output_config = self.config.get("output", {})

        # directory の型チェック
        if not isinstance(output_config.get("directory"), str):
            raise ValueError("output.directory は文字列である必要があります。")

        if "debug_mode" in output_config and not isinstance(output_config["debug_mode"], bool):
            raise ValueError("output.debug_mode はブール値である必要があります。")

        path = self.config.get("calibration", {}).get("path")
        if not isinstance(path, str) or Path(path).suffix.lower() not in [".yaml", ".yml"]:
            raise ValueError("calibration.path は .yaml/.yml ファイルのパスである必要があります。")

    def get(self, key: str, default: Any = None) -> Any:
        """設定値を取得する

        ドット記法（例: 'calibrator.num_of_angles'）で階層的な設定値にアクセスできる。

        Args:
            key: 設定キー（ドット記法をサポート）
            default: キーが存在しない場合のデフォルト値

        Returns:
            設定値、またはデフォルト値
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """設定セクション全体を取得する

        Args:
            section: セクション名（例: 'calibrator', 'cameras'）

        Returns:
            セクションの設定データ
        """
        return self.config.get(section, {})

    def set(self, key: str, value: Any):
        """設定値を動的に変更する

        Args:
            key: 設定キー（ドット記法をサポート）
            value: 設定する値
        """
        keys = key.split(".")
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        logger.debug(f"設定値を変更しました: {key} = {value}")

    def save(self, output_path: Optional[str] = None):
        """設定をファイルに保存する

        Args:
            output_path: 保存先パス（指定しない場合は元のパスに上書き）
        """
        save_path = output_path or self.config_path
        file_ext = Path(save_path).suffix.lower()

        try:
            with open(save_path, "w", encoding="utf-8") as f:
                if file_ext in [".yaml", ".yml"]:
                    yaml.dump(self.config, f, default_flow_style=False, allow_unicode=True)
                elif file_ext == ".json":
                    json.dump(self.config, f, indent=2, ensure_ascii=False)
                else:
                    raise ValueError(f"サポートされていないファイル形式: {file_ext}")

            logger.info(f"設定ファイルを保存しました: {save_path}")
        except Exception as e:
            logger.error(f"設定ファイルの保存に失敗しました: {e}")
            raise
