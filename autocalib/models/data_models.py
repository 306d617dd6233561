"""Data models for the automatic camera calibrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import TYPE_CHECKING, Any, Self

import numpy as np

if TYPE_CHECKING:
    from autocalib.geometry.pose import Pose3
    from autocalib.projection.image_coordinates import ImageCoordinateSystem


class CameraType(str, Enum):
    """カメラの種別"""

    LOWER = "lower"
    UPPER = "upper"


class CalibrationState(str, Enum):
    """キャリブレーションセッションの状態"""

    IDLE = "idle"
    RECORD_SAMPLES = "recordSamples"
    OPTIMIZE = "optimize"


class SampleConfigurationStatus(str, Enum):
    """サンプル構成ごとの進捗状態"""

    NONE = "none"
    VISIBLE = "visible"
    NOT_VISIBLE = "notVisible"
    RECORDING = "recording"
    FINISHED = "finished"


class Resolution(str, Enum):
    """カメラ解像度の要求値"""

    DEFAULT = "defaultRes"
    W320H240 = "w320h240"
    W640H480 = "w640h480"
    W1280H960 = "w1280h960"


@dataclass(frozen=True)
class CameraInfo:
    """カメラ情報

    Attributes:
        camera: カメラ種別
        width: 画像幅 [pixel]
        height: 画像高さ [pixel]
        focal_length: 焦点距離 [pixel]
        optical_center: 主点 (cx, cy) [pixel]
    """

    camera: CameraType
    width: int = 640
    height: int = 480
    focal_length: float = 560.0
    optical_center: tuple[float, float] = (320.0, 240.0)

    @classmethod
    def from_config(cls, camera: CameraType, config: dict) -> Self:
        """設定辞書から CameraInfo を作成。

        Args:
            camera: カメラ種別
            config: cameras.<upper|lower> セクションの設定辞書

        Returns:
            CameraInfo インスタンス
        """
        width = int(config.get("image_width", 640))
        height = int(config.get("image_height", 480))
        return cls(
            camera=camera,
            width=width,
            height=height,
            focal_length=float(config.get("focal_length", 560.0)),
            optical_center=(
                float(config.get("center_x", width / 2)),
                float(config.get("center_y", height / 2)),
            ),
        )


@dataclass(frozen=True)
class FieldDimensions:
    """フィールド寸法 [mm]

    Attributes:
        field_lines_width: ライン幅
        x_pos_opponent_ground_line: 相手側ゴールラインのX座標
        x_pos_opponent_goal_area: 相手側ゴールエリア前端のX座標
        x_pos_opponent_penalty_mark: 相手側ペナルティマークのX座標
    """

    field_lines_width: float = 50.0
    x_pos_opponent_ground_line: float = 4500.0
    x_pos_opponent_goal_area: float = 3900.0
    x_pos_opponent_penalty_mark: float = 3200.0

    @classmethod
    def from_config(cls, config: dict) -> Self:
        defaults = cls()
        return cls(
            field_lines_width=float(config.get("field_lines_width", defaults.field_lines_width)),
            x_pos_opponent_ground_line=float(
                config.get("x_pos_opponent_ground_line", defaults.x_pos_opponent_ground_line)
            ),
            x_pos_opponent_goal_area=float(config.get("x_pos_opponent_goal_area", defaults.x_pos_opponent_goal_area)),
            x_pos_opponent_penalty_mark=float(
                config.get("x_pos_opponent_penalty_mark", defaults.x_pos_opponent_penalty_mark)
            ),
        )

    @property
    def parallel_lines_distance(self) -> float:
        """ゴールラインとゴールエリア前端ラインの距離"""
        return self.x_pos_opponent_ground_line - self.x_pos_opponent_goal_area

    @property
    def goal_area_distance(self) -> float:
        """ペナルティマークからゴールエリア前端ラインまでの距離"""
        return self.x_pos_opponent_goal_area - self.x_pos_opponent_penalty_mark

    @property
    def ground_line_distance(self) -> float:
        """ペナルティマークからゴールラインまでの距離"""
        return self.x_pos_opponent_ground_line - self.x_pos_opponent_penalty_mark


@dataclass(frozen=True)
class CameraCalibration:
    """永続化されるキャリブレーション値 [rad]

    Attributes:
        camera_rotation_corrections: カメラごとの (roll, tilt) 補正
        body_rotation_correction: 胴体の (roll, tilt) 補正
    """

    camera_rotation_corrections: dict[CameraType, tuple[float, float]] = field(
        default_factory=lambda: {CameraType.LOWER: (0.0, 0.0), CameraType.UPPER: (0.0, 0.0)}
    )
    body_rotation_correction: tuple[float, float] = (0.0, 0.0)

    def camera_correction(self, camera: CameraType) -> tuple[float, float]:
        return self.camera_rotation_corrections.get(camera, (0.0, 0.0))

    def to_degrees(self) -> dict[str, dict[str, float]]:
        """度単位の辞書表現を返す（ログ・保存用）。"""
        result = {}
        for camera in CameraType:
            roll, tilt = self.camera_correction(camera)
            result[f"{camera.value}_camera"] = {"roll_deg": math.degrees(roll), "tilt_deg": math.degrees(tilt)}
        roll, tilt = self.body_rotation_correction
        result["body"] = {"roll_deg": math.degrees(roll), "tilt_deg": math.degrees(tilt)}
        return result

    @classmethod
    def from_degrees(cls, data: dict[str, Any]) -> Self:
        """度単位の辞書表現から作成する。"""

        def _pair(key: str) -> tuple[float, float]:
            section = data.get(key) or {}
            return (
                math.radians(float(section.get("roll_deg", 0.0))),
                math.radians(float(section.get("tilt_deg", 0.0))),
            )

        return cls(
            camera_rotation_corrections={camera: _pair(f"{camera.value}_camera") for camera in CameraType},
            body_rotation_correction=_pair("body"),
        )


@dataclass(frozen=True)
class CapturePose:
    """撮影時のロボット姿勢

    サンプルはこの姿勢を保持し、任意のキャリブレーション候補で
    カメラ行列を再計算する。

    Attributes:
        torso_matrix: 地面から胴体への変換
        head_pan: 首のパン角 [rad]
        head_tilt: 首のチルト角 [rad]
        camera_info: カメラ情報
        image_coordinate_system: 画像座標補正
    """

    torso_matrix: Pose3
    head_pan: float
    head_tilt: float
    camera_info: CameraInfo
    image_coordinate_system: ImageCoordinateSystem


@dataclass(frozen=True)
class LinePercept:
    """検出済みの線分

    Attributes:
        first_img: 画像上の始点
        last_img: 画像上の終点
        first_field: ロボット相対のフィールド上の始点 [mm]
        last_field: ロボット相対のフィールド上の終点 [mm]
    """

    first_img: tuple[float, float]
    last_img: tuple[float, float]
    first_field: tuple[float, float]
    last_field: tuple[float, float]

    @property
    def midpoint_on_field(self) -> np.ndarray:
        return (np.asarray(self.first_field, dtype=np.float64) + np.asarray(self.last_field, dtype=np.float64)) * 0.5


@dataclass(frozen=True)
class PenaltyMarkPercept:
    """ペナルティマークの検出結果"""

    was_seen: bool = False
    position_in_image: tuple[float, float] = (0.0, 0.0)
    position_on_field: tuple[float, float] = (0.0, 0.0)


@dataclass(frozen=True)
class SampleConfigurationRequest:
    """サンプル構成の要求

    Attributes:
        index: 構成番号（変化したら新しい構成）
        camera: 対象カメラ
        head_pan: 撮影時の首パン角 [rad]
        head_tilt: 撮影時の首チルト角 [rad]
        sample_types: 要求するサンプル種別のビットマスク
        do_record: 記録するか
    """

    index: int
    camera: CameraType
    head_pan: float = 0.0
    head_tilt: float = 0.0
    sample_types: int = 0
    do_record: bool = False


@dataclass(frozen=True)
class CalibrationRequest:
    """外部からのキャリブレーション要求"""

    target_state: CalibrationState = CalibrationState.IDLE
    total_num_of_samples: int = 0
    sample_configuration_request: SampleConfigurationRequest | None = None


@dataclass(frozen=True)
class CalibrationStatus:
    """公開されるキャリブレーション状態"""

    state: CalibrationState
    in_state_since: int
    sample_configuration_status: SampleConfigurationStatus = SampleConfigurationStatus.NONE


@dataclass
class CalibrationFrame:
    """1フレーム分の入力

    Attributes:
        time: フレーム時刻 [ms]
        camera_matrix: 現在のカメラ行列（ロボット座標系）
        pose: 撮影時の姿勢
        image: グレースケール画像 (H, W)。無い場合は記録しない
        lines: 検出線分
        penalty_mark: ペナルティマーク検出
        request: キャリブレーション要求
    """

    time: int
    camera_matrix: Pose3
    pose: CapturePose
    image: np.ndarray | None = None
    lines: list[LinePercept] = field(default_factory=list)
    penalty_mark: PenaltyMarkPercept = field(default_factory=PenaltyMarkPercept)
    request: CalibrationRequest = field(default_factory=CalibrationRequest)

    @property
    def camera_info(self) -> CameraInfo:
        return self.pose.camera_info
