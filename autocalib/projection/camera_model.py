"""ロボット頭部カメラの投影モデル。

座標系の定義:
    - Image (Pixel): (u, v), 左上原点、右下正
    - Camera (3D): X=光軸前方, Y=左, Z=上
    - Robot (3D): 地面上のロボット足元原点, X=前方, Y=左, Z=上 [mm]

カメラ行列は 胴体姿勢 → 胴体補正 → 首 (パン, チルト) → カメラ取付位置
→ カメラ補正 の順に合成する。
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING, Self

import numpy as np

from autocalib.geometry.pose import Pose3
from autocalib.models.data_models import CameraType

if TYPE_CHECKING:
    from autocalib.models.data_models import CameraCalibration, CameraInfo, CapturePose

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RobotDimensions:
    """頭部とカメラの取付寸法。

    Attributes:
        neck_height: 胴体原点から首関節までの高さ [mm]
        upper_camera_x / upper_camera_z: 上カメラの首関節からの位置 [mm]
        upper_camera_tilt: 上カメラの取付チルト [rad]
        lower_camera_x / lower_camera_z: 下カメラの首関節からの位置 [mm]
        lower_camera_tilt: 下カメラの取付チルト [rad]
    """

    neck_height: float = 126.5
    upper_camera_x: float = 58.71
    upper_camera_z: float = 63.64
    upper_camera_tilt: float = math.radians(1.2)
    lower_camera_x: float = 50.71
    lower_camera_z: float = 17.74
    lower_camera_tilt: float = math.radians(39.7)

    @classmethod
    def from_config(cls, config: dict) -> Self:
        """設定辞書から作成。角度は度で指定する。"""
        defaults = cls()
        return cls(
            neck_height=float(config.get("neck_height", defaults.neck_height)),
            upper_camera_x=float(config.get("upper_camera_x", defaults.upper_camera_x)),
            upper_camera_z=float(config.get("upper_camera_z", defaults.upper_camera_z)),
            upper_camera_tilt=math.radians(
                float(config.get("upper_camera_tilt_deg", math.degrees(defaults.upper_camera_tilt)))
            ),
            lower_camera_x=float(config.get("lower_camera_x", defaults.lower_camera_x)),
            lower_camera_z=float(config.get("lower_camera_z", defaults.lower_camera_z)),
            lower_camera_tilt=math.radians(
                float(config.get("lower_camera_tilt_deg", math.degrees(defaults.lower_camera_tilt)))
            ),
        )

    def camera_mount(self, camera: CameraType) -> tuple[float, float, float]:
        """(x, z, tilt) を返す。"""
        if camera == CameraType.UPPER:
            return (self.upper_camera_x, self.upper_camera_z, self.upper_camera_tilt)
        return (self.lower_camera_x, self.lower_camera_z, self.lower_camera_tilt)


class RobotCameraModel:
    """ピンホールモデルに基づくロボットカメラの投影モデル。

    CameraModelPort の参照実装。
    """

    def __init__(self, dimensions: RobotDimensions | None = None):
        """初期化。

        Args:
            dimensions: 頭部・カメラ寸法（None の場合はデフォルト）
        """
        self.dimensions = dimensions or RobotDimensions()

    def camera_matrix(self, pose: CapturePose, calibration: CameraCalibration) -> Pose3:
        """撮影姿勢とキャリブレーションからカメラ行列を構築する。

        Args:
            pose: 撮影時の姿勢
            calibration: キャリブレーション（候補）

        Returns:
            ロボット座標系でのカメラ姿勢
        """
        body_roll, body_tilt = calibration.body_rotation_correction
        torso = pose.torso_matrix.rotated_x(body_roll).rotated_y(body_tilt)

        camera = pose.camera_info.camera
        mount_x, mount_z, mount_tilt = self.dimensions.camera_mount(camera)
        roll_correction, tilt_correction = calibration.camera_correction(camera)

        head = (
            Pose3.from_translation(z=self.dimensions.neck_height)
            .rotated_z(pose.head_pan)
            .rotated_y(pose.head_tilt)
        )
        robot_camera = (
            head.translated(x=mount_x, z=mount_z)
            .rotated_y(mount_tilt)
            .rotated_x(roll_correction)
            .rotated_y(tilt_correction)
        )
        return torso @ robot_camera

    def image_to_robot(
        self,
        point_in_image: np.ndarray,
        camera_matrix: Pose3,
        camera_info: CameraInfo,
    ) -> np.ndarray | None:
        """補正済み画像座標を地面 (Z=0) 上のロボット座標に投影する。

        Args:
            point_in_image: 補正済み画像座標 (u, v)
            camera_matrix: カメラ行列
            camera_info: カメラ情報

        Returns:
            ロボット座標 (x, y) [mm]、または None（地面と交差しない場合）
        """
        cx, cy = camera_info.optical_center
        unscaled_camera = np.array(
            [camera_info.focal_length, cx - point_in_image[0], cy - point_in_image[1]],
            dtype=np.float64,
        )
        unscaled_field = camera_matrix.rotation @ unscaled_camera
        if unscaled_field[2] >= 0.0:
            return None
        scale = -camera_matrix.translation[2] / unscaled_field[2]
        return unscaled_field[:2] * scale + camera_matrix.translation[:2]

    def robot_to_image(
        self,
        point_in_robot: np.ndarray,
        camera_matrix: Pose3,
        camera_info: CameraInfo,
    ) -> np.ndarray | None:
        """ロボット座標の3次元点を補正済み画像座標に投影する。

        Args:
            point_in_robot: ロボット座標 (x, y) または (x, y, z) [mm]
            camera_matrix: カメラ行列
            camera_info: カメラ情報

        Returns:
            画像座標 (u, v)、または None（カメラの後方）
        """
        point = np.zeros(3, dtype=np.float64)
        values = np.asarray(point_in_robot, dtype=np.float64).flatten()
        point[: values.size] = values
        in_camera = camera_matrix.inverse().apply(point)
        if in_camera[0] <= 0.0:
            return None
        cx, cy = camera_info.optical_center
        f = camera_info.focal_length
        return np.array([cx - f * in_camera[1] / in_camera[0], cy - f * in_camera[2] / in_camera[0]])
