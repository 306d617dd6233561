"""テスト向けの軽量な Fake 実装群。"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from autocalib.core.interfaces import CameraModelPort
from autocalib.geometry.pose import Pose3

if TYPE_CHECKING:
    from autocalib.models.data_models import CameraCalibration, CameraInfo, CapturePose


class FakeCameraModel(CameraModelPort):
    """画像座標をそのままスケーリングしてフィールドに写すアフィン投影。

    画像の上方向がロボット前方 (X+)、左方向がロボット左 (Y+) になる。
    horizon_v より下の行だけが地面に投影される。
    """

    def __init__(self, mm_per_pixel: float = 6.25, center_u: float = 500.0, horizon_v: float = 480.0):
        self.mm_per_pixel = mm_per_pixel
        self.center_u = center_u
        self.horizon_v = horizon_v

    def camera_matrix(self, pose: CapturePose, calibration: CameraCalibration) -> Pose3:
        _ = (pose, calibration)  # 未使用引数
        return Pose3()

    def image_to_robot(
        self,
        point_in_image: np.ndarray,
        camera_matrix: Pose3,
        camera_info: CameraInfo,
    ) -> np.ndarray | None:
        _ = (camera_matrix, camera_info)  # 未使用引数
        u, v = float(point_in_image[0]), float(point_in_image[1])
        if v > self.horizon_v:
            return None
        return np.array([(self.horizon_v - v) * self.mm_per_pixel, (self.center_u - u) * self.mm_per_pixel])

    def robot_to_image(self, point_in_robot) -> np.ndarray:
        x, y = float(point_in_robot[0]), float(point_in_robot[1])
        return np.array([self.center_u - y / self.mm_per_pixel, self.horizon_v - x / self.mm_per_pixel])
