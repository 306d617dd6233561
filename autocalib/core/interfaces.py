"""ポートインターフェース定義。

キャリブレーションエンジンはここで定義される Protocol に依存し、
カメラ投影モデルの具体実装は projection / adapters 層へ分離する。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import numpy as np

    from autocalib.geometry.pose import Pose3
    from autocalib.models.data_models import CameraCalibration, CameraInfo, CapturePose


class CameraModelPort(Protocol):
    """カメラ投影モデルのポート。"""

    def camera_matrix(self, pose: CapturePose, calibration: CameraCalibration) -> Pose3:
        """撮影姿勢とキャリブレーション候補からカメラ行列を構築する。"""

    def image_to_robot(
        self,
        point_in_image: np.ndarray,
        camera_matrix: Pose3,
        camera_info: CameraInfo,
    ) -> np.ndarray | None:
        """補正済み画像座標をロボット相対のフィールド座標 [mm] に投影する。

        地面と交差しない場合は None を返す。
        """
