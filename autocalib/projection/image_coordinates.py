"""画像座標補正モジュール。

レンズ歪みを除去した（補正済み）画像座標への変換を提供します。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

import cv2
import numpy as np

if TYPE_CHECKING:
    from autocalib.models.data_models import CameraInfo


class ImageCoordinateSystem:
    """画像座標系クラス。

    OpenCV の歪み補正機能をラップし、単一点の変換を提供。
    歪み係数がゼロの場合は恒等変換となる。
    """

    def __init__(self, camera_info: CameraInfo, dist_coeffs: np.ndarray | list[float] | None = None):
        """初期化。

        Args:
            camera_info: カメラ情報
            dist_coeffs: 歪み係数 [k1, k2, p1, p2, k3]
        """
        self._camera_info = camera_info
        cx, cy = camera_info.optical_center
        f = camera_info.focal_length
        self._K = np.array([[f, 0, cx], [0, f, cy], [0, 0, 1]], dtype=np.float64)
        if dist_coeffs is None:
            dist_coeffs = np.zeros(5, dtype=np.float64)
        self._dist_coeffs = np.asarray(dist_coeffs, dtype=np.float64)
        self._has_distortion = bool(np.any(np.abs(self._dist_coeffs) > 1e-10))

    @classmethod
    def from_config(cls, camera_info: CameraInfo, config: dict) -> Self:
        """設定辞書から作成。

        Args:
            camera_info: カメラ情報
            config: cameras.<upper|lower> セクションの設定辞書
        """
        return cls(camera_info, config.get("dist_coeffs"))

    @property
    def has_distortion(self) -> bool:
        return self._has_distortion

    def to_corrected(self, point) -> np.ndarray:
        """単一点の歪みを補正。

        Args:
            point: 歪んだ画像座標 (u, v)

        Returns:
            補正後の画像座標 (2,)
        """
        point = np.asarray(point, dtype=np.float64).reshape(2)
        if not self._has_distortion:
            return point.copy()

        src = point.reshape(1, 1, 2)
        dst = cv2.undistortPoints(src, self._K, self._dist_coeffs, P=self._K)
        return dst.reshape(2)
