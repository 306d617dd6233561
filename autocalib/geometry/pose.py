"""3次元の剛体変換。

ロボット座標系: X=前方, Y=左, Z=上 [mm]。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

import numpy as np


def rotation_x(angle: float) -> np.ndarray:
    """X軸周りの回転行列（ロール）。"""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]], dtype=np.float64)


def rotation_y(angle: float) -> np.ndarray:
    """Y軸周りの回転行列（チルト）。"""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]], dtype=np.float64)


def rotation_z(angle: float) -> np.ndarray:
    """Z軸周りの回転行列（パン）。"""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]], dtype=np.float64)


@dataclass
class Pose3:
    """回転と並進からなる3次元姿勢。

    p_parent = rotation @ p_child + translation

    Attributes:
        rotation: 回転行列 (3x3)
        translation: 並進ベクトル (3,) [mm]
    """

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=np.float64))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))

    def __post_init__(self) -> None:
        """配列を numpy 配列に変換し、形状を検証"""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(f"translation must be (3,), got {self.translation.shape}")

    def __matmul__(self, other: Pose3) -> Pose3:
        return Pose3(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )

    def apply(self, point: np.ndarray) -> np.ndarray:
        """点を子座標系から親座標系に変換する。"""
        return self.rotation @ np.asarray(point, dtype=np.float64) + self.translation

    def inverse(self) -> Pose3:
        rotation_t = self.rotation.T
        return Pose3(rotation=rotation_t, translation=-rotation_t @ self.translation)

    def translated(self, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Pose3:
        """ローカル座標系で並進した姿勢を返す。"""
        return self @ Pose3(translation=np.array([x, y, z], dtype=np.float64))

    def rotated_x(self, angle: float) -> Pose3:
        return self @ Pose3(rotation=rotation_x(angle))

    def rotated_y(self, angle: float) -> Pose3:
        return self @ Pose3(rotation=rotation_y(angle))

    def rotated_z(self, angle: float) -> Pose3:
        return self @ Pose3(rotation=rotation_z(angle))

    @classmethod
    def from_translation(cls, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Self:
        return cls(translation=np.array([x, y, z], dtype=np.float64))
