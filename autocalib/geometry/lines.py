"""2次元の直線・線分ジオメトリ。

座標はすべて (x, y) の numpy 配列で扱う。直線は基点と方向ベクトル、
または法線と定数項 (n · p = c) で表現する。
"""

from __future__ import annotations

import math

import numpy as np


def as_point(point) -> np.ndarray:
    """任意の2要素シーケンスを float64 の点に変換する。"""
    return np.asarray(point, dtype=np.float64).reshape(2)


def signed_distance_to_line(base: np.ndarray, direction: np.ndarray, point: np.ndarray) -> float:
    """直線から点までの符号付き距離。

    法線は方向ベクトルを右に90度回転したもの (dy, -dx)。
    方向ベクトルがゼロの場合は基点からの距離を返す。

    Args:
        base: 直線上の点
        direction: 直線の方向
        point: 対象点

    Returns:
        符号付き距離
    """
    norm = math.hypot(direction[0], direction[1])
    if norm == 0.0:
        return float(np.linalg.norm(point - base))
    normal = np.array([direction[1], -direction[0]]) / norm
    return float(normal @ point - normal @ base)


def distance_to_line(base: np.ndarray, direction: np.ndarray, point: np.ndarray) -> float:
    """直線から点までの距離。"""
    return abs(signed_distance_to_line(base, direction, point))


def distance_to_segment(start: np.ndarray, end: np.ndarray, point: np.ndarray) -> float:
    """線分から点までの距離。

    Args:
        start: 線分の始点
        end: 線分の終点
        point: 対象点

    Returns:
        最近傍点までの距離
    """
    direction = end - start
    length_sq = float(direction @ direction)
    if length_sq == 0.0:
        return float(np.linalg.norm(point - start))
    t = min(1.0, max(0.0, float((point - start) @ direction) / length_sq))
    return float(np.linalg.norm(point - (start + t * direction)))


def angle_between(
    a_first: np.ndarray,
    a_second: np.ndarray,
    b_first: np.ndarray,
    b_second: np.ndarray,
) -> float:
    """2本の線分がなす角度 [rad] (0〜π)。

    縮退した線分では NaN を返す。
    """
    a = a_first - a_second
    b = b_first - b_second
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na == 0.0 or nb == 0.0:
        return math.nan
    dot = float(np.clip((a / na) @ (b / nb), -1.0, 1.0))
    return math.acos(dot)


def is_point_left_of_line(start: np.ndarray, end: np.ndarray, point: np.ndarray) -> bool:
    """点が start→end の左側にあるか。"""
    return float((end[0] - start[0]) * (point[1] - start[1]) - (end[1] - start[1]) * (point[0] - start[0])) > 0.0


class Hyperplane2:
    """2次元の超平面（直線） n · p = c。

    Attributes:
        normal: 単位法線
        offset: 定数項 c
    """

    __slots__ = ("normal", "offset")

    def __init__(self, normal: np.ndarray, point: np.ndarray):
        normal = as_point(normal)
        self.normal = normal / np.linalg.norm(normal)
        self.offset = float(self.normal @ as_point(point))

    def signed_distance(self, point: np.ndarray) -> float:
        return float(self.normal @ point) - self.offset

    def abs_distance(self, point: np.ndarray) -> float:
        return abs(self.signed_distance(point))

    def intersection(self, other: Hyperplane2) -> np.ndarray | None:
        """他の直線との交点。平行な場合は None。"""
        det = self.normal[0] * other.normal[1] - self.normal[1] * other.normal[0]
        if abs(det) < 1e-12:
            return None
        x = (self.offset * other.normal[1] - other.offset * self.normal[1]) / det
        y = (other.offset * self.normal[0] - self.offset * other.normal[0]) / det
        return np.array([x, y], dtype=np.float64)
