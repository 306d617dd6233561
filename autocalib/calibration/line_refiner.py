"""ライン精密化モジュール。

検出済みの粗い線分の周辺パッチから勾配を求め、角度を制限したハフ変換で
ラインの片側エッジをサブピクセル精度で再推定します。反対側のエッジとの
位置関係から、ライン中心に対するオフセット（ライン幅の半分）の符号を決めます。
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING

import cv2
import numpy as np

from autocalib.geometry.lines import Hyperplane2, as_point

if TYPE_CHECKING:
    from autocalib.calibration.settings import CalibratorSettings

logger = logging.getLogger(__name__)

# 画像座標 → ロボット相対フィールド座標。投影できない場合は None
Projector = Callable[[np.ndarray], "np.ndarray | None"]

MIN_PATCH_SIZE = 32
PATCH_WIDTH_ALIGNMENT = 16


@dataclass(frozen=True)
class CorrectedLine:
    """精密化されたライン。

    Attributes:
        a_in_image: 画像上の始点（左側）
        b_in_image: 画像上の終点（右側）
        a_on_field: 始点のロボット相対フィールド座標 [mm]
        b_on_field: 終点のロボット相対フィールド座標 [mm]
        offset: 検出エッジからライン中心までのオフセット [mm]（ライン幅の半分、符号付き）
    """

    a_in_image: np.ndarray
    b_in_image: np.ndarray
    a_on_field: np.ndarray
    b_on_field: np.ndarray
    offset: float = 0.0

    @property
    def field_length_sq(self) -> float:
        d = self.b_on_field - self.a_on_field
        return float(d @ d)

    @property
    def angle_in_image(self) -> float:
        """画像上の向き [rad] (0〜π)。"""
        d = self.b_in_image - self.a_in_image
        return math.atan2(d[1], d[0]) % math.pi


@dataclass(frozen=True)
class HoughMaximum:
    """ハフ空間の極大値"""

    votes: int
    angle_index: int
    distance_index: int


def circular_range(start: int, stop: int, size: int) -> list[int]:
    """start から stop の直前までを size を法として列挙する。

    start > stop の場合は配列末尾で折り返す。start == stop の場合は空。
    """
    indices = []
    index = start
    while index != stop:
        indices.append(index)
        index = (index + 1) % size
    return indices


def normalize_angle(angle: float) -> float:
    """角度を (-π, π] に正規化する。"""
    angle = math.fmod(angle, 2.0 * math.pi)
    if angle > math.pi:
        angle -= 2.0 * math.pi
    elif angle <= -math.pi:
        angle += 2.0 * math.pi
    return angle


def extract_patch(image: np.ndarray, start: tuple[int, int], size: tuple[int, int]) -> np.ndarray:
    """画像からパッチを切り出す。画像外の画素は 0 のまま。

    Args:
        image: グレースケール画像 (H, W)
        start: パッチ左上 (x, y)
        size: パッチサイズ (width, height)

    Returns:
        パッチ (height, width) uint8
    """
    start_x, start_y = start
    size_x, size_y = size
    patch = np.zeros((size_y, size_x), dtype=np.uint8)

    height, width = image.shape[:2]
    x0, y0 = max(0, start_x), max(0, start_y)
    x1, y1 = min(width, start_x + size_x), min(height, start_y + size_y)
    if x0 < x1 and y0 < y1:
        patch[y0 - start_y : y1 - start_y, x0 - start_x : x1 - start_x] = image[y0:y1, x0:x1]
    return patch


class LineRefiner:
    """制限付きハフ変換によるライン精密化クラス。"""

    def __init__(self, settings: CalibratorSettings):
        """初期化。

        Args:
            settings: キャリブレータ設定
        """
        self.settings = settings
        self.num_of_angles = settings.num_of_angles
        angles = np.arange(self.num_of_angles, dtype=np.float64) * (math.pi / self.num_of_angles)
        # cos(90°) が 6e-17 のような値になると ceil で 1 画素ずれるため丸める
        self._cos = np.where(np.abs(np.cos(angles)) < 1e-9, 0.0, np.cos(angles))
        self._sin = np.where(np.abs(np.sin(angles)) < 1e-9, 0.0, np.sin(angles))

    def refine(self, first, last, image: np.ndarray, projector: Projector) -> CorrectedLine | None:
        """粗い線分を精密化する。

        Args:
            first: 画像上の端点
            last: 画像上の端点
            image: グレースケール画像 (H, W) または BGR 画像
            projector: 画像座標をフィールド座標に投影する関数

        Returns:
            CorrectedLine、または None（エッジ対が見つからない・投影不能の場合）
        """
        start, end = as_point(first), as_point(last)
        if end[0] < start[0]:
            start, end = end, start
        if np.allclose(start, end):
            return None

        if image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        # 処理するパッチの範囲
        mid = np.trunc((start + end) * 0.5).astype(int)
        size_x = (
            (max(MIN_PATCH_SIZE, int(end[0] - start[0])) + PATCH_WIDTH_ALIGNMENT - 1) // PATCH_WIDTH_ALIGNMENT
        ) * PATCH_WIDTH_ALIGNMENT
        size_y = max(MIN_PATCH_SIZE, abs(int(end[1] - start[1])))
        start_x, start_y = int(mid[0]) - size_x // 2, int(mid[1]) - size_y // 2

        patch = extract_patch(image, (start_x, start_y), (size_x, size_y))
        grad_x = cv2.Sobel(patch, cv2.CV_32F, 1, 0, ksize=3)
        grad_y = cv2.Sobel(patch, cv2.CV_32F, 0, 1, ksize=3)

        # おおよその向きは既知なので、その周辺の角度だけを調べる
        indices = self.sector_indices(start, end)
        d_max = int(math.ceil(math.hypot(size_y, size_x)))
        hough = self.hough_space(grad_x, grad_y, indices, d_max)
        maxima = self.local_maxima(hough, indices)
        if len(maxima) < 2:
            logger.debug(f"Line refinement rejected: {len(maxima)} hough maxima")
            return None

        maxima.sort(key=lambda m: m.votes, reverse=True)
        origin = np.array([start_x, start_y], dtype=np.float64)
        optimal_line = self._edge_line(maxima[0], d_max, origin)

        norm = np.array([0.0, 1.0]) if abs(start[0] - end[0]) < abs(start[1] - end[1]) else np.array([1.0, 0.0])
        line_start = Hyperplane2(norm, start)
        line_end = Hyperplane2(norm, end)
        a_in_image = optimal_line.intersection(line_start)
        b_in_image = optimal_line.intersection(line_end)
        if a_in_image is None or b_in_image is None:
            return None

        # 反対側のエッジを探し、検出したのが上下どちらのエッジか判定する
        for maximum in maxima[1:]:
            opposite_line = self._edge_line(maximum, d_max, origin)
            start_opposite = opposite_line.intersection(line_start)
            end_opposite = opposite_line.intersection(line_end)
            if start_opposite is None or end_opposite is None:
                continue

            if (optimal_line.signed_distance(start_opposite) < 0.0) != (
                optimal_line.signed_distance(end_opposite) < 0.0
            ):
                continue
            if (
                optimal_line.abs_distance(start_opposite) < self.settings.min_dis_image
                or optimal_line.abs_distance(end_opposite) < self.settings.min_dis_image
            ):
                continue

            dis_in_image = optimal_line.signed_distance((start_opposite + end_opposite) * 0.5)
            half_width = self.settings.field_lines_width / 2.0
            offset = half_width if dis_in_image > 0.0 else -half_width

            a_on_field = projector(a_in_image)
            b_on_field = projector(b_in_image)
            if a_on_field is None or b_on_field is None:
                logger.debug("Line refinement rejected: endpoint is not on the ground")
                return None
            return CorrectedLine(
                a_in_image=a_in_image,
                b_in_image=b_in_image,
                a_on_field=np.asarray(a_on_field, dtype=np.float64),
                b_on_field=np.asarray(b_on_field, dtype=np.float64),
                offset=offset,
            )

        logger.debug("Line refinement rejected: no opposite edge")
        return None

    def sector_indices(self, start: np.ndarray, end: np.ndarray) -> list[int]:
        """線分の法線方向 ±hough_sector の角度インデックスを返す。"""
        direction = end - start
        # 左に90度回転した法線
        normal_angle = math.atan2(direction[0], -direction[1])
        angle = math.fmod(normal_angle + math.pi, math.pi)
        sector = self.settings.hough_sector
        min_angle = math.fmod(normalize_angle(angle - sector) + math.pi, math.pi)
        max_angle = math.fmod(normalize_angle(angle + sector) + math.pi, math.pi)
        min_index = int(min_angle * self.num_of_angles / math.pi) % self.num_of_angles
        max_index = int(max_angle * self.num_of_angles / math.pi) % self.num_of_angles
        return circular_range(min_index, max_index, self.num_of_angles)

    def sobel_threshold(self, magnitude_sq: np.ndarray) -> float:
        """勾配強度二乗の閾値を求める（境界画素を除く）。"""
        inner = magnitude_sq[1:-1, 1:-1]
        max_value = float(inner.max()) if inner.size else 0.0
        return (math.sqrt(max_value) * self.settings.sobel_thresh_value) ** 2

    def hough_space(self, grad_x: np.ndarray, grad_y: np.ndarray, indices: list[int], d_max: int) -> np.ndarray:
        """指定した角度だけハフ空間に投票する。

        Args:
            grad_x: X方向勾配 (H, W)
            grad_y: Y方向勾配 (H, W)
            indices: 投票する角度インデックス
            d_max: 距離の最大値

        Returns:
            投票数 (num_of_angles, 2 * d_max + 1)
        """
        hough = np.zeros((self.num_of_angles, 2 * d_max + 1), dtype=np.int64)
        magnitude_sq = grad_x.astype(np.float64) ** 2 + grad_y.astype(np.float64) ** 2
        threshold = self.sobel_threshold(magnitude_sq)
        if threshold <= 0.0:
            return hough

        ys, xs = np.nonzero(magnitude_sq[1:-1, 1:-1] >= threshold)
        xs = xs + 1
        ys = ys + 1
        for index in indices:
            d = np.ceil(xs * self._cos[index] + ys * self._sin[index]).astype(np.int64) + d_max
            hough[index] = np.bincount(d, minlength=hough.shape[1])
        return hough

    def local_maxima(self, hough: np.ndarray, indices: list[int]) -> list[HoughMaximum]:
        """ハフ空間の極大値を走査順に列挙する。

        近傍 (角度±1 は循環、距離±1) に自分より大きい値が無い非ゼロのセルを極大とする。
        """
        maxima = []
        for angle_index in indices:
            row = hough[angle_index]
            if not row.any():
                continue

            neighborhood = np.full(row.shape, -1, dtype=np.int64)
            neighborhood[1:] = np.maximum(neighborhood[1:], row[:-1])
            neighborhood[:-1] = np.maximum(neighborhood[:-1], row[1:])
            for other_index in ((angle_index - 1) % self.num_of_angles, (angle_index + 1) % self.num_of_angles):
                if other_index == angle_index:
                    continue
                other = hough[other_index]
                neighborhood = np.maximum(neighborhood, other)
                neighborhood[1:] = np.maximum(neighborhood[1:], other[:-1])
                neighborhood[:-1] = np.maximum(neighborhood[:-1], other[1:])

            for distance_index in np.nonzero((row != 0) & (row >= neighborhood))[0]:
                maxima.append(HoughMaximum(int(row[distance_index]), angle_index, int(distance_index)))
        return maxima

    def _edge_line(self, maximum: HoughMaximum, d_max: int, origin: np.ndarray) -> Hyperplane2:
        distance = maximum.distance_index - d_max
        n0 = np.array([self._cos[maximum.angle_index], self._sin[maximum.angle_index]])
        return Hyperplane2(n0, distance * n0 + origin)
