"""キャリブレーションサンプル。

サンプルは撮影時の姿勢と精密化済みラインを保持し、任意のキャリブレーション
候補でラインを再投影して、既知のフィールド形状（直角・平行・既知距離）から
のずれを誤差として返す。サンプル種別は閉じた集合なので、クラス階層ではなく
種別タグと誤差関数のテーブルで表現する。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from autocalib.geometry.lines import angle_between, distance_to_line, signed_distance_to_line

if TYPE_CHECKING:
    from collections.abc import Callable

    from autocalib.calibration.line_refiner import CorrectedLine
    from autocalib.calibration.settings import CalibratorSettings
    from autocalib.core.interfaces import CameraModelPort
    from autocalib.geometry.pose import Pose3
    from autocalib.models.data_models import CameraCalibration, CapturePose

logger = logging.getLogger(__name__)


class SampleType(IntEnum):
    """サンプル種別。値の順序がサンプルスロットの並び順になる。"""

    CORNER_ANGLE = 0
    PARALLEL_ANGLE = 1
    PARALLEL_LINES_DISTANCE = 2
    GOAL_AREA_DISTANCE = 3
    GROUND_LINE_DISTANCE = 4


def bit(sample_type: SampleType) -> int:
    return 1 << int(sample_type)


def mask_of(*sample_types: SampleType) -> int:
    """サンプル種別の集合をビットマスクに変換する。"""
    mask = 0
    for sample_type in sample_types:
        mask |= bit(sample_type)
    return mask


ALL_SAMPLE_TYPES = mask_of(*SampleType)
LINE_PAIR_TYPES = (SampleType.CORNER_ANGLE, SampleType.PARALLEL_ANGLE, SampleType.PARALLEL_LINES_DISTANCE)
PENALTY_MARK_TYPES = (SampleType.GOAL_AREA_DISTANCE, SampleType.GROUND_LINE_DISTANCE)


def combined_offset(distance: float, first_offset: float, second_offset: float) -> float:
    """2本の平行線のオフセットを合成する。

    distance は1本目から2本目への符号付き距離。正なら2本目が1本目の右側にある。
    """
    return first_offset - second_offset if distance > 0.0 else second_offset - first_offset


@dataclass(frozen=True)
class SampleContext:
    """全サンプルで共有する投影モデルと設定"""

    camera_model: CameraModelPort
    settings: CalibratorSettings


@dataclass(frozen=True)
class Sample:
    """キャリブレーションサンプル（種別タグ付き）。

    Attributes:
        sample_type: サンプル種別
        pose: 撮影時の姿勢
        context: 投影モデルと設定
        line1: 1本目のライン
        line2: 2本目のライン（ライン対の種別のみ）
        mark_in_image: ペナルティマークの画像座標（距離種別のみ）
    """

    sample_type: SampleType
    pose: CapturePose
    context: SampleContext
    line1: CorrectedLine
    line2: CorrectedLine | None = None
    mark_in_image: np.ndarray | None = None

    def __post_init__(self) -> None:
        if self.sample_type in PENALTY_MARK_TYPES:
            if self.mark_in_image is None:
                raise ValueError(f"{self.sample_type.name} requires a penalty mark position")
        elif self.line2 is None:
            raise ValueError(f"{self.sample_type.name} requires two lines")

    @classmethod
    def corner_angle(cls, pose, context, line, orthogonal_line) -> Sample:
        return cls(SampleType.CORNER_ANGLE, pose, context, line, orthogonal_line)

    @classmethod
    def parallel_angle(cls, pose, context, line1, line2) -> Sample:
        return cls(SampleType.PARALLEL_ANGLE, pose, context, line1, line2)

    @classmethod
    def parallel_lines_distance(cls, pose, context, line1, line2) -> Sample:
        return cls(SampleType.PARALLEL_LINES_DISTANCE, pose, context, line1, line2)

    @classmethod
    def goal_area_distance(cls, pose, context, mark_in_image, line) -> Sample:
        return cls(SampleType.GOAL_AREA_DISTANCE, pose, context, line, mark_in_image=np.asarray(mark_in_image, float))

    @classmethod
    def ground_line_distance(cls, pose, context, mark_in_image, line) -> Sample:
        return cls(
            SampleType.GROUND_LINE_DISTANCE, pose, context, line, mark_in_image=np.asarray(mark_in_image, float)
        )

    @property
    def settings(self) -> CalibratorSettings:
        return self.context.settings

    def compute_error(self, calibration: CameraCalibration) -> float:
        """キャリブレーション候補でのサンプル誤差を計算する。

        Args:
            calibration: キャリブレーション候補

        Returns:
            正規化された誤差。投影できない場合は not_valid_error
        """
        camera_matrix = self.context.camera_model.camera_matrix(self.pose, calibration)
        return _ERROR_FUNCTIONS[self.sample_type](self, camera_matrix)

    def project(self, point_in_image: np.ndarray, camera_matrix: Pose3) -> np.ndarray | None:
        corrected = self.pose.image_coordinate_system.to_corrected(point_in_image)
        return self.context.camera_model.image_to_robot(corrected, camera_matrix, self.pose.camera_info)

    def project_line(
        self, line: CorrectedLine, camera_matrix: Pose3
    ) -> tuple[np.ndarray, np.ndarray] | None:
        a = self.project(line.a_in_image, camera_matrix)
        b = self.project(line.b_in_image, camera_matrix)
        if a is None or b is None:
            return None
        return a, b


def _project_two_lines(sample: Sample, camera_matrix: Pose3):
    first = sample.project_line(sample.line1, camera_matrix)
    second = sample.project_line(sample.line2, camera_matrix)
    if first is None or second is None:
        logger.debug(f"{sample.sample_type.name}: projection error")
        return None
    return first, second


def _project_line_and_mark(sample: Sample, camera_matrix: Pose3):
    line = sample.project_line(sample.line1, camera_matrix)
    mark = sample.project(sample.mark_in_image, camera_matrix)
    if line is None or mark is None:
        logger.debug(f"{sample.sample_type.name}: projection error")
        return None
    return line, mark


def _corner_angle_error(sample: Sample, camera_matrix: Pose3) -> float:
    projected = _project_two_lines(sample, camera_matrix)
    if projected is None:
        return sample.settings.not_valid_error
    (a1, b1), (a2, b2) = projected

    corner_angle = angle_between(a1, b1, a2, b2)
    return abs(math.pi / 2.0 - corner_angle) / sample.settings.angle_error_divisor


def _parallel_angle_error(sample: Sample, camera_matrix: Pose3) -> float:
    projected = _project_two_lines(sample, camera_matrix)
    if projected is None:
        return sample.settings.not_valid_error
    (a1, b1), (a2, b2) = projected

    parallel_angle = angle_between(a1, b1, a2, b2)
    return min(parallel_angle, math.pi - parallel_angle) / sample.settings.angle_error_divisor


def _parallel_lines_distance_error(sample: Sample, camera_matrix: Pose3) -> float:
    projected = _project_two_lines(sample, camera_matrix)
    if projected is None:
        return sample.settings.not_valid_error
    (a1, b1), (a2, b2) = projected
    settings = sample.settings

    distance1 = signed_distance_to_line(a1, b1 - a1, a2)
    distance2 = signed_distance_to_line(a1, b1 - a1, b2)
    distance3 = signed_distance_to_line(a2, b2 - a2, a1)
    distance4 = signed_distance_to_line(a2, b2 - a2, b1)

    # 遠くの点ほど画素誤差の影響が大きいので許容範囲を広げる
    def _error_range(point: np.ndarray) -> float:
        return float(np.linalg.norm(point)) / 1000.0 * settings.pixel_inaccuracy_per_meter

    offset = combined_offset(distance1, sample.line1.offset, sample.line2.offset)
    optimal_distance = settings.field_dimensions.parallel_lines_distance + offset
    errors = [
        max(0.0, abs(abs(distance) - optimal_distance) - _error_range(point))
        for distance, point in ((distance1, a2), (distance2, b2), (distance3, a1), (distance4, b1))
    ]
    return max(errors) / settings.distance_error_divisor


def _goal_area_distance_error(sample: Sample, camera_matrix: Pose3) -> float:
    projected = _project_line_and_mark(sample, camera_matrix)
    if projected is None:
        return sample.settings.not_valid_error
    (a, b), mark = projected
    field = sample.settings.field_dimensions

    goal_area_distance = distance_to_line(a, b - a, mark)
    error = abs(goal_area_distance - (field.goal_area_distance + sample.line1.offset))
    return error / sample.settings.distance_error_divisor


def _ground_line_distance_error(sample: Sample, camera_matrix: Pose3) -> float:
    projected = _project_line_and_mark(sample, camera_matrix)
    if projected is None:
        return sample.settings.not_valid_error
    (a, b), mark = projected
    field = sample.settings.field_dimensions

    ground_line_distance = distance_to_line(a, b - a, mark)
    error = abs(ground_line_distance - (field.ground_line_distance + sample.line1.offset))
    return error / sample.settings.distance_error_divisor


_ERROR_FUNCTIONS: dict[SampleType, Callable[[Sample, Pose3], float]] = {
    SampleType.CORNER_ANGLE: _corner_angle_error,
    SampleType.PARALLEL_ANGLE: _parallel_angle_error,
    SampleType.PARALLEL_LINES_DISTANCE: _parallel_lines_distance_error,
    SampleType.GOAL_AREA_DISTANCE: _goal_area_distance_error,
    SampleType.GROUND_LINE_DISTANCE: _ground_line_distance_error,
}
