"""サンプル収集モジュール。

フレームごとのライン・ペナルティマーク検出結果から、キャリブレーションに
使えるライン構成（ゴールエリアの角、平行なゴールライン/ゴールエリアライン、
ペナルティマークからの距離）をヒューリスティックに探し、精密化した上で
サンプルとして記録します。
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from autocalib.calibration.adaptive_range import AdaptiveRange
from autocalib.calibration.line_refiner import LineRefiner
from autocalib.calibration.samples import (
    LINE_PAIR_TYPES,
    PENALTY_MARK_TYPES,
    Sample,
    SampleContext,
    SampleType,
    combined_offset,
)
from autocalib.geometry.lines import (
    angle_between,
    as_point,
    distance_to_line,
    distance_to_segment,
    is_point_left_of_line,
    signed_distance_to_line,
)
from autocalib.models.data_models import CameraType

if TYPE_CHECKING:
    from collections.abc import Callable

    from autocalib.calibration.line_refiner import CorrectedLine
    from autocalib.calibration.sample_configuration import SampleConfiguration
    from autocalib.calibration.settings import CalibratorSettings
    from autocalib.core.interfaces import CameraModelPort
    from autocalib.models.data_models import CalibrationFrame, LinePercept

logger = logging.getLogger(__name__)

MIN_LINES_FOR_CORNER = 3
MIN_LINES_FOR_PENALTY_MARK = 2
MAX_LINES = 8
MAX_ENDPOINT_DISTANCE = 100.0  # [mm]
MIN_CROSSING_ANGLE = math.radians(20.0)
MAX_CROSSING_ANGLE = math.radians(160.0)
MAX_PARALLEL_ANGLE = math.radians(40.0)


@dataclass(frozen=True)
class _Line:
    """判定用に numpy 化した線分"""

    first_img: np.ndarray
    last_img: np.ndarray
    first_field: np.ndarray
    last_field: np.ndarray

    @classmethod
    def from_percept(cls, percept: LinePercept) -> _Line:
        return cls(
            as_point(percept.first_img),
            as_point(percept.last_img),
            as_point(percept.first_field),
            as_point(percept.last_field),
        )

    @property
    def squared_distance(self) -> float:
        """ロボットから中点までの距離の二乗"""
        mid = (self.first_field + self.last_field) * 0.5
        return float(mid @ mid)


class SampleBuilder:
    """検出結果からキャリブレーションサンプルを作るクラス。

    受理範囲はカメラごとに保持し、セッション開始時の reset() でのみ初期化する。
    """

    def __init__(
        self,
        settings: CalibratorSettings,
        camera_model: CameraModelPort,
        refiner: LineRefiner | None = None,
    ):
        """初期化。

        Args:
            settings: キャリブレータ設定
            camera_model: カメラ投影モデル
            refiner: ライン精密化（None の場合は設定から作成）
        """
        self.settings = settings
        self.camera_model = camera_model
        self.context = SampleContext(camera_model=camera_model, settings=settings)
        self.refiner = refiner or LineRefiner(settings)
        self.all_required_features_visible = False
        self.reset()

    def reset(self) -> None:
        """受理範囲と棄却カウンタを初期化する。"""
        field = self.settings.field_dimensions
        width = field.field_lines_width

        def _ranges(name: str, distance: float) -> dict[CameraType, AdaptiveRange]:
            return {
                camera: AdaptiveRange(
                    f"{name}[{camera.value}]",
                    distance - width,
                    distance + width,
                    self.settings.discards_until_increase,
                    self.settings.increase,
                )
                for camera in CameraType
            }

        self.parallel_ranges = _ranges("ParallelDisRange", field.parallel_lines_distance)
        self.goal_area_ranges = _ranges("GoalAreaDisRange", field.goal_area_distance)
        self.ground_line_ranges = _ranges("GroundLineDisRange", field.ground_line_distance)
        self.all_required_features_visible = False

    def record_samples(
        self,
        frame: CalibrationFrame,
        configuration: SampleConfiguration,
        samples: list[Sample | None],
        do_record: bool,
    ) -> int:
        """1フレーム分の検出結果を処理する。

        Args:
            frame: フレーム入力
            configuration: 現在のサンプル構成
            samples: 共有のサンプルスロット
            do_record: 記録を行うか（False の場合は可視判定のみ）

        Returns:
            このフレームで記録したサンプル数
        """
        if frame.camera_info.camera != configuration.camera:
            return 0
        if frame.image is None:
            return 0

        lines = [_Line.from_percept(percept) for percept in frame.lines]
        refined: dict[int, CorrectedLine | None] = {}
        projector = self._projector(frame)

        def _refine(index: int) -> CorrectedLine | None:
            if index not in refined:
                line = lines[index]
                refined[index] = self.refiner.refine(line.first_img, line.last_img, frame.image, projector)
            return refined[index]

        recorded = 0
        self.all_required_features_visible = False

        def _needs(*sample_types: SampleType) -> bool:
            return any(configuration.need_to_record(samples, sample_type) for sample_type in sample_types)

        if (
            MIN_LINES_FOR_CORNER <= len(lines) <= MAX_LINES
            and _needs(*LINE_PAIR_TYPES)
            and not _needs(*PENALTY_MARK_TYPES)
        ):
            recorded += self._record_corner_samples(frame, configuration, samples, do_record, lines, _refine)

        if (
            frame.penalty_mark.was_seen
            and MIN_LINES_FOR_PENALTY_MARK <= len(lines) <= MAX_LINES
            and _needs(*PENALTY_MARK_TYPES)
        ):
            recorded += self._record_penalty_mark_samples(frame, configuration, samples, do_record, lines, _refine)

        # 全種別が記録済みなら頭の移動を待たせない
        if configuration.is_exhausted(samples):
            for ranges in (self.parallel_ranges, self.goal_area_ranges, self.ground_line_ranges):
                for adaptive_range in ranges.values():
                    adaptive_range.reset_discards()
            self.all_required_features_visible = True

        return recorded

    def _projector(self, frame: CalibrationFrame) -> Callable[[np.ndarray], np.ndarray | None]:
        coordinate_system = frame.pose.image_coordinate_system

        def _project(point: np.ndarray) -> np.ndarray | None:
            return self.camera_model.image_to_robot(
                coordinate_system.to_corrected(point), frame.camera_matrix, frame.camera_info
            )

        return _project

    def _add_sample(
        self,
        configuration: SampleConfiguration,
        samples: list[Sample | None],
        sample_type: SampleType,
        factory: Callable[[], Sample],
    ) -> int:
        if not configuration.need_to_record(samples, sample_type):
            return 0
        configuration.record(samples, sample_type, factory())
        logger.info(f"Sample recorded: {sample_type.name} (slot {configuration.slot_index(sample_type)})")
        return 1

    def _record_corner_samples(
        self,
        frame: CalibrationFrame,
        configuration: SampleConfiguration,
        samples: list[Sample | None],
        do_record: bool,
        lines: list[_Line],
        refine: Callable[[int], CorrectedLine | None],
    ) -> int:
        """ゴールエリアの角（短いラインと2本の平行ライン）からサンプルを作る。"""
        recorded = 0
        discarded = found = False
        parallel_range = self.parallel_ranges[configuration.camera]
        count = len(lines)

        for i in range(count):
            short = lines[i]
            for j in range(count):
                if i == j:
                    continue
                for k in range(j + 1, count):
                    if i == k:
                        continue
                    first, second = lines[j], lines[k]

                    # i が「短い」連結ライン、j と k がそれに直交するライン（ゴールラインとゴールエリア前端）。
                    # ライン i の一端が j 上、もう一端が k 上にあるかを調べる
                    if (
                        min(
                            distance_to_segment(first.first_field, first.last_field, short.first_field),
                            distance_to_segment(first.first_field, first.last_field, short.last_field),
                        )
                        > MAX_ENDPOINT_DISTANCE
                    ):
                        continue
                    if (
                        min(
                            distance_to_segment(second.first_field, second.last_field, short.first_field),
                            distance_to_segment(second.first_field, second.last_field, short.last_field),
                        )
                        > MAX_ENDPOINT_DISTANCE
                    ):
                        continue

                    # 連結ラインがロボットから最も近い
                    short_distance = short.squared_distance
                    if first.squared_distance < short_distance or second.squared_distance < short_distance:
                        continue

                    # 画像上の角度が妥当か大まかに確認
                    angle_ij = angle_between(short.first_img, short.last_img, first.first_img, first.last_img)
                    angle_ik = angle_between(short.first_img, short.last_img, second.first_img, second.last_img)
                    angle_jk = angle_between(first.first_img, first.last_img, second.first_img, second.last_img)
                    if not (
                        MIN_CROSSING_ANGLE <= angle_ij <= MAX_CROSSING_ANGLE
                        and MIN_CROSSING_ANGLE <= angle_ik <= MAX_CROSSING_ANGLE
                        and angle_jk <= MAX_PARALLEL_ANGLE
                    ):
                        continue

                    self.all_required_features_visible = True
                    if not do_record:
                        continue

                    short_line, line2, line3 = refine(i), refine(j), refine(k)
                    if short_line is None or line2 is None or line3 is None:
                        continue

                    distance = signed_distance_to_line(
                        line2.a_on_field,
                        line2.b_on_field - line2.a_on_field,
                        (line3.a_on_field + line3.b_on_field) * 0.5,
                    )
                    offset = combined_offset(distance, line2.offset, line3.offset)

                    if not parallel_range.is_inside(abs(distance) - offset):
                        discarded = True
                        continue

                    found = True
                    logger.info(f"ParallelLinesDistance: {abs(distance):.1f}, CombinedOffset: {offset:.1f}")
                    logger.debug(f"Sample recorded from lines {i} {j} {k}")

                    # 長い方のラインを直交ラインとして使う
                    orthogonal = line3 if line2.field_length_sq < line3.field_length_sq else line2
                    pose = frame.pose
                    recorded += self._add_sample(
                        configuration,
                        samples,
                        SampleType.CORNER_ANGLE,
                        lambda: Sample.corner_angle(pose, self.context, short_line, orthogonal),
                    )
                    recorded += self._add_sample(
                        configuration,
                        samples,
                        SampleType.PARALLEL_ANGLE,
                        lambda: Sample.parallel_angle(pose, self.context, line2, line3),
                    )
                    recorded += self._add_sample(
                        configuration,
                        samples,
                        SampleType.PARALLEL_LINES_DISTANCE,
                        lambda: Sample.parallel_lines_distance(pose, self.context, line2, line3),
                    )

        if do_record:
            parallel_range.update(discarded, found)
        return recorded

    def _record_penalty_mark_samples(
        self,
        frame: CalibrationFrame,
        configuration: SampleConfiguration,
        samples: list[Sample | None],
        do_record: bool,
        lines: list[_Line],
        refine: Callable[[int], CorrectedLine | None],
    ) -> int:
        """ペナルティマークとその奥の2本のラインからサンプルを作る。"""
        recorded = 0
        discarded_goal_area = found_goal_area = False
        discarded_ground_line = found_ground_line = False
        goal_area_range = self.goal_area_ranges[configuration.camera]
        ground_line_range = self.ground_line_ranges[configuration.camera]

        mark_on_field = as_point(frame.penalty_mark.position_on_field)
        mark_squared_distance = float(mark_on_field @ mark_on_field)
        half_image_width = frame.camera_info.width / 2
        count = len(lines)

        for i in range(count):
            for j in range(i + 1, count):
                first, second = lines[i], lines[j]

                # ゴールラインとゴールエリア前端ラインは画像幅の半分以上に渡って見えるはず
                if (
                    abs(first.first_img[0] - first.last_img[0]) < half_image_width
                    or abs(second.first_img[0] - second.last_img[0]) < half_image_width
                ):
                    continue
                # 2本のラインが交差しない
                if is_point_left_of_line(first.first_field, first.last_field, second.first_field) != (
                    is_point_left_of_line(first.first_field, first.last_field, second.last_field)
                ):
                    continue
                # どちらもペナルティマークより奥にある（ペナルティエリア前端を除外）
                first_distance = first.squared_distance
                second_distance = second.squared_distance
                if min(first_distance, second_distance) < mark_squared_distance:
                    continue

                self.all_required_features_visible = True
                if not do_record:
                    continue

                # 遠い方をゴールラインとする
                goal_area_index, ground_line_index = (j, i) if first_distance > second_distance else (i, j)
                goal_area_line = refine(goal_area_index)
                ground_line = refine(ground_line_index)
                if goal_area_line is None or ground_line is None:
                    continue

                goal_area_distance = distance_to_line(
                    goal_area_line.a_on_field, goal_area_line.b_on_field - goal_area_line.a_on_field, mark_on_field
                )
                ground_line_distance = distance_to_line(
                    ground_line.a_on_field, ground_line.b_on_field - ground_line.a_on_field, mark_on_field
                )

                # ペナルティマークからの距離がそれぞれ妥当か確認する
                goal_area_valid = goal_area_range.is_inside(goal_area_distance - goal_area_line.offset)
                ground_line_valid = ground_line_range.is_inside(ground_line_distance - ground_line.offset)
                if goal_area_valid:
                    found_goal_area = True
                else:
                    discarded_goal_area = True
                if ground_line_valid:
                    found_ground_line = True
                else:
                    discarded_ground_line = True
                if not goal_area_valid or not ground_line_valid:
                    continue

                logger.info(f"GoalAreaLineDistance: {goal_area_distance:.1f}, Offset: {goal_area_line.offset:.1f}")
                logger.info(f"GroundLineDistance: {ground_line_distance:.1f}, Offset: {ground_line.offset:.1f}")
                logger.debug(f"Sample recorded from lines {i} {j}")

                pose = frame.pose
                mark_in_image = as_point(frame.penalty_mark.position_in_image)
                recorded += self._add_sample(
                    configuration,
                    samples,
                    SampleType.GOAL_AREA_DISTANCE,
                    lambda: Sample.goal_area_distance(pose, self.context, mark_in_image, goal_area_line),
                )
                recorded += self._add_sample(
                    configuration,
                    samples,
                    SampleType.GROUND_LINE_DISTANCE,
                    lambda: Sample.ground_line_distance(pose, self.context, mark_in_image, ground_line),
                )
                recorded += self._add_sample(
                    configuration,
                    samples,
                    SampleType.PARALLEL_ANGLE,
                    lambda: Sample.parallel_angle(pose, self.context, goal_area_line, ground_line),
                )
                recorded += self._add_sample(
                    configuration,
                    samples,
                    SampleType.PARALLEL_LINES_DISTANCE,
                    lambda: Sample.parallel_lines_distance(pose, self.context, goal_area_line, ground_line),
                )

        if do_record:
            goal_area_range.update(discarded_goal_area, found_goal_area)
            ground_line_range.update(discarded_ground_line, found_ground_line)
        return recorded
