"""キャリブレータの調整パラメータ。"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Self

from autocalib.models.data_models import CameraType, FieldDimensions, Resolution


@dataclass(frozen=True)
class CalibratorSettings:
    """自動キャリブレーションの調整パラメータ。

    Attributes:
        num_of_angles: ハフ空間の角度分割数（180度あたり）
        hough_sector: 探索する角度範囲の半幅 [rad]
        sobel_thresh_value: 勾配強度の閾値（最大値に対する比率）
        min_dis_image: 対になるエッジの最小距離 [pixel]
        angle_error_divisor: 角度誤差の正規化係数 [rad]
        distance_error_divisor: 距離誤差の正規化係数 [mm]
        pixel_inaccuracy_per_meter: 距離1mあたりの許容誤差 [mm]
        not_valid_error: 投影不能時に返す誤差値
        termination_criterion: 収束判定の基準ステップ幅
        min_successive_convergences: 収束に必要な連続回数
        discards_until_increase: 範囲拡大までの棄却回数
        increase: 範囲拡大量 [mm]
        jacobian_epsilon: 数値微分のステップ [rad]
        damping: 正規方程式の減衰項
        restart_perturbation: 再スタート時の乱数摂動の半幅 [rad]
        field_dimensions: フィールド寸法
        resolution_request: セッション中に要求するカメラ解像度
    """

    num_of_angles: int = 360
    hough_sector: float = math.radians(10.0)
    sobel_thresh_value: float = 0.3
    min_dis_image: float = 3.0
    angle_error_divisor: float = math.radians(1.0)
    distance_error_divisor: float = 10.0
    pixel_inaccuracy_per_meter: float = 5.0
    not_valid_error: float = 1.0e7
    termination_criterion: float = 1.0e-5
    min_successive_convergences: int = 5
    discards_until_increase: int = 30
    increase: float = 10.0
    jacobian_epsilon: float = 1.0e-4
    damping: float = 1.0e-9
    restart_perturbation: float = math.radians(0.5)
    field_dimensions: FieldDimensions = field(default_factory=FieldDimensions)
    resolution_request: dict[CameraType, Resolution] = field(
        default_factory=lambda: {CameraType.LOWER: Resolution.W640H480, CameraType.UPPER: Resolution.W1280H960}
    )

    @property
    def field_lines_width(self) -> float:
        return self.field_dimensions.field_lines_width

    @classmethod
    def from_config(cls, config: dict) -> Self:
        """設定全体の辞書から作成。

        Args:
            config: ConfigManager.config 相当の辞書（calibrator, field_dimensions,
                resolution_request セクションを参照）

        Returns:
            CalibratorSettings インスタンス
        """
        section = config.get("calibrator", {}) or {}
        defaults = cls()

        def _deg(key: str, default_rad: float) -> float:
            return math.radians(float(section.get(key, math.degrees(default_rad))))

        resolution_section = config.get("resolution_request", {}) or {}
        resolution_request = dict(defaults.resolution_request)
        for camera in CameraType:
            if camera.value in resolution_section:
                resolution_request[camera] = Resolution(resolution_section[camera.value])

        return cls(
            num_of_angles=int(section.get("num_of_angles", defaults.num_of_angles)),
            hough_sector=_deg("hough_sector_deg", defaults.hough_sector),
            sobel_thresh_value=float(section.get("sobel_thresh_value", defaults.sobel_thresh_value)),
            min_dis_image=float(section.get("min_dis_image", defaults.min_dis_image)),
            angle_error_divisor=_deg("angle_error_divisor_deg", defaults.angle_error_divisor),
            distance_error_divisor=float(section.get("distance_error_divisor", defaults.distance_error_divisor)),
            pixel_inaccuracy_per_meter=float(
                section.get("pixel_inaccuracy_per_meter", defaults.pixel_inaccuracy_per_meter)
            ),
            not_valid_error=float(section.get("not_valid_error", defaults.not_valid_error)),
            termination_criterion=float(section.get("termination_criterion", defaults.termination_criterion)),
            min_successive_convergences=int(
                section.get("min_successive_convergences", defaults.min_successive_convergences)
            ),
            discards_until_increase=int(section.get("discards_until_increase", defaults.discards_until_increase)),
            increase=float(section.get("increase", defaults.increase)),
            jacobian_epsilon=float(section.get("jacobian_epsilon", defaults.jacobian_epsilon)),
            damping=float(section.get("damping", defaults.damping)),
            restart_perturbation=_deg("restart_perturbation_deg", defaults.restart_perturbation),
            field_dimensions=FieldDimensions.from_config(config.get("field_dimensions", {}) or {}),
            resolution_request=resolution_request,
        )
