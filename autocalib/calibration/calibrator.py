"""自動カメラキャリブレーションのセッション制御。

要求された状態 (idle / recordSamples / optimize) に従い、フレームごとに
サンプル収集と最適化を進め、キャリブレーション値と状態を公開します。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from autocalib.calibration.optimizer import CalibrationOptimizer, OptimizationPhase
from autocalib.calibration.sample_builder import SampleBuilder
from autocalib.calibration.sample_configuration import SampleConfiguration, SampleSlotError
from autocalib.models.data_models import (
    CalibrationState,
    CalibrationStatus,
    CameraCalibration,
    CameraType,
    Resolution,
    SampleConfigurationStatus,
)

if TYPE_CHECKING:
    from autocalib.calibration.line_refiner import LineRefiner
    from autocalib.calibration.samples import Sample
    from autocalib.calibration.settings import CalibratorSettings
    from autocalib.core.interfaces import CameraModelPort
    from autocalib.models.data_models import CalibrationFrame, CalibrationRequest

logger = logging.getLogger(__name__)


class AutomaticCameraCalibrator:
    """キャリブレーションセッションの状態機械。

    サンプルスロット・受理範囲・最適化器はすべてセッションに属し、
    recordSamples への遷移時にまとめて作り直す。
    """

    def __init__(
        self,
        settings: CalibratorSettings,
        camera_model: CameraModelPort,
        calibration: CameraCalibration | None = None,
        rng: np.random.Generator | None = None,
        refiner: LineRefiner | None = None,
    ):
        """初期化。

        Args:
            settings: キャリブレータ設定
            camera_model: カメラ投影モデル
            calibration: 保存済みキャリブレーション（None の場合はゼロ補正）
            rng: 最適化の再スタートに使う乱数生成器
            refiner: ライン精密化（テスト用に差し替え可能）
        """
        self.settings = settings
        self.camera_model = camera_model
        self.calibration = calibration or CameraCalibration()
        self.preview = self.calibration
        self.rng = rng if rng is not None else np.random.default_rng()
        self.builder = SampleBuilder(settings, camera_model, refiner)

        self.state = CalibrationState.IDLE
        self.in_state_since = 0
        self.samples: list[Sample | None] = []
        self.sample_configuration: SampleConfiguration | None = None
        self.last_sample_configuration_index: int | None = None
        self.num_of_samples = 0
        self.optimizer: CalibrationOptimizer | None = None

    def update(self, frame: CalibrationFrame) -> CameraCalibration:
        """1フレーム分の処理を行う。

        Args:
            frame: フレーム入力（検出結果と要求を含む）

        Returns:
            このフレームで公開するキャリブレーション値
        """
        request = frame.request
        target = request.target_state

        if self.state == CalibrationState.IDLE and target == CalibrationState.RECORD_SAMPLES:
            self._start_session(request.total_num_of_samples)
            self._set_state(CalibrationState.RECORD_SAMPLES, frame.time)

        self.update_sample_configuration(request)

        if target == CalibrationState.IDLE and self.state != CalibrationState.IDLE:
            logger.info("Calibration aborted")
            self._discard_session()
            self.preview = self.calibration
            self._set_state(CalibrationState.IDLE, frame.time)

        if (
            self.state == CalibrationState.RECORD_SAMPLES
            and self.sample_configuration is not None
            and request.sample_configuration_request is not None
            and frame.image is not None
        ):
            self.builder.record_samples(
                frame, self.sample_configuration, self.samples, request.sample_configuration_request.do_record
            )

        if target == CalibrationState.OPTIMIZE and self.state != CalibrationState.OPTIMIZE:
            if self.state == CalibrationState.RECORD_SAMPLES:
                filled = sum(1 for sample in self.samples if sample is not None)
                logger.info(f"Starting optimization with {filled}/{len(self.samples)} samples")
                self.optimizer = CalibrationOptimizer(self.samples, self.calibration, self.settings, self.rng)
                self._set_state(CalibrationState.OPTIMIZE, frame.time)
            else:
                logger.debug(f"Ignored transition request {self.state.value} -> {target.value}")
        elif target == CalibrationState.RECORD_SAMPLES and self.state == CalibrationState.OPTIMIZE:
            logger.debug(f"Ignored transition request {self.state.value} -> {target.value}")

        if self.state == CalibrationState.OPTIMIZE:
            self._optimize(frame.time)

        return self.preview

    def update_sample_configuration(self, request: CalibrationRequest) -> None:
        """新しい構成番号が来たらサンプル構成を作り直す。

        Raises:
            SampleSlotError: セッション中に構成のスロット範囲がサンプル配列に収まらない場合
        """
        configuration_request = request.sample_configuration_request
        if configuration_request is None or configuration_request.index == self.last_sample_configuration_index:
            return

        configuration = SampleConfiguration(
            camera=configuration_request.camera,
            head_pan=configuration_request.head_pan,
            head_tilt=configuration_request.head_tilt,
            sample_types=configuration_request.sample_types,
            sample_index_base=self.num_of_samples,
        )
        end = configuration.sample_index_base + configuration.num_of_samples
        if self.state != CalibrationState.IDLE and end > len(self.samples):
            raise SampleSlotError(
                f"Sample configuration {configuration_request.index} needs slots "
                f"[{configuration.sample_index_base}, {end}) but only {len(self.samples)} exist"
            )
        self.sample_configuration = configuration
        self.num_of_samples += configuration.num_of_samples
        self.last_sample_configuration_index = configuration_request.index
        logger.info(
            f"Sample configuration {configuration_request.index}: camera={configuration.camera.value}, "
            f"slots [{configuration.sample_index_base}, {self.num_of_samples})"
        )

    def status(self, request: CalibrationRequest) -> CalibrationStatus:
        """公開用の状態を作る。

        Args:
            request: 現在のキャリブレーション要求

        Returns:
            CalibrationStatus
        """
        configuration_status = SampleConfigurationStatus.NONE
        configuration_request = request.sample_configuration_request
        if configuration_request is not None:
            visible = self.builder.all_required_features_visible
            configuration_status = SampleConfigurationStatus.VISIBLE if visible else SampleConfigurationStatus.NOT_VISIBLE
            if visible and configuration_request.do_record:
                configuration_status = SampleConfigurationStatus.RECORDING
            self.update_sample_configuration(request)
            if self.sample_configuration is not None and self.sample_configuration.samples_exist(self.samples):
                configuration_status = SampleConfigurationStatus.FINISHED

        return CalibrationStatus(
            state=self.state,
            in_state_since=self.in_state_since,
            sample_configuration_status=configuration_status,
        )

    def resolution_request(self) -> dict[CameraType, Resolution]:
        """カメラごとの要求解像度。セッション外はデフォルト解像度。"""
        if self.state == CalibrationState.IDLE:
            return {camera: Resolution.DEFAULT for camera in CameraType}
        return {camera: self.settings.resolution_request.get(camera, Resolution.DEFAULT) for camera in CameraType}

    def force_convergence(self, time: int) -> bool:
        """最適化中であれば、ステップ幅が最小だったパラメータで収束させる。

        Args:
            time: 現在時刻 [ms]

        Returns:
            収束させた場合 True
        """
        if self.optimizer is None:
            return False
        calibration = self.optimizer.force_convergence()
        if calibration is None:
            return False
        self._accept(calibration, time)
        return True

    def _optimize(self, time: int) -> None:
        result = self.optimizer.step()
        if result.phase == OptimizationPhase.CONVERGED:
            self._accept(result.calibration, time)
        elif result.phase in (OptimizationPhase.ITERATING, OptimizationPhase.DIVERGED):
            self.preview = result.calibration

    def _accept(self, calibration: CameraCalibration, time: int) -> None:
        self.calibration = calibration
        self.preview = calibration
        degrees = calibration.to_degrees()
        logger.info(f"Calibration converged: {degrees}")
        self.optimizer = None
        self._set_state(CalibrationState.IDLE, time)

    def _start_session(self, total_num_of_samples: int) -> None:
        logger.info(f"Calibration started ({total_num_of_samples} sample slots)")
        self.samples = [None] * total_num_of_samples
        self.sample_configuration = None
        self.last_sample_configuration_index = None
        self.num_of_samples = 0
        self.optimizer = None
        self.preview = self.calibration
        self.builder.reset()

    def _discard_session(self) -> None:
        self.optimizer = None
        self.samples = []
        self.sample_configuration = None
        self.last_sample_configuration_index = None
        self.num_of_samples = 0

    def _set_state(self, state: CalibrationState, time: int) -> None:
        if state != self.state:
            logger.info(f"State changed: {self.state.value} -> {state.value}")
        self.state = state
        self.in_state_since = time
