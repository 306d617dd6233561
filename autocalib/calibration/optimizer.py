"""キャリブレーション最適化モジュール。

6個の補正パラメータ（下カメラ roll/tilt、上カメラ roll/tilt、胴体 roll/tilt）を
Gauss-Newton 法で1フレーム1反復ずつ更新し、収束・発散を判定します。
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import TYPE_CHECKING, Protocol

import numpy as np
from scipy.linalg import LinAlgError, solve
from scipy.optimize import approx_fprime

from autocalib.models.data_models import CameraCalibration, CameraType

if TYPE_CHECKING:
    from autocalib.calibration.settings import CalibratorSettings

logger = logging.getLogger(__name__)

PARAMETER_NAMES = (
    "lower_camera_roll",
    "lower_camera_tilt",
    "upper_camera_roll",
    "upper_camera_tilt",
    "body_roll",
    "body_tilt",
)
NUM_OF_PARAMETERS = len(PARAMETER_NAMES)

# この反復回数ごとに収束判定の閾値を切り替える
THRESHOLD_STEP_ITERATIONS = 500
THRESHOLD_STEP_FACTOR = 50


class ErrorSource(Protocol):
    """誤差を計算できるサンプル"""

    def compute_error(self, calibration: CameraCalibration) -> float: ...


def pack(calibration: CameraCalibration) -> np.ndarray:
    """キャリブレーション値をパラメータベクトルに変換する。"""
    lower_roll, lower_tilt = calibration.camera_correction(CameraType.LOWER)
    upper_roll, upper_tilt = calibration.camera_correction(CameraType.UPPER)
    body_roll, body_tilt = calibration.body_rotation_correction
    return np.array([lower_roll, lower_tilt, upper_roll, upper_tilt, body_roll, body_tilt], dtype=np.float64)


def unpack(parameters: np.ndarray) -> CameraCalibration:
    """パラメータベクトルをキャリブレーション値に変換する（各値は 2π を法とする）。"""
    values = [math.fmod(float(value), 2.0 * math.pi) for value in parameters]
    return CameraCalibration(
        camera_rotation_corrections={
            CameraType.LOWER: (values[0], values[1]),
            CameraType.UPPER: (values[2], values[3]),
        },
        body_rotation_correction=(values[4], values[5]),
    )


def convergence_threshold(termination_criterion: float, iterations: int) -> float:
    """反復回数に応じた収束判定の閾値。

    収束しないまま反復が続いた場合に備え、THRESHOLD_STEP_ITERATIONS 回ごとに閾値を緩める。
    """
    return termination_criterion * max(1, iterations // THRESHOLD_STEP_ITERATIONS * THRESHOLD_STEP_FACTOR)


class GaussNewtonOptimizer:
    """減衰付き Gauss-Newton 法の1反復を行うクラス。"""

    def __init__(
        self,
        residuals: Callable[[np.ndarray], np.ndarray],
        epsilon: float = 1.0e-4,
        damping: float = 1.0e-9,
    ):
        """初期化。

        Args:
            residuals: パラメータから残差ベクトルを返す関数
            epsilon: 数値微分のステップ幅
            damping: 正規方程式の対角に加える減衰項
        """
        self.residuals = residuals
        self.epsilon = epsilon
        self.damping = damping

    def jacobian(self, parameters: np.ndarray) -> np.ndarray:
        """前進差分によるヤコビアン (M, N)。"""
        jacobian = approx_fprime(parameters, self.residuals, self.epsilon)
        return np.atleast_2d(np.asarray(jacobian, dtype=np.float64))

    def iterate(self, parameters: np.ndarray) -> tuple[np.ndarray, float]:
        """1反復分パラメータを更新する。

        Args:
            parameters: 現在のパラメータ

        Returns:
            (更新後のパラメータ, ステップ幅)。解けない場合のステップ幅は nan
        """
        parameters = np.asarray(parameters, dtype=np.float64)
        residuals = np.asarray(self.residuals(parameters), dtype=np.float64)
        if residuals.size == 0:
            return parameters.copy(), 0.0

        jacobian = self.jacobian(parameters)
        normal = jacobian.T @ jacobian + self.damping * np.eye(parameters.size)
        gradient = jacobian.T @ residuals
        if not (np.all(np.isfinite(normal)) and np.all(np.isfinite(gradient))):
            return parameters.copy(), math.nan

        try:
            update = solve(normal, gradient, assume_a="sym", check_finite=False)
        except LinAlgError as e:
            logger.debug(f"Normal equation could not be solved: {e}")
            return parameters.copy(), math.nan

        return parameters - update, float(np.linalg.norm(update))


class OptimizationPhase(str, Enum):
    """最適化ステップの結果"""

    STARTED = "started"
    ITERATING = "iterating"
    DIVERGED = "diverged"
    CONVERGED = "converged"


@dataclass(frozen=True)
class OptimizationStep:
    """1ステップ分の最適化結果。

    Attributes:
        phase: ステップの結果
        parameters: 公開するパラメータ（収束時は最良誤差のパラメータ、発散時は再スタート値）
        delta: ステップ幅（反復していない場合は None）
        iteration: 現在の反復回数
        successive_convergences: 連続収束回数
    """

    phase: OptimizationPhase
    parameters: np.ndarray
    delta: float | None
    iteration: int
    successive_convergences: int

    @property
    def calibration(self) -> CameraCalibration:
        return unpack(self.parameters)


class CalibrationOptimizer:
    """サンプル集合に対するキャリブレーション最適化の状態。

    最初の step() で Gauss-Newton 最適化器を作り、以降1回の step() で1反復する。
    発散した場合は最適化器を破棄し、基準キャリブレーションに乱数摂動を加えた
    値から再スタートする。
    """

    def __init__(
        self,
        samples: Sequence[ErrorSource | None],
        calibration: CameraCalibration,
        settings: CalibratorSettings,
        rng: np.random.Generator | None = None,
    ):
        """初期化。

        Args:
            samples: サンプルスロット（空スロットは無視する）
            calibration: 基準となる保存済みキャリブレーション
            settings: キャリブレータ設定
            rng: 再スタート時の摂動に使う乱数生成器
        """
        self.samples = [sample for sample in samples if sample is not None]
        self.settings = settings
        self.rng = rng if rng is not None else np.random.default_rng()
        self.base_parameters = pack(calibration)
        self.start_parameters = self.base_parameters.copy()

        self.parameters = self.start_parameters.copy()
        self.gauss_newton: GaussNewtonOptimizer | None = None
        self.iterations = 0
        self.successive_convergences = 0
        self.restarts = 0
        self.lowest_delta = math.inf
        self.lowest_delta_parameters: np.ndarray | None = None
        self.lowest_error = math.inf
        self.lowest_error_parameters: np.ndarray | None = None

    @property
    def num_of_measurements(self) -> int:
        return len(self.samples)

    def residuals(self, parameters: np.ndarray) -> np.ndarray:
        calibration = unpack(parameters)
        return np.array([sample.compute_error(calibration) for sample in self.samples], dtype=np.float64)

    def mean_error(self, parameters: np.ndarray) -> float:
        if not self.samples:
            return 0.0
        return float(np.mean(self.residuals(parameters)))

    def step(self) -> OptimizationStep:
        """1フレーム分の最適化を行う。

        Returns:
            OptimizationStep
        """
        if self.gauss_newton is None:
            self.gauss_newton = GaussNewtonOptimizer(
                self.residuals, epsilon=self.settings.jacobian_epsilon, damping=self.settings.damping
            )
            self.parameters = self.start_parameters.copy()
            self.successive_convergences = 0
            logger.debug(f"Optimizer started with {self.num_of_measurements} samples")
            if logger.isEnabledFor(logging.DEBUG):
                for index, error in enumerate(self.residuals(self.parameters)):
                    logger.debug(f"  sample {index}: error = {error:.4f}")
            return self._result(OptimizationPhase.STARTED, None)

        self.parameters, delta = self.gauss_newton.iterate(self.parameters)
        if not math.isfinite(delta):
            logger.warning("Optimization diverged: step is not finite")
            return self.restart()
        if np.any(self.residuals(self.parameters) >= self.settings.not_valid_error):
            logger.warning("Optimization diverged: a sample could not be projected")
            return self.restart()

        logger.debug(f"Iteration {self.iterations + 1}: delta = {delta:.3e}")
        if abs(delta) < self.lowest_delta:
            self.lowest_delta = abs(delta)
            self.lowest_delta_parameters = self.parameters.copy()

        self.iterations += 1
        if abs(delta) < convergence_threshold(self.settings.termination_criterion, self.iterations):
            self.successive_convergences += 1
        else:
            self.successive_convergences = 0

        if self.successive_convergences > 0:
            error = self.mean_error(self.parameters)
            if self.successive_convergences == 1 or error < self.lowest_error:
                self.lowest_error = error
                self.lowest_error_parameters = self.parameters.copy()

        if self.successive_convergences >= self.settings.min_successive_convergences:
            logger.info(f"Optimization converged after {self.iterations} iterations (mean error {self.lowest_error:.4f})")
            return self._result(OptimizationPhase.CONVERGED, delta, self.lowest_error_parameters)
        return self._result(OptimizationPhase.ITERATING, delta)

    def restart(self) -> OptimizationStep:
        """基準値に乱数摂動を加えて最適化をやり直す。"""
        perturbation = self.settings.restart_perturbation
        self.start_parameters = self.base_parameters + self.rng.uniform(
            -perturbation, perturbation, size=NUM_OF_PARAMETERS
        )
        self.parameters = self.start_parameters.copy()
        self.gauss_newton = None
        self.iterations = 0
        self.successive_convergences = 0
        self.lowest_delta = math.inf
        self.lowest_delta_parameters = None
        self.restarts += 1
        logger.warning(f"Restarting optimization (restart #{self.restarts})")
        return self._result(OptimizationPhase.DIVERGED, None)

    def force_convergence(self) -> CameraCalibration | None:
        """ステップ幅が最小だったパラメータを採用する。1回も反復していない場合は None。"""
        if self.gauss_newton is None or self.lowest_delta_parameters is None:
            return None
        logger.info(f"Forced convergence (lowest delta {self.lowest_delta:.3e})")
        return unpack(self.lowest_delta_parameters)

    def _result(
        self, phase: OptimizationPhase, delta: float | None, parameters: np.ndarray | None = None
    ) -> OptimizationStep:
        return OptimizationStep(
            phase=phase,
            parameters=(self.parameters if parameters is None else parameters).copy(),
            delta=delta,
            iteration=self.iterations,
            successive_convergences=self.successive_convergences,
        )
