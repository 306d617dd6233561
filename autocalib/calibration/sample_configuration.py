"""サンプル構成とスロット管理。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from autocalib.calibration.samples import SampleType, bit

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocalib.calibration.samples import Sample
    from autocalib.models.data_models import CameraType


class SampleSlotError(AssertionError):
    """サンプルスロットの誤用（範囲外・二重記録・未要求の種別）。"""


@dataclass(frozen=True)
class SampleConfiguration:
    """1回の撮影フェーズで記録するサンプルの構成。

    サンプル自体は共有のスロット配列が保持し、構成は自分に属する
    スロット範囲 [sample_index_base, sample_index_base + num_of_samples) を定める。

    Attributes:
        camera: 対象カメラ
        head_pan: 撮影時の首パン角 [rad]
        head_tilt: 撮影時の首チルト角 [rad]
        sample_types: 要求サンプル種別のビットマスク
        sample_index_base: 共有スロット配列での先頭インデックス
    """

    camera: CameraType
    head_pan: float
    head_tilt: float
    sample_types: int
    sample_index_base: int

    @property
    def num_of_samples(self) -> int:
        return sum(1 for sample_type in SampleType if self.requests(sample_type))

    def requests(self, sample_type: SampleType) -> bool:
        return bool(self.sample_types & bit(sample_type))

    def slot_index(self, sample_type: SampleType) -> int:
        """種別に対応するスロット番号（先頭 + 先行する要求種別の数）。"""
        if not self.requests(sample_type):
            raise SampleSlotError(f"{sample_type.name} is not requested by this configuration")
        return self.sample_index_base + sum(1 for other in SampleType if other < sample_type and self.requests(other))

    def _checked_index(self, samples: Sequence[Sample | None], sample_type: SampleType) -> int:
        index = self.slot_index(sample_type)
        if index >= len(samples):
            raise SampleSlotError(f"Sample slot {index} is out of range (size {len(samples)})")
        return index

    def need_to_record(self, samples: Sequence[Sample | None], sample_type: SampleType) -> bool:
        """種別のサンプルがまだ記録されていないか。要求されていない種別は False。"""
        if not self.requests(sample_type):
            return False
        return samples[self._checked_index(samples, sample_type)] is None

    def record(self, samples: list[Sample | None], sample_type: SampleType, sample: Sample) -> None:
        """サンプルをスロットに記録する。

        Raises:
            SampleSlotError: 未要求の種別・範囲外・記録済みのスロットの場合
        """
        index = self._checked_index(samples, sample_type)
        if samples[index] is not None:
            raise SampleSlotError(f"Sample slot {index} ({sample_type.name}) is already filled")
        samples[index] = sample

    def samples_exist(self, samples: Sequence[Sample | None]) -> bool:
        """要求された全種別のスロットが埋まっているか。"""
        for sample_type in SampleType:
            if self.requests(sample_type):
                index = self.slot_index(sample_type)
                if index >= len(samples) or samples[index] is None:
                    return False
        return True

    def is_exhausted(self, samples: Sequence[Sample | None]) -> bool:
        """記録すべき種別が残っていないか。"""
        return not any(self.need_to_record(samples, sample_type) for sample_type in SampleType)
