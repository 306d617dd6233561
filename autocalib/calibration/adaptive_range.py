"""棄却が続くと広がる受理範囲。"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class AdaptiveRange:
    """受理範囲 [min, max] と連続棄却カウンタ。

    初期範囲がキャリブレーションずれのために狭すぎる場合に備え、
    棄却のみのフレームが discards_until_increase 回に達すると両端を increase だけ広げる。
    """

    def __init__(self, name: str, minimum: float, maximum: float, discards_until_increase: int, increase: float):
        self.name = name
        self.min = minimum
        self.max = maximum
        self.discards_until_increase = discards_until_increase
        self.increase = increase
        self.num_of_discarded = 0

    def __repr__(self) -> str:
        return f"AdaptiveRange({self.name!r}, [{self.min:.1f}, {self.max:.1f}], discarded={self.num_of_discarded})"

    def is_inside(self, value: float) -> bool:
        return self.min <= value <= self.max

    def update(self, discarded: bool, found: bool) -> bool:
        """1フレーム分の結果を反映する。

        Args:
            discarded: このフレームで棄却があったか
            found: このフレームで受理があったか

        Returns:
            範囲を広げた場合 True
        """
        if discarded and not found:
            self.num_of_discarded += 1
        if self.num_of_discarded >= self.discards_until_increase:
            self.num_of_discarded = 0
            self.min -= self.increase
            self.max += self.increase
            logger.info(f"{self.name} - Increased range to [{self.min:.1f}, {self.max:.1f}]")
            return True
        return False

    def reset_discards(self) -> None:
        self.num_of_discarded = 0
