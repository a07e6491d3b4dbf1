"""Operation 抽象。

全ての画像操作は RasterImage → RasterImage の純関数として振る舞う。
パラメータは構築時に検証し、以後は不変。
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from raster_edit.domain.errors import (
    ConstructionError,
    ErrorCode,
    ProcessingError,
)
from raster_edit.domain.image_model import RasterImage


class Operation(ABC):
    """画像操作の基底クラス。

    サブクラスは _apply を実装する。apply は入力の型検証と
    例外の ProcessingError への変換を担う。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """人間向けの操作名。"""

    @abstractmethod
    def _apply(self, image: RasterImage) -> RasterImage:
        """操作本体。入力を変更してはならない。"""

    def apply(self, image: RasterImage) -> RasterImage:
        """操作を適用して新しい画像を返す。

        Args:
            image: 入力画像（変更されない）

        Returns:
            新しい RasterImage

        Raises:
            ProcessingError: 適用時の失敗
        """
        if not isinstance(image, RasterImage):
            raise ProcessingError(
                self.name, "no image supplied", code=ErrorCode.IMAGE_NOT_LOADED,
            )
        try:
            return self._apply(image)
        except ProcessingError:
            raise
        except MemoryError as e:
            raise ProcessingError(
                self.name, "out of memory", code=ErrorCode.OUT_OF_MEMORY,
            ) from e
        except Exception as e:
            raise ProcessingError(self.name, str(e) or type(e).__name__) from e

    def __call__(self, image: RasterImage) -> RasterImage:
        return self.apply(image)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# --- パラメータ検証ヘルパー ---


def require_range(
    parameter: str,
    value: float,
    low: float,
    high: float,
    *,
    low_inclusive: bool = True,
    high_inclusive: bool = True,
) -> float:
    """value が範囲内であることを検証して返す。範囲外は ConstructionError。"""
    above = value >= low if low_inclusive else value > low
    below = value <= high if high_inclusive else value < high
    if not (above and below):
        lb = "[" if low_inclusive else "("
        hb = "]" if high_inclusive else ")"
        raise ConstructionError(parameter, value, f"must be in {lb}{low}, {high}{hb}")
    return value


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
