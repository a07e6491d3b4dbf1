"""HSL 空間での明度調整。

素朴な実装（float64 の HSL 往復）、LUT 実装、画素数による自動選択の3種。
どの経路も数値的に互換な結果を返す（純粋な性能上の振り分け）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import (
    HslAdjustmentMode,
    HslAlgorithm,
    PerformanceMode,
    RasterImage,
)
from raster_edit.domain.operation import Operation, require_range
from raster_edit.infrastructure.color_space import hsl_to_rgb_batch, rgb_to_hsl_batch
from raster_edit.infrastructure.hsl_lut import lookup_rgb

logger = logging.getLogger(__name__)

# この画素数未満は素朴な実装を使う
DEFAULT_LUT_THRESHOLD = 10_000


def adjusted_lightness(
    lightness: npt.NDArray[np.float64],
    mode: HslAdjustmentMode,
    value: float,
) -> npt.NDArray[np.float64]:
    """モードに応じて明度を調整し [0, 1] にクランプ。"""
    if mode is HslAdjustmentMode.RELATIVE:
        return np.clip(lightness + value, 0.0, 1.0)
    return np.full_like(lightness, value)


class _HslBrightnessBase(Operation):
    """HSL 明度調整の共通部。"""

    _label = "hsl"

    def __init__(
        self,
        value: float,
        mode: HslAdjustmentMode = HslAdjustmentMode.RELATIVE,
    ) -> None:
        if not isinstance(mode, HslAdjustmentMode):
            raise ConstructionError("mode", mode, "HslAdjustmentMode required")
        if mode is HslAdjustmentMode.RELATIVE:
            require_range("delta", value, -1.0, 1.0)
        else:
            require_range("target", value, 0.0, 1.0)
        self._value = value
        self._mode = mode

    @property
    def mode(self) -> HslAdjustmentMode:
        return self._mode

    @property
    def value(self) -> float:
        return self._value

    @property
    def name(self) -> str:
        return f"hsl brightness {self._mode.value} {self._value:+.2f} ({self._label})"


class NaiveHslBrightnessOperation(_HslBrightnessBase):
    """画素毎に厳密な HSL 往復を行う実装。"""

    _label = "naive"

    def _apply(self, image: RasterImage) -> RasterImage:
        rgba = image.rgba()
        hsl = rgb_to_hsl_batch(rgba[:, :, :3])
        hsl[:, :, 2] = adjusted_lightness(hsl[:, :, 2], self._mode, self._value)
        out = rgba.copy()
        out[:, :, :3] = hsl_to_rgb_batch(hsl)
        return RasterImage(out)


class LutHslBrightnessOperation(_HslBrightnessBase):
    """共有 LUT を引く実装。

    元画素から厳密な HSL を求め、調整後の値で LUT を三線形補間して引く。
    """

    _label = "lut"

    def _apply(self, image: RasterImage) -> RasterImage:
        rgba = image.rgba()
        hsl = rgb_to_hsl_batch(rgba[:, :, :3])
        lightness = adjusted_lightness(hsl[:, :, 2], self._mode, self._value)
        out = rgba.copy()
        out[:, :, :3] = lookup_rgb(hsl[:, :, 0], hsl[:, :, 1], lightness)
        return RasterImage(out)


class AdaptiveHslBrightnessOperation(_HslBrightnessBase):
    """画素数で素朴な実装と LUT 実装を切り替える。"""

    _label = "adaptive"

    def __init__(
        self,
        value: float,
        mode: HslAdjustmentMode = HslAdjustmentMode.RELATIVE,
        threshold: int = DEFAULT_LUT_THRESHOLD,
    ) -> None:
        super().__init__(value, mode)
        if threshold < 0:
            raise ConstructionError("threshold", threshold, "must be >= 0")
        self._threshold = threshold
        self._naive = NaiveHslBrightnessOperation(value, mode)
        self._lut = LutHslBrightnessOperation(value, mode)

    def select(self, image: RasterImage) -> Operation:
        """画像サイズに応じた実装を返す。"""
        if image.pixel_count < self._threshold:
            return self._naive
        return self._lut

    def _apply(self, image: RasterImage) -> RasterImage:
        chosen = self.select(image)
        logger.debug(
            "%d px -> %s (threshold %d)", image.pixel_count, chosen.name, self._threshold,
        )
        return chosen.apply(image)


@dataclass(frozen=True)
class HslSettings:
    """HSL 明度調整の実装選択設定。"""

    algorithm: HslAlgorithm = HslAlgorithm.LUT
    performance: PerformanceMode | None = None
    lut_threshold: int = DEFAULT_LUT_THRESHOLD


def create_hsl_brightness(
    value: float,
    mode: HslAdjustmentMode = HslAdjustmentMode.RELATIVE,
    settings: HslSettings | None = None,
) -> Operation:
    """設定に応じた HSL 明度調整 Operation を生成。

    performance が指定されていればそれを優先する
    (QUALITY → 素朴, BALANCED → 自動選択, SPEED → LUT)。
    ACCELERATED は未実装のため LUT 実装に置き換える。

    Args:
        value: RELATIVE なら差分 (-1〜1)、ABSOLUTE なら目標明度 (0〜1)
        mode: 調整モード
        settings: 実装選択設定

    Returns:
        Operation
    """
    settings = settings or HslSettings()
    if settings.performance is PerformanceMode.QUALITY:
        return NaiveHslBrightnessOperation(value, mode)
    if settings.performance is PerformanceMode.BALANCED:
        return AdaptiveHslBrightnessOperation(value, mode, settings.lut_threshold)
    if settings.performance is PerformanceMode.SPEED:
        return LutHslBrightnessOperation(value, mode)

    if settings.algorithm is HslAlgorithm.BASIC:
        return NaiveHslBrightnessOperation(value, mode)
    if settings.algorithm is HslAlgorithm.ACCELERATED:
        logger.warning("Accelerated HSL backend unavailable; using LUT implementation")
    return LutHslBrightnessOperation(value, mode)
