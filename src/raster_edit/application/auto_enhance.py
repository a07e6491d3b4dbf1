"""統計ベースの自動補正。

画像統計を1パスで求め、以下の順に条件付きで補正を適用する。
  1. ホワイトバランス（グレーワールド）
  2. コントラスト（輝度ヒストグラム平坦化）
  3. 彩度（モード依存の係数）
  4. 露出（ガンマ補正）
  5. モード固有処理（ポートレートの肌色補正）
  6. ディテール（アンシャープマスク）
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from raster_edit.application.color_operations import scale_saturation
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import EnhancementMode, RasterImage
from raster_edit.domain.operation import Operation, clamp
from raster_edit.infrastructure.color_space import (
    hsl_to_rgb_batch,
    luminance_batch,
    rgb_to_hsl_batch,
    skin_tone_mask,
)
from raster_edit.infrastructure.convolution import unsharp_mask
from raster_edit.infrastructure.statistics import (
    ColorStatistics,
    compute_statistics,
    equalization_lut,
)

logger = logging.getLogger(__name__)

_GAIN_MIN = 0.5
_GAIN_MAX = 2.0
_SATURATION_MIN = 0.5
_SATURATION_MAX = 2.0
_EXPOSURE_TRIGGER = 0.1
_EXPOSURE_LIMIT = 0.5
_SKIN_FRACTION_TRIGGER = 0.1
# 肌色の目標 (H, S, L)
_SKIN_TARGET = (0.05, 0.3, 0.7)
_SKIN_BLEND = 0.3
_DETAIL_AMOUNT = 0.5


def white_balance_gains(stats: ColorStatistics) -> tuple[float, float, float]:
    """グレーワールド仮定のチャンネル別ゲイン（[0.5, 2.0] にクランプ）。

    平均が 0 のチャンネルは上限ゲインとする。
    """
    gray = sum(stats.channel_mean) / 3.0
    gains = []
    for avg in stats.channel_mean:
        gain = gray / avg if avg > 0.0 else _GAIN_MAX
        gains.append(clamp(gain, _GAIN_MIN, _GAIN_MAX))
    return (gains[0], gains[1], gains[2])


def apply_white_balance(
    rgba: npt.NDArray[np.uint8],
    gains: tuple[float, float, float],
) -> npt.NDArray[np.uint8]:
    """チャンネル別ゲインを適用。"""
    out = rgba.copy()
    rgb = rgba[:, :, :3].astype(np.float64) * np.array(gains)
    out[:, :, :3] = np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.uint8)
    return out


def equalize_luminance(rgba: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """輝度ヒストグラム平坦化。

    色度を保つため、各画素の RGB を lut[lum] / max(lum, 1) 倍する。
    """
    lum = np.clip(np.floor(luminance_batch(rgba) + 0.5), 0, 255).astype(np.uint8)
    lut = equalization_lut(lum)
    ratio = lut[lum] / np.maximum(lum.astype(np.float64), 1.0)
    out = rgba.copy()
    rgb = rgba[:, :, :3].astype(np.float64) * ratio[:, :, np.newaxis]
    out[:, :, :3] = np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.uint8)
    return out


def saturation_multiplier(
    mode: EnhancementMode,
    stats: ColorStatistics,
    strength: float,
) -> float:
    """モード依存の彩度係数（[0.5, 2.0] にクランプ）。"""
    if mode is EnhancementMode.PORTRAIT:
        factor = 0.8 + 0.4 * strength
    elif mode is EnhancementMode.LANDSCAPE:
        factor = 1.0 + 0.8 * strength
    elif mode is EnhancementMode.LOW_LIGHT or stats.is_low_light:
        factor = 0.7 + 0.3 * strength
    else:
        factor = 1.0 + (0.3 - stats.color_variance) * strength * 3.0
    return clamp(factor, _SATURATION_MIN, _SATURATION_MAX)


def exposure_gamma(stats: ColorStatistics, strength: float) -> float | None:
    """露出補正のガンマ値。補正不要なら None。"""
    if abs(stats.exposure_bias) <= _EXPOSURE_TRIGGER:
        return None
    correction = clamp(-stats.exposure_bias * strength, -_EXPOSURE_LIMIT, _EXPOSURE_LIMIT)
    if correction == 0.0:
        return None
    if correction > 0.0:
        return 1.0 / (1.0 + 2.0 * correction)
    return 1.0 - 2.0 * correction


def apply_gamma(rgba: npt.NDArray[np.uint8], gamma: float) -> npt.NDArray[np.uint8]:
    """out = 255 · (in / 255)^γ を RGB に適用。"""
    table = np.floor(255.0 * (np.arange(256) / 255.0) ** gamma + 0.5)
    table = np.clip(table, 0, 255).astype(np.uint8)
    out = rgba.copy()
    out[:, :, :3] = table[rgba[:, :, :3]]
    return out


def blend_skin_tones(rgba: npt.NDArray[np.uint8], strength: float) -> npt.NDArray[np.uint8]:
    """肌色画素の HSL を目標値へ線形ブレンド。"""
    mask = skin_tone_mask(rgba)
    if not mask.any():
        return rgba.copy()
    blend = _SKIN_BLEND * strength
    hsl = rgb_to_hsl_batch(rgba[:, :, :3][mask])
    target = np.array(_SKIN_TARGET)
    hsl = hsl * (1.0 - blend) + target * blend
    out = rgba.copy()
    out[:, :, :3][mask] = hsl_to_rgb_batch(hsl)
    return out


class AutoEnhanceOperation(Operation):
    """統計ベースの自動補正。"""

    def __init__(
        self,
        mode: EnhancementMode = EnhancementMode.AUTO,
        strength: float = 0.5,
    ) -> None:
        if not isinstance(mode, EnhancementMode):
            raise ConstructionError("mode", mode, "EnhancementMode required")
        self._mode = mode
        self._strength = clamp(float(strength), 0.0, 1.0)

    @property
    def mode(self) -> EnhancementMode:
        return self._mode

    @property
    def strength(self) -> float:
        return self._strength

    @property
    def name(self) -> str:
        return f"auto enhance ({self._mode.value}, {self._strength:.2f})"

    def _apply(self, image: RasterImage) -> RasterImage:
        rgba = image.rgba()
        stats = compute_statistics(rgba)
        s = self._strength
        logger.debug(
            "stats: luminance=%.3f bias=%+.3f variance=%.4f contrast=%.3f skin=%.3f",
            stats.luminance, stats.exposure_bias, stats.color_variance,
            stats.contrast_ratio, stats.skin_fraction,
        )

        if stats.needs_white_balance:
            gains = white_balance_gains(stats)
            logger.debug("white balance gains %s", gains)
            rgba = apply_white_balance(rgba, gains)

        if stats.needs_contrast:
            logger.debug("histogram equalization")
            rgba = equalize_luminance(rgba)

        factor = saturation_multiplier(self._mode, stats, s)
        if factor != 1.0:
            logger.debug("saturation x%.3f", factor)
            rgba = scale_saturation(rgba, factor)

        gamma = exposure_gamma(stats, s)
        if gamma is not None:
            logger.debug("exposure gamma %.3f", gamma)
            rgba = apply_gamma(rgba, gamma)

        rgba = self._mode_pass(rgba, stats)

        if s > 0.0:
            detail = unsharp_mask(rgba[:, :, :3], _DETAIL_AMOUNT * s)
            out = rgba.astype(np.float64)
            out[:, :, :3] = detail
            return RasterImage.from_rgba(out)
        return RasterImage(rgba)

    def _mode_pass(
        self,
        rgba: npt.NDArray[np.uint8],
        stats: ColorStatistics,
    ) -> npt.NDArray[np.uint8]:
        """モード固有処理。ポートレート以外は現状そのまま返す。"""
        if self._mode is EnhancementMode.PORTRAIT and self._strength > 0.0:
            if stats.skin_fraction > _SKIN_FRACTION_TRIGGER:
                logger.debug("portrait skin blend (fraction %.3f)", stats.skin_fraction)
                return blend_skin_tones(rgba, self._strength)
        return rgba
