"""画像統計。

自動補正パイプライン用の色統計、輝度ヒストグラム平坦化 LUT、
局所輝度分散を算出する。
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from raster_edit.infrastructure.color_space import luminance_batch, skin_tone_mask
from raster_edit.infrastructure.convolution import box_sum

# 判定しきい値
_LOW_LIGHT_LUMINANCE = 0.3
_WHITE_BALANCE_SPREAD = 0.2
_LOW_CONTRAST_RATIO = 0.3


@dataclass(frozen=True)
class ColorStatistics:
    """1パスで求める画像の色統計。

    channel_* は (R, G, B) の順。color_variance は 0〜1 正規化値の分散平均。
    """

    channel_mean: tuple[float, float, float]
    channel_min: tuple[int, int, int]
    channel_max: tuple[int, int, int]
    color_variance: float
    luminance: float
    skin_fraction: float

    @property
    def exposure_bias(self) -> float:
        return self.luminance - 0.5

    @property
    def is_low_light(self) -> bool:
        return self.luminance < _LOW_LIGHT_LUMINANCE

    @property
    def needs_white_balance(self) -> bool:
        max_avg = max(self.channel_mean)
        if max_avg <= 0.0:
            return False
        return (max_avg - min(self.channel_mean)) / max_avg > _WHITE_BALANCE_SPREAD

    @property
    def contrast_ratio(self) -> float:
        spread = sum(hi - lo for hi, lo in zip(self.channel_max, self.channel_min))
        return spread / (3.0 * 255.0)

    @property
    def needs_contrast(self) -> bool:
        return self.contrast_ratio < _LOW_CONTRAST_RATIO


def compute_statistics(rgba: npt.NDArray[np.uint8]) -> ColorStatistics:
    """画像全体の色統計を算出。

    Args:
        rgba: (H, W, 3 or 4) uint8

    Returns:
        ColorStatistics
    """
    rgb = rgba[:, :, :3].reshape(-1, 3)
    rgb_f = rgb.astype(np.float64)
    mean = rgb_f.mean(axis=0)
    lo = rgb.min(axis=0)
    hi = rgb.max(axis=0)
    variance = float(np.mean((rgb_f / 255.0).var(axis=0)))
    lum = float(luminance_batch(rgb).mean() / 255.0)
    skin = float(skin_tone_mask(rgb).mean())
    return ColorStatistics(
        channel_mean=(float(mean[0]), float(mean[1]), float(mean[2])),
        channel_min=(int(lo[0]), int(lo[1]), int(lo[2])),
        channel_max=(int(hi[0]), int(hi[1]), int(hi[2])),
        color_variance=variance,
        luminance=lum,
        skin_fraction=skin,
    )


def equalization_lut(luma: npt.NDArray[np.uint8]) -> npt.NDArray[np.float64]:
    """輝度ヒストグラム平坦化の LUT を構築。

    lut[i] = (cdf[i] - cdf_min) / (total - cdf_min) · 255
    全画素が同一輝度の場合は恒等写像を返す。

    Args:
        luma: (H, W) uint8 輝度

    Returns:
        (256,) float64 LUT
    """
    hist = np.bincount(luma.ravel(), minlength=256)
    cdf = np.cumsum(hist)
    total = int(cdf[-1])
    cdf_min = int(cdf[np.nonzero(cdf)[0][0]])
    if total == cdf_min:
        return np.arange(256, dtype=np.float64)
    lut = (cdf - cdf_min) / (total - cdf_min) * 255.0
    return np.clip(np.floor(lut), 0.0, 255.0)


def local_variance(
    values: npt.NDArray[np.generic],
    size: int = 3,
) -> npt.NDArray[np.float64]:
    """size×size 近傍の分散（範囲内の画素のみで算出）。

    Args:
        values: (H, W) の配列
        size: 窓サイズ（奇数）

    Returns:
        (H, W) の float64 分散
    """
    v = values.astype(np.float64)
    count = box_sum(np.ones_like(v), size)
    mean = box_sum(v, size) / count
    mean_sq = box_sum(v * v, size) / count
    return np.maximum(mean_sq - mean * mean, 0.0)
