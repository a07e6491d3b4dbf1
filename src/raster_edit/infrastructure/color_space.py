"""RGB ↔ HSL の一括変換と輝度計算（NumPy ベース）。

色相は [0, 1) で扱う。配列は末尾軸がチャンネルであれば任意形状に対応。
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from raster_edit.domain.color import LUMA_B, LUMA_G, LUMA_R


def rgb_to_hsl_batch(
    rgb_array: npt.NDArray[np.generic],
) -> npt.NDArray[np.float64]:
    """RGB配列をHSL色空間に一括変換。

    標準HSL（S は明度で正規化）。

    Args:
        rgb_array: (..., 3) の配列 (RGB, 0-255)

    Returns:
        (..., 3) の float64 配列 (H: 0〜1, S: 0〜1, L: 0〜1)
    """
    rgb = rgb_array[..., :3].astype(np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    max_c = np.maximum(np.maximum(r, g), b)
    min_c = np.minimum(np.minimum(r, g), b)
    d = max_c - min_c

    l = (max_c + min_c) / 2.0  # noqa: E741

    s = np.zeros_like(l)
    chromatic = d > 0
    denom = np.where(l > 0.5, 2.0 - max_c - min_c, max_c + min_c)
    np.divide(d, denom, out=s, where=chromatic & (denom > 0))

    h = np.zeros_like(r)
    mask_r = chromatic & (max_c == r)
    mask_g = chromatic & (max_c == g) & ~mask_r
    mask_b = chromatic & ~mask_r & ~mask_g

    h[mask_r] = ((g[mask_r] - b[mask_r]) / d[mask_r]) % 6.0
    h[mask_g] = (b[mask_g] - r[mask_g]) / d[mask_g] + 2.0
    h[mask_b] = (r[mask_b] - g[mask_b]) / d[mask_b] + 4.0

    h /= 6.0
    h = h % 1.0

    return np.stack([h, np.clip(s, 0.0, 1.0), l], axis=-1)


def hsl_to_rgb_float(
    hsl_array: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """HSL配列を 0〜1 の RGB 浮動小数配列に変換。

    Args:
        hsl_array: (..., 3) の float64 配列 (H, S, L)

    Returns:
        (..., 3) の float64 配列 (RGB, 0〜1)
    """
    h = hsl_array[..., 0]
    s = np.clip(hsl_array[..., 1], 0.0, 1.0)
    l = np.clip(hsl_array[..., 2], 0.0, 1.0)  # noqa: E741

    chroma = (1.0 - np.abs(2.0 * l - 1.0)) * s
    h6 = (h - np.floor(h)) * 6.0
    x = chroma * (1.0 - np.abs(h6 % 2.0 - 1.0))
    m = l - chroma / 2.0
    zero = np.zeros_like(l)

    sector = np.floor(h6).astype(np.int64) % 6
    # 色相セクタ毎の (R, G, B) 成分
    r = np.choose(sector, [chroma, x, zero, zero, x, chroma])
    g = np.choose(sector, [x, chroma, chroma, x, zero, zero])
    b = np.choose(sector, [zero, zero, x, chroma, chroma, x])

    return np.clip(np.stack([r + m, g + m, b + m], axis=-1), 0.0, 1.0)


def hsl_to_rgb_batch(
    hsl_array: npt.NDArray[np.float64],
) -> npt.NDArray[np.uint8]:
    """HSL配列をRGBに一括変換（四捨五入）。

    Args:
        hsl_array: (..., 3) の float64 配列 (H, S, L)

    Returns:
        (..., 3) の uint8 配列 (RGB)
    """
    rgb = hsl_to_rgb_float(hsl_array)
    return np.clip(np.floor(rgb * 255.0 + 0.5), 0, 255).astype(np.uint8)


def luminance_batch(
    rgb_array: npt.NDArray[np.generic],
) -> npt.NDArray[np.float64]:
    """BT.601 輝度 (0-255) を一括計算。

    Args:
        rgb_array: (..., 3 or 4) の配列

    Returns:
        (...) の float64 配列
    """
    rgb = rgb_array[..., :3].astype(np.float64)
    return LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]


def to_gray_bt601(
    rgb_array: npt.NDArray[np.generic],
) -> npt.NDArray[np.uint8]:
    """BT.601 重みで切り捨てグレースケール化。"""
    return np.clip(luminance_batch(rgb_array), 0, 255).astype(np.uint8)


def skin_tone_mask(
    rgb_array: npt.NDArray[np.generic],
) -> npt.NDArray[np.bool_]:
    """YCbCr 範囲テストによる肌色マスク。

    Y ∈ (0.3, 0.9), Cb, Cr ∈ (0.4, 0.6)（いずれも 0-1 正規化）。
    """
    rgb = rgb_array[..., :3].astype(np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = LUMA_R * r + LUMA_G * g + LUMA_B * b
    cb = -0.169 * r - 0.331 * g + 0.5 * b + 0.5
    cr = 0.5 * r - 0.419 * g - 0.081 * b + 0.5
    return (
        (y > 0.3) & (y < 0.9)
        & (cb > 0.4) & (cb < 0.6)
        & (cr > 0.4) & (cr < 0.6)
    )
