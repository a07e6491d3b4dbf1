"""畳み込みエンジン（scipy.ndimage ベース）。

境界はクランプ（最寄りの端画素を再利用）。折り返しやゼロ埋めはしない。
エッジ検出用に外周1画素を処理しない版も提供する。
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
from scipy import ndimage

from raster_edit.domain.kernel import LAPLACIAN, SOBEL_X, SOBEL_Y, Kernel, gaussian_kernel


def convolve(
    data: npt.NDArray[np.generic],
    kernel: Kernel,
) -> npt.NDArray[np.float64]:
    """カーネルをチャンネル毎に適用（端画素クランプ）。

    out[y, x] = Σ kernel[ky, kx] · src[y + ky - c, x + kx - c]

    Args:
        data: (H, W) または (H, W, C) の配列
        kernel: 適用するカーネル

    Returns:
        入力と同形状の float64 配列（クリップなし）
    """
    src = data.astype(np.float64)
    if src.ndim == 2:
        return ndimage.correlate(src, kernel.weights, mode="nearest")
    out = np.empty_like(src)
    for c in range(src.shape[2]):
        out[:, :, c] = ndimage.correlate(src[:, :, c], kernel.weights, mode="nearest")
    return out


def convolve_interior(
    data: npt.NDArray[np.generic],
    kernel: Kernel,
) -> npt.NDArray[np.float64]:
    """外周（カーネル半径分）を 0 とし、内側のみ畳み込む。

    Args:
        data: (H, W) の配列
        kernel: 適用するカーネル

    Returns:
        (H, W) の float64 配列。外周リングは 0。
    """
    result = convolve(data, kernel)
    c = kernel.center
    mask = np.zeros(result.shape[:2], dtype=bool)
    mask[c:result.shape[0] - c, c:result.shape[1] - c] = True
    result[~mask] = 0.0
    return result


def sobel_gradients(
    gray: npt.NDArray[np.generic],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Sobel 水平・垂直勾配（外周0）。

    Args:
        gray: (H, W) のグレースケール配列

    Returns:
        (gx, gy) の float64 配列
    """
    return convolve_interior(gray, SOBEL_X), convolve_interior(gray, SOBEL_Y)


def sobel_magnitude(gray: npt.NDArray[np.generic]) -> npt.NDArray[np.float64]:
    """Sobel 勾配強度 sqrt(gx² + gy²)。"""
    gx, gy = sobel_gradients(gray)
    return np.sqrt(gx * gx + gy * gy)


def laplacian(data: npt.NDArray[np.generic]) -> npt.NDArray[np.float64]:
    """ラプラシアン応答（端画素クランプ）。"""
    return convolve(data, LAPLACIAN)


def gaussian_blur(
    data: npt.NDArray[np.generic],
    size: int,
    sigma: float | None = None,
) -> npt.NDArray[np.float64]:
    """ガウシアンぼかし。"""
    return convolve(data, gaussian_kernel(size, sigma))


def box_sum(
    data: npt.NDArray[np.generic],
    size: int,
) -> npt.NDArray[np.float64]:
    """size×size 窓内の合計（範囲外は 0 として扱う）。"""
    weights = np.ones((size, size), dtype=np.float64)
    return ndimage.correlate(data.astype(np.float64), weights, mode="constant", cval=0.0)


def unsharp_mask(
    data: npt.NDArray[np.generic],
    amount: float,
    size: int = 5,
    sigma: float = 1.0,
) -> npt.NDArray[np.float64]:
    """アンシャープマスク。

    sharpened = original + (original - blur) · amount

    Args:
        data: (H, W, C) の配列（RGB 部分のみ渡すこと）
        amount: 強調量
        size: ぼかしカーネル辺長
        sigma: ぼかしの標準偏差

    Returns:
        float64 配列（クリップなし）
    """
    original = data.astype(np.float64)
    if amount <= 0.0:
        return original
    blurred = gaussian_blur(original, size, sigma)
    return original + (original - blurred) * amount
