"""補間による画像リサンプリング。

分離型の重み行列 (dst × src) を軸毎に構築し、行列積で拡大縮小する。
座標は画素中心合わせ: src = (dst + 0.5) · src_n / dst_n - 0.5
"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np
import numpy.typing as npt

LANCZOS_A = 2
# Lanczos 重み合計がこれ以下なら双線形にフォールバック
_LANCZOS_MIN_WEIGHT = 1e-4
# Keys 三次補間のパラメータ
_CUBIC_A = -0.5

WeightsFn = Callable[[int, int], npt.NDArray[np.float64]]


def _source_coords(src_n: int, dst_n: int) -> npt.NDArray[np.float64]:
    dst = np.arange(dst_n, dtype=np.float64)
    return (dst + 0.5) * src_n / dst_n - 0.5


def bilinear_weights(src_n: int, dst_n: int) -> npt.NDArray[np.float64]:
    """双線形補間の重み行列。座標はソース範囲にクランプ。

    Args:
        src_n: ソース軸長
        dst_n: 出力軸長

    Returns:
        (dst_n, src_n) の float64 行列。各行の和は1。
    """
    coords = np.clip(_source_coords(src_n, dst_n), 0.0, src_n - 1)
    i0 = np.floor(coords).astype(np.intp)
    i1 = np.minimum(i0 + 1, src_n - 1)
    frac = coords - i0
    rows = np.arange(dst_n)
    weights = np.zeros((dst_n, src_n), dtype=np.float64)
    np.add.at(weights, (rows, i0), 1.0 - frac)
    np.add.at(weights, (rows, i1), frac)
    return weights


def _cubic(x: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Keys 三次畳み込みカーネル。"""
    ax = np.abs(x)
    a = _CUBIC_A
    near = ((a + 2.0) * ax - (a + 3.0)) * ax * ax + 1.0
    far = ((a * ax - 5.0 * a) * ax + 8.0 * a) * ax - 4.0 * a
    return np.where(ax <= 1.0, near, np.where(ax < 2.0, far, 0.0))


def bicubic_weights(src_n: int, dst_n: int) -> npt.NDArray[np.float64]:
    """三次補間の重み行列。範囲外タップは端画素にクランプ。"""
    coords = _source_coords(src_n, dst_n)
    base = np.floor(coords).astype(np.intp)
    rows = np.arange(dst_n)
    weights = np.zeros((dst_n, src_n), dtype=np.float64)
    for offset in range(-1, 3):
        taps = base + offset
        w = _cubic(coords - taps)
        np.add.at(weights, (rows, np.clip(taps, 0, src_n - 1)), w)
    return weights / weights.sum(axis=1, keepdims=True)


def lanczos_weights(
    src_n: int,
    dst_n: int,
    a: int = LANCZOS_A,
) -> npt.NDArray[np.float64]:
    """Lanczos 窓付き sinc の重み行列。

    範囲外タップは捨てて残りで正規化する。
    重み合計が下限以下の行は双線形の重みで置き換える。

    Args:
        src_n: ソース軸長
        dst_n: 出力軸長
        a: 窓半径

    Returns:
        (dst_n, src_n) の float64 行列
    """
    coords = _source_coords(src_n, dst_n)
    base = np.floor(coords).astype(np.intp)
    rows = np.arange(dst_n)
    weights = np.zeros((dst_n, src_n), dtype=np.float64)
    for offset in range(-a + 1, a + 1):
        taps = base + offset
        dist = coords - taps
        w = np.where(np.abs(dist) < a, np.sinc(dist) * np.sinc(dist / a), 0.0)
        valid = (taps >= 0) & (taps < src_n)
        np.add.at(weights, (rows[valid], taps[valid]), w[valid])

    sums = weights.sum(axis=1)
    underflow = sums <= _LANCZOS_MIN_WEIGHT
    if np.any(underflow):
        weights[underflow] = bilinear_weights(src_n, dst_n)[underflow]
        sums = weights.sum(axis=1)
    return weights / sums[:, np.newaxis]


def nearest_indices(src_n: int, dst_n: int) -> npt.NDArray[np.intp]:
    """最近傍補間のソースインデックス。"""
    coords = (np.arange(dst_n, dtype=np.float64) + 0.5) * src_n / dst_n
    return np.clip(np.floor(coords).astype(np.intp), 0, src_n - 1)


def resample(
    data: npt.NDArray[np.generic],
    dst_width: int,
    dst_height: int,
    weights_fn: WeightsFn = bilinear_weights,
) -> npt.NDArray[np.float64]:
    """分離型重み行列で (H, W, C) 配列をリサンプリング。

    Args:
        data: (H, W, C) の配列
        dst_width: 出力幅
        dst_height: 出力高さ
        weights_fn: (src_n, dst_n) → 重み行列 を返す関数

    Returns:
        (dst_height, dst_width, C) の float64 配列（クリップなし）
    """
    src = data.astype(np.float64)
    wy = weights_fn(src.shape[0], dst_height)
    wx = weights_fn(src.shape[1], dst_width)
    vertical = np.einsum("ij,jkc->ikc", wy, src)
    return np.einsum("lk,ikc->ilc", wx, vertical)


def scaled_size(length: int, factor: float) -> int:
    """倍率適用後の軸長（四捨五入、最小1）。"""
    return max(1, int(math.floor(length * factor + 0.5)))
