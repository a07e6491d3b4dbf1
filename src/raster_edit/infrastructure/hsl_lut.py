"""HSL→RGB ルックアップテーブル（LUT）。

格子 (H, S, L) → パック RGB (0xRRGGBB) の 3D LUT を一度だけ構築し、
プロセス全体で読み取り専用として共有する。無効化はしない。
"""

from __future__ import annotations

import logging
import threading
import time

import numpy as np
import numpy.typing as npt

from raster_edit.infrastructure.color_space import hsl_to_rgb_batch

logger = logging.getLogger(__name__)

# 格子の分割数 (64³ = 262,144エントリ)
LUT_SIZE = 64

_lut: npt.NDArray[np.uint32] | None = None
_lut_lock = threading.Lock()


def build_lut(size: int = LUT_SIZE) -> npt.NDArray[np.uint32]:
    """HSL→パックRGBの3D LUTを構築。

    グリッド点は i / (size - 1)（i = 0..size-1）。

    Args:
        size: 各軸の分割数

    Returns:
        (size, size, size) の uint32 配列。各要素は 0xRRGGBB。
    """
    steps = np.arange(size, dtype=np.float64) / (size - 1)
    hh, ss, ll = np.meshgrid(steps, steps, steps, indexing="ij")
    grid_hsl = np.stack([hh, ss, ll], axis=-1)

    rgb = hsl_to_rgb_batch(grid_hsl).astype(np.uint32)
    packed = (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]
    return packed.astype(np.uint32)


def get_lut() -> npt.NDArray[np.uint32]:
    """共有 LUT を返す。初回呼び出し時に構築する。"""
    global _lut
    if _lut is None:
        with _lut_lock:
            if _lut is None:
                started = time.perf_counter()
                table = build_lut()
                table.flags.writeable = False
                _lut = table
                logger.debug(
                    "HSL LUT built: %d entries in %.1f ms",
                    table.size, (time.perf_counter() - started) * 1000.0,
                )
    return _lut


# HSL→RGB の折れ点。色相は 1/6 の倍数、明度は 0.5
HUE_BREAKS = tuple(m / 6.0 for m in range(1, 6))
LIGHTNESS_BREAKS = (0.5,)


def cell_coordinates(
    values: npt.NDArray[np.float64],
    breaks: tuple[float, ...] = (),
    size: int = LUT_SIZE,
) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.float64]]:
    """[0, 1] の値を補間セルの下端インデックスとセル内位置に分解。

    格子点の間にある折れ点をまたぐセルは使わず、値と同じ側の隣接セルから
    線形外挿する（セル内位置は [-0.5, 1.5) に収まる）。

    Args:
        values: 軸上の値 (0〜1、範囲外はクランプ)
        breaks: 軸上の折れ点
        size: 軸の分割数

    Returns:
        (下端インデックス, セル内位置) のタプル
    """
    x = np.clip(values, 0.0, 1.0) * (size - 1)
    base = np.clip(np.floor(x), 0, size - 2)
    for b in breaks:
        k = b * (size - 1)
        lo = np.floor(k)
        if abs(k - round(k)) < 1e-9:
            continue  # 格子点上の折れ点
        straddle = base == lo
        base = np.where(straddle & (x < k), lo - 1, base)
        base = np.where(straddle & (x >= k), lo + 1, base)
    return base.astype(np.intp), x - base


def unpack_rgb(packed: npt.NDArray[np.uint32]) -> npt.NDArray[np.uint8]:
    """パック RGB 配列を (..., 3) uint8 に展開。"""
    r = (packed >> 16) & 0xFF
    g = (packed >> 8) & 0xFF
    b = packed & 0xFF
    return np.stack([r, g, b], axis=-1).astype(np.uint8)


def lookup_rgb(
    h: npt.NDArray[np.float64],
    s: npt.NDArray[np.float64],
    l: npt.NDArray[np.float64],  # noqa: E741
) -> npt.NDArray[np.uint8]:
    """共有 LUT の周囲8エントリを三線形補間して RGB を求める。

    HSL→RGB は折れ点の間で各軸について線形なので、折れ点をまたがない
    補間は表の丸め誤差（各エントリ ±0.5）を除いて厳密。外挿の重みを
    含めても誤差は 2 未満に収まり、素朴な変換との差は 2/255 以内になる。

    Args:
        h: 色相 (0〜1)
        s: 彩度 (0〜1)
        l: 明度 (0〜1)

    Returns:
        (..., 3) の uint8 配列 (RGB)
    """
    table = get_lut()
    hi, hf = cell_coordinates(h, HUE_BREAKS)
    si, sf = cell_coordinates(s)
    li, lf = cell_coordinates(l, LIGHTNESS_BREAKS)

    acc = np.zeros(np.shape(h) + (3,), dtype=np.float64)
    for dh, wh in ((0, 1.0 - hf), (1, hf)):
        for ds, ws in ((0, 1.0 - sf), (1, sf)):
            for dl, wl in ((0, 1.0 - lf), (1, lf)):
                corner = unpack_rgb(table[hi + dh, si + ds, li + dl]).astype(np.float64)
                acc += (wh * ws * wl)[..., np.newaxis] * corner
    return np.clip(np.floor(acc + 0.5), 0, 255).astype(np.uint8)
