"""パッチ合成によるインペインティング。

候補パッチ収集、ランダムサンプリングによる最良パッチ探索、
拡散による低周波補完を提供する。全て float64 の RGBA 配列上で動作する。
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from raster_edit.domain.image_model import Region
from raster_edit.infrastructure.convolution import box_sum

logger = logging.getLogger(__name__)

# 候補パッチ中心の間引き間隔
SAMPLE_STRIDE = 2


def region_mask(height: int, width: int, region: Region) -> npt.NDArray[np.bool_]:
    """補完対象領域のブールマスク。"""
    mask = np.zeros((height, width), dtype=bool)
    mask[region.slices()] = True
    return mask


def collect_patch_centers(
    mask: npt.NDArray[np.bool_],
    patch_size: int,
    border_margin: int,
    stride: int = SAMPLE_STRIDE,
) -> npt.NDArray[np.intp]:
    """候補パッチの中心座標を収集。

    パッチは画像内に完全に収まり、対象領域と重ならないものに限る
    （部分的なパッチは埋めずに除外）。

    Args:
        mask: (H, W) 対象領域マスク
        patch_size: パッチ辺長（奇数）
        border_margin: 画像端からの最小距離
        stride: 中心の間引き間隔

    Returns:
        (N, 2) の (y, x) 配列
    """
    height, width = mask.shape
    half = patch_size // 2
    margin = max(border_margin, half)
    # パッチ内に対象画素を含む中心を除外
    touches_target = box_sum(mask.astype(np.float64), patch_size) > 0.0

    ys = np.arange(margin, height - margin, stride)
    xs = np.arange(margin, width - margin, stride)
    if ys.size == 0 or xs.size == 0:
        return np.empty((0, 2), dtype=np.intp)
    grid_y, grid_x = np.meshgrid(ys, xs, indexing="ij")
    keep = ~touches_target[grid_y, grid_x]
    return np.stack([grid_y[keep], grid_x[keep]], axis=-1).astype(np.intp)


def diffuse(
    rgba: npt.NDArray[np.float64],
    mask: npt.NDArray[np.bool_],
    rounds: int,
) -> npt.NDArray[np.float64]:
    """拡散補完。対象画素を 3×3 近傍平均で繰り返し置き換える。

    各ラウンドは直前ラウンド全体のスナップショットから読む。

    Args:
        rgba: (H, W, 4) float64
        mask: (H, W) 対象領域マスク
        rounds: 反復回数

    Returns:
        補完後の (H, W, 4) float64
    """
    result = rgba.copy()
    count = box_sum(np.ones(mask.shape, dtype=np.float64), 3)
    for _ in range(rounds):
        snapshot = result.copy()
        for c in range(snapshot.shape[2]):
            mean = box_sum(snapshot[:, :, c], 3) / count
            result[:, :, c][mask] = mean[mask]
    return result


def patch_fill(
    rgba: npt.NDArray[np.float64],
    region: Region,
    centers: npt.NDArray[np.intp],
    patch_size: int,
    sample_count: int,
    rng: np.random.Generator,
) -> npt.NDArray[np.float64]:
    """パッチ合成補完。

    対象画素毎に最大 sample_count 個の候補パッチを無作為抽出し、
    近傍との RGB 二乗距離の総和が最小のパッチ中心値で塗る。

    Args:
        rgba: (H, W, 4) float64
        region: 対象領域（画像範囲内にクリップ済み）
        centers: collect_patch_centers の結果
        patch_size: パッチ辺長（奇数）
        sample_count: 画素あたりの最大候補数
        rng: 乱数生成器

    Returns:
        補完後の (H, W, 4) float64
    """
    result = rgba.copy()
    if len(centers) == 0:
        logger.warning("No candidate patches outside %s; patch stage skipped", region)
        return result

    height, width = result.shape[:2]
    half = patch_size // 2
    offsets = np.arange(-half, half + 1)
    off_y, off_x = np.meshgrid(offsets, offsets, indexing="ij")
    off_y = off_y.ravel()
    off_x = off_x.ravel()
    k = min(sample_count, len(centers))

    for y in range(region.y, region.y + region.height):
        for x in range(region.x, region.x + region.width):
            ny = y + off_y
            nx = x + off_x
            valid = (ny >= 0) & (ny < height) & (nx >= 0) & (nx < width)
            dy = off_y[valid]
            dx = off_x[valid]
            target = result[y + dy, x + dx, :3]  # (M, 3)

            picks = centers[rng.integers(0, len(centers), size=k)]  # (K, 2)
            cand = result[picks[:, 0:1] + dy, picks[:, 1:2] + dx, :3]  # (K, M, 3)
            diff = cand - target[np.newaxis]
            scores = np.sum(diff * diff, axis=(1, 2))
            best = picks[int(np.argmin(scores))]
            result[y, x] = result[best[0], best[1]]
    return result
