"""背景分離（マッティング）。

背景色推定、色距離による背景判定、距離変換によるアルファのフェザリング。
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
from scipy import ndimage

from raster_edit.domain.color import RGB
from raster_edit.infrastructure.color_space import to_gray_bt601
from raster_edit.infrastructure.convolution import sobel_magnitude

# フェザリング強度 1.0 に対応する半径 [px]
MAX_FEATHER_RADIUS = 10.0
# EDGE_AWARE で背景の連結を遮るエッジ強度
_EDGE_BARRIER = 96.0


def estimate_border_color(rgba: npt.NDArray[np.uint8]) -> RGB:
    """画像の上下左右4辺の平均色を背景色として推定。

    Args:
        rgba: (H, W, 3 or 4) uint8

    Returns:
        推定背景色
    """
    rgb = rgba[:, :, :3].astype(np.float64)
    border = np.concatenate([
        rgb[0, :, :],
        rgb[-1, :, :],
        rgb[:, 0, :],
        rgb[:, -1, :],
    ])
    mean = border.mean(axis=0)
    return RGB(int(mean[0]), int(mean[1]), int(mean[2]))


def background_mask(
    rgba: npt.NDArray[np.uint8],
    background: RGB,
    tolerance: float,
) -> npt.NDArray[np.bool_]:
    """背景色とのマンハッタン距離がしきい値以下の画素マスク。

    しきい値 = int(255 · 3 · tolerance)

    Args:
        rgba: (H, W, 3 or 4) uint8
        background: 背景色
        tolerance: 許容度 0〜1

    Returns:
        (H, W) bool 配列。True が背景。
    """
    threshold = int(255 * 3 * tolerance)
    bg = np.array(background.to_tuple(), dtype=np.int32)
    dist = np.abs(rgba[:, :, :3].astype(np.int32) - bg).sum(axis=-1)
    return dist <= threshold


def border_connected(
    mask: npt.NDArray[np.bool_],
    rgba: npt.NDArray[np.uint8],
) -> npt.NDArray[np.bool_]:
    """画像端に連結し、強いエッジ上にない背景画素のみを残す。

    Args:
        mask: (H, W) 背景候補マスク
        rgba: (H, W, 3 or 4) uint8

    Returns:
        (H, W) bool 配列
    """
    edges = sobel_magnitude(to_gray_bt601(rgba)) > _EDGE_BARRIER
    candidates = mask & ~edges
    labels, _ = ndimage.label(candidates)
    border_labels = np.unique(np.concatenate([
        labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1],
    ]))
    border_labels = border_labels[border_labels != 0]
    return np.isin(labels, border_labels)


def feather_alpha(
    alpha: npt.NDArray[np.uint8],
    transparent: npt.NDArray[np.bool_],
    feathering: float,
) -> npt.NDArray[np.uint8]:
    """透明画素のアルファを最寄り不透明画素までの距離で補間。

    alpha = 255 · max(0, 1 - d / radius)、radius = feathering · MAX_FEATHER_RADIUS。
    d はユークリッド距離変換による実距離。

    Args:
        alpha: (H, W) uint8 現在のアルファ
        transparent: (H, W) フェザリング対象（背景）マスク
        feathering: フェザリング強度 0〜1

    Returns:
        (H, W) uint8 新しいアルファ
    """
    radius = feathering * MAX_FEATHER_RADIUS
    if radius <= 0.0 or not transparent.any() or transparent.all():
        return alpha.copy()
    opaque = alpha == 255
    if not opaque.any():
        return alpha.copy()
    # 不透明画素を 0 とした距離変換 = 最寄り不透明画素までの距離
    distance = ndimage.distance_transform_edt(~opaque)
    factor = np.clip(1.0 - distance / radius, 0.0, 1.0)
    feathered = np.floor(255.0 * factor).astype(np.uint8)
    result = alpha.copy()
    result[transparent] = np.maximum(alpha[transparent], feathered[transparent])
    return result
