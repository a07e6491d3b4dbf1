"""畳み込みカーネル定義。

奇数サイズの正方行列。中心が一意に定まることを構築時に保証する。
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from raster_edit.domain.errors import ConstructionError


class Kernel:
    """畳み込みカーネル（奇数辺の正方 float64 行列）。"""

    def __init__(self, weights: npt.ArrayLike, name: str = "kernel") -> None:
        arr = np.array(weights, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise ConstructionError("weights", arr.shape, "square matrix required")
        if arr.shape[0] % 2 == 0:
            raise ConstructionError("weights", arr.shape, "odd side length required")
        if not np.all(np.isfinite(arr)):
            raise ConstructionError("weights", name, "weights must be finite")
        arr.flags.writeable = False
        self._weights = arr
        self._name = name

    @property
    def weights(self) -> npt.NDArray[np.float64]:
        return self._weights

    @property
    def size(self) -> int:
        return int(self._weights.shape[0])

    @property
    def center(self) -> int:
        return self.size // 2

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"Kernel(name={self._name!r}, size={self.size})"


def gaussian_kernel(size: int, sigma: float | None = None) -> Kernel:
    """ガウシアンカーネルを生成。

    exp(-(dx²+dy²)/(2σ²)) を合計1に正規化する。

    Args:
        size: カーネル辺長（奇数）
        sigma: 標準偏差。None の場合 size/3

    Returns:
        正規化済み Kernel
    """
    if size <= 0 or size % 2 == 0:
        raise ConstructionError("size", size, "positive odd size required")
    if sigma is None:
        sigma = size / 3.0
    if sigma <= 0.0:
        raise ConstructionError("sigma", sigma, "must be > 0")
    half = size // 2
    d = np.arange(size, dtype=np.float64) - half
    dx, dy = np.meshgrid(d, d)
    weights = np.exp(-(dx * dx + dy * dy) / (2.0 * sigma * sigma))
    weights /= weights.sum()
    return Kernel(weights, name=f"gaussian{size}")


# --- 固定カーネル ---

SOBEL_X = Kernel(
    [[-1.0, 0.0, 1.0],
     [-2.0, 0.0, 2.0],
     [-1.0, 0.0, 1.0]],
    name="sobel_x",
)

SOBEL_Y = Kernel(
    [[-1.0, -2.0, -1.0],
     [0.0, 0.0, 0.0],
     [1.0, 2.0, 1.0]],
    name="sobel_y",
)

LAPLACIAN = Kernel(
    [[-1.0, -1.0, -1.0],
     [-1.0, 8.0, -1.0],
     [-1.0, -1.0, -1.0]],
    name="laplacian",
)
