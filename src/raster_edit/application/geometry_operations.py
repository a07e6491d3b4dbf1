"""幾何変換操作。

切り抜き・回転・反転・ミラーは補間なしの厳密な画素再配置。
スケーリングは Pillow のリサンプリングを使う。
"""

from __future__ import annotations

import numpy as np

from raster_edit.domain.errors import ConstructionError, ErrorCode, ProcessingError
from raster_edit.domain.image_model import (
    MAX_DIMENSION,
    FlipDirection,
    MirrorDirection,
    RasterImage,
    Region,
    RotationAngle,
    ScaleMode,
    ScaleQuality,
)
from raster_edit.domain.operation import Operation, require_range
from raster_edit.infrastructure.image_io import resize_rgba
from raster_edit.infrastructure.interpolation import nearest_indices


class CropOperation(Operation):
    """切り抜き。要求矩形は画像範囲にクリップする。"""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        self._region = Region(x, y, width, height)

    @property
    def region(self) -> Region:
        return self._region

    @property
    def name(self) -> str:
        r = self._region
        return f"crop ({r.x}, {r.y}, {r.width}x{r.height})"

    def _apply(self, image: RasterImage) -> RasterImage:
        clipped = self._region.clip(image.width, image.height)
        if clipped is None:
            raise ProcessingError(
                self.name, f"region lies outside {image.width}x{image.height} image",
                code=ErrorCode.INVALID_REGION,
            )
        return RasterImage(image.pixels[clipped.slices()].copy())


class RotateOperation(Operation):
    """時計回りの 90° 単位回転。"""

    def __init__(self, angle: RotationAngle = RotationAngle.ROTATE_90) -> None:
        if not isinstance(angle, RotationAngle):
            raise ConstructionError("angle", angle, "RotationAngle required")
        self._angle = angle

    @classmethod
    def from_degrees(cls, degrees: int) -> RotateOperation:
        """90 の倍数（0 以外）の角度から生成。負値は反時計回り。"""
        if degrees % 90 != 0:
            raise ConstructionError("degrees", degrees, "must be a multiple of 90")
        normalized = degrees % 360
        if normalized == 0:
            raise ConstructionError("degrees", degrees, "rotation must not be a no-op")
        return cls(RotationAngle(normalized))

    @property
    def angle(self) -> RotationAngle:
        return self._angle

    @property
    def name(self) -> str:
        return f"rotate {self._angle.degrees}°"

    def _apply(self, image: RasterImage) -> RasterImage:
        # np.rot90 の k は反時計回り
        k = -(self._angle.degrees // 90)
        return RasterImage(np.rot90(image.pixels, k=k).copy())


class FlipOperation(Operation):
    """反転。HORIZONTAL は左右、VERTICAL は上下。"""

    def __init__(self, direction: FlipDirection = FlipDirection.HORIZONTAL) -> None:
        if not isinstance(direction, FlipDirection):
            raise ConstructionError("direction", direction, "FlipDirection required")
        self._direction = direction

    @property
    def name(self) -> str:
        return f"flip {self._direction.value}"

    def _apply(self, image: RasterImage) -> RasterImage:
        if self._direction is FlipDirection.HORIZONTAL:
            return RasterImage(image.pixels[:, ::-1].copy())
        return RasterImage(image.pixels[::-1].copy())


def _mirror_indices(length: int, split: int, replace_leading: bool) -> np.ndarray:
    """ミラー用のソースインデックス。

    replace_leading なら [0, split) を [split, length) の鏡像で置き換え、
    そうでなければ [split, length) を [0, split) の鏡像で置き換える。
    長さが異なる側は最近傍で伸縮する。
    """
    idx = np.arange(length)
    if replace_leading:
        dst_n, src_start, src_n = split, split, length - split
        # 分割線に近い画素ほど分割線の反対側の近傍から取る
        local = nearest_indices(src_n, dst_n)[::-1]
        idx[:split] = src_start + local
    else:
        dst_n, src_n = length - split, split
        local = nearest_indices(src_n, dst_n)[::-1]
        idx[split:] = local
    return idx


class MirrorOperation(Operation):
    """ミラー。分割線を挟んだ片側を、もう片側の鏡像で置き換える。"""

    def __init__(
        self,
        direction: MirrorDirection = MirrorDirection.VERTICAL_LEFT,
        split_ratio: float = 0.5,
    ) -> None:
        if not isinstance(direction, MirrorDirection):
            raise ConstructionError("direction", direction, "MirrorDirection required")
        self._direction = direction
        self._split_ratio = require_range(
            "split_ratio", split_ratio, 0.0, 1.0,
            low_inclusive=False, high_inclusive=False,
        )

    @property
    def name(self) -> str:
        return f"mirror {self._direction.value} @{self._split_ratio:.2f}"

    def _apply(self, image: RasterImage) -> RasterImage:
        vertical = self._direction in (
            MirrorDirection.VERTICAL_LEFT, MirrorDirection.VERTICAL_RIGHT,
        )
        length = image.width if vertical else image.height
        if length < 2:
            return RasterImage(image.pixels.copy())
        split = min(max(int(length * self._split_ratio), 1), length - 1)
        leading = self._direction in (
            MirrorDirection.VERTICAL_LEFT, MirrorDirection.HORIZONTAL_TOP,
        )
        idx = _mirror_indices(length, split, leading)
        if vertical:
            return RasterImage(image.pixels[:, idx].copy())
        return RasterImage(image.pixels[idx].copy())


class ScaleOperation(Operation):
    """スケーリング。

    出力寸法は四捨五入、最小 1px、最大 MAX_DIMENSION に制限する。
    """

    def __init__(
        self,
        width: int,
        height: int,
        mode: ScaleMode = ScaleMode.KEEP_ASPECT_RATIO,
        quality: ScaleQuality = ScaleQuality.BALANCED,
    ) -> None:
        require_range("width", width, 0, MAX_DIMENSION, low_inclusive=False)
        require_range("height", height, 0, MAX_DIMENSION, low_inclusive=False)
        if not isinstance(mode, ScaleMode):
            raise ConstructionError("mode", mode, "ScaleMode required")
        if not isinstance(quality, ScaleQuality):
            raise ConstructionError("quality", quality, "ScaleQuality required")
        self._width = int(width)
        self._height = int(height)
        self._mode = mode
        self._quality = quality

    @property
    def name(self) -> str:
        return f"scale {self._width}x{self._height} ({self._mode.value})"

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        """入力サイズから出力サイズを算出。"""
        sx = self._width / width
        sy = self._height / height
        if self._mode is ScaleMode.STRETCH:
            w, h = self._width, self._height
        elif self._mode is ScaleMode.KEEP_ASPECT_RATIO:
            s = min(sx, sy)
            w, h = width * s, height * s
        elif self._mode is ScaleMode.FIT_WIDTH:
            w, h = self._width, height * sx
        else:
            w, h = width * sy, self._height

        def bound(v: float) -> int:
            return max(1, min(MAX_DIMENSION, int(v + 0.5)))

        return bound(w), bound(h)

    def _apply(self, image: RasterImage) -> RasterImage:
        w, h = self.target_size(image.width, image.height)
        if (w, h) == image.size:
            return RasterImage(image.rgba())
        return resize_rgba(image, w, h, self._quality)
