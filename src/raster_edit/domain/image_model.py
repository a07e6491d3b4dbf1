"""画像ドメインモデル。

RasterImage は読み取り専用の uint8 配列を包む不変オブジェクト。
Operation は入力を書き換えず、常に新しい RasterImage を返す。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
import numpy.typing as npt

from raster_edit.domain.errors import ConstructionError, ErrorCode, ProcessingError

# 出力画像の最大辺長（メモリ上限の目安）
MAX_DIMENSION = 10_000


@dataclass(frozen=True, eq=False)
class RasterImage:
    """ラスター画像。

    pixels は (H, W, 4) の RGBA、または (H, W) の単一チャンネル。
    構築時に書き込み不可フラグを立てるため、入力画像が破壊されることはない。
    """

    pixels: npt.NDArray[np.uint8]

    def __post_init__(self) -> None:
        arr = self.pixels
        if not isinstance(arr, np.ndarray):
            raise ConstructionError("pixels", type(arr).__name__, "numpy array required")
        if arr.dtype != np.uint8:
            raise ConstructionError("pixels.dtype", str(arr.dtype), "uint8 required")
        if arr.ndim == 3:
            if arr.shape[2] != 4:
                raise ConstructionError("pixels.shape", arr.shape, "RGBA (H, W, 4) required")
        elif arr.ndim != 2:
            raise ConstructionError("pixels.shape", arr.shape, "(H, W, 4) or (H, W) required")
        if arr.shape[0] <= 0 or arr.shape[1] <= 0:
            raise ConstructionError("pixels.shape", arr.shape, "width and height must be > 0")
        frozen = arr.copy() if arr.flags.writeable else arr
        frozen.flags.writeable = False
        object.__setattr__(self, "pixels", frozen)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def is_grayscale(self) -> bool:
        return self.pixels.ndim == 2

    def rgba(self) -> npt.NDArray[np.uint8]:
        """書き込み可能な (H, W, 4) RGBA 配列のコピーを返す。

        単一チャンネル画像は R=G=B、不透明として展開する。
        """
        if self.is_grayscale:
            gray = self.pixels
            alpha = np.full_like(gray, 255)
            return np.stack([gray, gray, gray, alpha], axis=-1)
        return self.pixels.copy()

    def rgb(self) -> npt.NDArray[np.uint8]:
        """(H, W, 3) RGB 配列のコピー。"""
        return self.rgba()[:, :, :3]

    def alpha(self) -> npt.NDArray[np.uint8]:
        """(H, W) アルファ配列のコピー。"""
        if self.is_grayscale:
            return np.full(self.pixels.shape, 255, dtype=np.uint8)
        return self.pixels[:, :, 3].copy()

    @classmethod
    def from_rgba(cls, array: npt.ArrayLike) -> RasterImage:
        """任意の数値配列から RasterImage を生成。

        浮動小数は四捨五入し [0, 255] にクリップする。
        (H, W, 3) は不透明 RGBA に展開する。

        Args:
            array: (H, W, 4) / (H, W, 3) / (H, W) の配列

        Returns:
            新しい RasterImage
        """
        arr = np.asarray(array)
        if arr.dtype != np.uint8:
            arr = np.clip(np.floor(arr.astype(np.float64) + 0.5), 0, 255).astype(np.uint8)
        if arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        return cls(arr)

    @classmethod
    def solid(
        cls,
        width: int,
        height: int,
        color: Sequence[int] = (0, 0, 0, 255),
    ) -> RasterImage:
        """単色画像を生成。color は RGB または RGBA。"""
        if width <= 0 or height <= 0:
            raise ConstructionError("size", (width, height), "width and height must be > 0")
        rgba = tuple(color) if len(color) == 4 else tuple(color) + (255,)
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:, :] = np.array(rgba, dtype=np.uint8)
        return cls(arr)

    @classmethod
    def coerce(cls, source: RasterImage | npt.NDArray[np.generic]) -> RasterImage:
        """RasterImage または配列を RasterImage として受け取る。

        空配列や形状不正は適用時エラーとして扱う。
        """
        if isinstance(source, RasterImage):
            return source
        if not isinstance(source, np.ndarray):
            raise ProcessingError(
                "load", f"unsupported image source {type(source).__name__}",
                code=ErrorCode.IMAGE_NOT_LOADED,
            )
        if source.size == 0:
            raise ProcessingError(
                "load", f"empty image {source.shape}", code=ErrorCode.IMAGE_NOT_LOADED,
            )
        try:
            return cls.from_rgba(source)
        except ConstructionError as e:
            raise ProcessingError(
                "load", str(e), code=ErrorCode.IMAGE_NOT_LOADED,
            ) from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class Region:
    """画像上の矩形領域。"""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConstructionError(
                "region", (self.width, self.height), "width and height must be > 0",
            )

    def clip(self, image_width: int, image_height: int) -> Region | None:
        """画像範囲との共通部分を返す。空なら None。"""
        x0 = max(self.x, 0)
        y0 = max(self.y, 0)
        x1 = min(self.x + self.width, image_width)
        y1 = min(self.y + self.height, image_height)
        if x1 <= x0 or y1 <= y0:
            return None
        return Region(x0, y0, x1 - x0, y1 - y0)

    def slices(self) -> tuple[slice, slice]:
        """numpy インデックス用の (行, 列) スライス。"""
        return (slice(self.y, self.y + self.height), slice(self.x, self.x + self.width))


# =============================================================================
# 操作パラメータ用の列挙型
# =============================================================================


class BrightnessMode(Enum):
    """明るさ調整の方向。"""

    INCREASE = "increase"
    DECREASE = "decrease"


class GrayscaleMethod(Enum):
    """グレースケール化の重み付け方式。"""

    AVERAGE = "average"
    LUMINOSITY = "luminosity"
    DESATURATION = "desaturation"


class HslAdjustmentMode(Enum):
    """HSL 明度調整のモード。"""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"


class HslAlgorithm(Enum):
    """HSL 明度調整の実装。"""

    BASIC = "basic"
    LUT = "lut"
    ACCELERATED = "accelerated"


class PerformanceMode(Enum):
    """実装選択の方針。"""

    QUALITY = "quality"
    BALANCED = "balanced"
    SPEED = "speed"


class BlurIntensity(Enum):
    """ぼかし強度とカーネルサイズ。"""

    LIGHT = 3
    MEDIUM = 5
    STRONG = 7

    @property
    def kernel_size(self) -> int:
        return self.value


class EdgeDirection(Enum):
    """エッジ検出の方向。"""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    BOTH = "both"


class ArtisticStyle(Enum):
    """芸術風フィルタの種類。"""

    OIL_PAINTING = "oil_painting"
    WATERCOLOR = "watercolor"
    PENCIL_SKETCH = "pencil_sketch"
    CARTOON = "cartoon"
    MOSAIC = "mosaic"


class EnhancementMode(Enum):
    """自動補正のモード。"""

    AUTO = "auto"
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    LOW_LIGHT = "low_light"


class FillAlgorithm(Enum):
    """コンテンツ補完（インペインティング）方式。"""

    PATCH_BASED = "patch_based"
    DIFFUSION_BASED = "diffusion_based"
    HYBRID = "hybrid"


class RemovalAlgorithm(Enum):
    """背景除去方式。"""

    COLOR_THRESHOLD = "color_threshold"
    ADAPTIVE = "adaptive"
    EDGE_AWARE = "edge_aware"


class FlipDirection(Enum):
    """反転方向。HORIZONTAL は左右反転。"""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class MirrorDirection(Enum):
    """ミラー方向。置き換えられる側を表す。"""

    VERTICAL_LEFT = "vertical_left"
    VERTICAL_RIGHT = "vertical_right"
    HORIZONTAL_TOP = "horizontal_top"
    HORIZONTAL_BOTTOM = "horizontal_bottom"


class RotationAngle(Enum):
    """時計回りの回転角。"""

    ROTATE_90 = 90
    ROTATE_180 = 180
    ROTATE_270 = 270

    @property
    def degrees(self) -> int:
        return self.value


class ScaleMode(Enum):
    """スケーリング方式。"""

    STRETCH = "stretch"
    KEEP_ASPECT_RATIO = "keep_aspect_ratio"
    FIT_WIDTH = "fit_width"
    FIT_HEIGHT = "fit_height"


class ScaleQuality(Enum):
    """スケーリング品質。"""

    FAST = "fast"
    BALANCED = "balanced"
    HIGH_QUALITY = "high_quality"


class UpscaleFactor(Enum):
    """超解像の倍率。"""

    X2 = 2
    X3 = 3
    X4 = 4

    @property
    def multiplier(self) -> int:
        return self.value


class InterpolationAlgorithm(Enum):
    """超解像の補間方式。"""

    BILINEAR = "bilinear"
    BICUBIC = "bicubic"
    LANCZOS = "lanczos"
    SMART = "smart"


class DrawingType(Enum):
    """描画要素の種類。"""

    BRUSH = "brush"
    TEXT = "text"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    LINE = "line"
    ARROW = "arrow"


class BatchMode(Enum):
    """バッチ処理のモード。"""

    SINGLE_OPERATION = "single_operation"
    OPERATION_SEQUENCE = "operation_sequence"
    CUSTOM_PROCESSING = "custom_processing"
