"""画像I/O（Pillow ベース）。

画像の読み込み、保存、品質別リサイズを担当。
内部表現は常に RGBA の RasterImage。
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from raster_edit.domain.errors import ErrorCode, ProcessingError
from raster_edit.domain.image_model import RasterImage, ScaleQuality

# アルファを保存できない形式
_OPAQUE_SUFFIXES = frozenset({".jpg", ".jpeg", ".bmp"})

_RESAMPLING = {
    ScaleQuality.FAST: Image.Resampling.NEAREST,
    ScaleQuality.BALANCED: Image.Resampling.BILINEAR,
    ScaleQuality.HIGH_QUALITY: Image.Resampling.LANCZOS,
}


def from_pil(img: Image.Image) -> RasterImage:
    """PIL Image を RGBA の RasterImage に変換。"""
    rgba = img.convert("RGBA")
    return RasterImage(np.array(rgba, dtype=np.uint8))


def to_pil(image: RasterImage) -> Image.Image:
    """RasterImage を RGBA の PIL Image に変換。"""
    return Image.fromarray(image.rgba())


def load_image(path: str | Path) -> RasterImage:
    """画像ファイルを読み込み、RGBA の RasterImage として返す。

    Args:
        path: 画像ファイルパス (PNG, JPEG, BMP, GIF等)

    Returns:
        RasterImage

    Raises:
        ProcessingError: 読み込みに失敗した場合
    """
    try:
        with Image.open(path) as img:
            return from_pil(img)
    except OSError as e:
        raise ProcessingError(
            "load", f"cannot read {path}: {e}", code=ErrorCode.IMAGE_NOT_LOADED,
        ) from e


def save_image(image: RasterImage, path: str | Path) -> None:
    """RasterImage を画像ファイルとして保存。

    JPEG/BMP はアルファを落として RGB で保存する。

    Args:
        image: 保存する画像
        path: 保存先パス (PNG, JPEG, BMP等)
    """
    img = to_pil(image)
    if Path(path).suffix.lower() in _OPAQUE_SUFFIXES:
        img = img.convert("RGB")
    img.save(path)


def resize_rgba(
    image: RasterImage,
    target_width: int,
    target_height: int,
    quality: ScaleQuality = ScaleQuality.BALANCED,
) -> RasterImage:
    """画像をリサイズ。

    Args:
        image: 入力画像
        target_width: 目標幅
        target_height: 目標高さ
        quality: 補間品質

    Returns:
        リサイズ済みの RasterImage
    """
    img = to_pil(image)
    img = img.resize((target_width, target_height), _RESAMPLING[quality])
    return RasterImage(np.array(img, dtype=np.uint8))
