"""名前付きの Operation プリセットと 'name:arg' 形式の解析。"""

from __future__ import annotations

from enum import Enum
from typing import Callable, TypeVar

from raster_edit.application.artistic_operations import ArtisticStyleOperation, StyleParameters
from raster_edit.application.auto_enhance import AutoEnhanceOperation
from raster_edit.application.background_removal import BackgroundRemovalOperation
from raster_edit.application.color_operations import (
    BrightnessOperation,
    ContrastOperation,
    GrayscaleOperation,
    SaturationOperation,
)
from raster_edit.application.composite import sketch, vintage
from raster_edit.application.drawing_operations import DrawingOperation
from raster_edit.application.filter_operations import (
    BlurOperation,
    EdgeDetectionOperation,
    SharpenOperation,
)
from raster_edit.application.geometry_operations import FlipOperation, RotateOperation
from raster_edit.application.hsl_operations import AdaptiveHslBrightnessOperation
from raster_edit.application.super_resolution import SuperResolutionOperation
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import (
    ArtisticStyle,
    BlurIntensity,
    EdgeDirection,
    EnhancementMode,
    FlipDirection,
    GrayscaleMethod,
    InterpolationAlgorithm,
    UpscaleFactor,
)
from raster_edit.domain.operation import Operation

E = TypeVar("E", bound=Enum)

# 引数なしのプリセット
_PRESETS: dict[str, Callable[[], Operation]] = {
    "rotate_90": lambda: RotateOperation.from_degrees(90),
    "rotate_180": lambda: RotateOperation.from_degrees(180),
    "rotate_270": lambda: RotateOperation.from_degrees(270),
    "flip_horizontal": lambda: FlipOperation(FlipDirection.HORIZONTAL),
    "flip_vertical": lambda: FlipOperation(FlipDirection.VERTICAL),
    "grayscale_average": lambda: GrayscaleOperation(GrayscaleMethod.AVERAGE),
    "grayscale_luminosity": lambda: GrayscaleOperation(GrayscaleMethod.LUMINOSITY),
    "grayscale_desaturation": lambda: GrayscaleOperation(GrayscaleMethod.DESATURATION),
    "oil_painting": lambda: ArtisticStyleOperation(
        ArtisticStyle.OIL_PAINTING, StyleParameters(0.8, 3, 0.5),
    ),
    "watercolor": lambda: ArtisticStyleOperation(
        ArtisticStyle.WATERCOLOR, StyleParameters(0.7, 5, 0.6),
    ),
    "pencil_sketch": lambda: ArtisticStyleOperation(
        ArtisticStyle.PENCIL_SKETCH, StyleParameters(0.9, 2, 0.8),
    ),
    "cartoon": lambda: ArtisticStyleOperation(
        ArtisticStyle.CARTOON, StyleParameters(0.8, 4, 0.3),
    ),
    "mosaic": lambda: ArtisticStyleOperation(
        ArtisticStyle.MOSAIC, StyleParameters(1.0, 5, 0.0),
    ),
    "vintage": vintage,
    "sketch": sketch,
    "remove_background": BackgroundRemovalOperation.auto,
    "super_resolution_2x": SuperResolutionOperation.double,
}


def _parse_float(name: str, arg: str) -> float:
    try:
        return float(arg)
    except ValueError as e:
        raise ConstructionError(name, arg, "number required") from e


def _brightness(arg: str) -> Operation:
    value = _parse_float("brightness", arg)
    if value >= 0:
        return BrightnessOperation.increase(value)
    return BrightnessOperation.decrease(-value)


def _super_resolution(arg: str) -> Operation:
    factor = int(_parse_float("super_resolution", arg))
    try:
        return SuperResolutionOperation(UpscaleFactor(factor), InterpolationAlgorithm.SMART)
    except ValueError as e:
        raise ConstructionError("super_resolution", arg, "factor must be 2, 3 or 4") from e


def _enum_arg(enum_cls: type[E], name: str, arg: str) -> E:
    try:
        return enum_cls[arg.upper()]
    except KeyError as e:
        choices = ", ".join(m.name.lower() for m in enum_cls)
        raise ConstructionError(name, arg, f"choose from {choices}") from e


# 引数付きの操作（'name:arg'）
_PARAMETRIC: dict[str, Callable[[str], Operation]] = {
    "brightness": _brightness,
    "contrast": lambda a: ContrastOperation(_parse_float("contrast", a)),
    "saturation": lambda a: SaturationOperation(_parse_float("saturation", a)),
    "hsl_lightness": lambda a: AdaptiveHslBrightnessOperation(_parse_float("hsl_lightness", a)),
    "sharpen": lambda a: SharpenOperation(_parse_float("sharpen", a)),
    "rotate": lambda a: RotateOperation.from_degrees(int(_parse_float("rotate", a))),
    "text": lambda a: DrawingOperation.text(a, 10, 34),
    "blur": lambda a: BlurOperation(_enum_arg(BlurIntensity, "blur", a)),
    "edges": lambda a: EdgeDetectionOperation(_enum_arg(EdgeDirection, "edges", a)),
    "grayscale": lambda a: GrayscaleOperation(_enum_arg(GrayscaleMethod, "grayscale", a)),
    "auto_enhance": lambda a: AutoEnhanceOperation(_enum_arg(EnhancementMode, "auto_enhance", a)),
    "super_resolution": _super_resolution,
}

# 引数省略時の既定値
_DEFAULT_ARGS = {
    "brightness": "0.2",
    "contrast": "1.2",
    "saturation": "1.2",
    "hsl_lightness": "0.1",
    "sharpen": "0.5",
    "rotate": "90",
    "text": "raster-edit",
    "blur": "medium",
    "edges": "both",
    "grayscale": "luminosity",
    "auto_enhance": "auto",
    "super_resolution": "2",
}


def available_operations() -> list[str]:
    """登録済みの操作名一覧。"""
    return sorted(set(_PRESETS) | set(_PARAMETRIC))


def parse_operation(expr: str) -> Operation:
    """'name' または 'name:arg' 形式から Operation を生成。

    Args:
        expr: 操作指定文字列（例: 'blur:strong', 'brightness:-0.1', 'text:Hello'）

    Returns:
        Operation

    Raises:
        ConstructionError: 未知の名前または不正な引数
    """
    name, _, arg = expr.strip().partition(":")
    key = name.strip().lower().replace("-", "_")
    if key in _PRESETS and not arg:
        return _PRESETS[key]()
    if key in _PARAMETRIC:
        return _PARAMETRIC[key](arg.strip() or _DEFAULT_ARGS[key])
    raise ConstructionError("operation", expr, "unknown operation")
