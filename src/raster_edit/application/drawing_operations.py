"""図形・文字の描画。

ブラシ軌跡・文字・矩形・円・直線・矢印を Pillow の ImageDraw で描く。
要素毎に被覆マスクを作り、色と不透明度を付けて入力のコピーへ
アルファ合成する。入力画像は変更しない。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence, Union

from PIL import Image, ImageDraw, ImageFont

from raster_edit.domain.color import BLACK, RGB, parse_color
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import DrawingType, RasterImage
from raster_edit.domain.operation import Operation, clamp
from raster_edit.infrastructure.image_io import from_pil, to_pil

logger = logging.getLogger(__name__)

Point = tuple[int, int]
ColorLike = Union[str, tuple[int, int, int], RGB]
Font = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

DEFAULT_FONT = "DejaVuSans.ttf"
# 斜体のせん断係数
_ITALIC_SHEAR = 0.2


@dataclass(frozen=True)
class BrushStyle:
    """線の描画スタイル。範囲外の値はクランプされる。

    Attributes:
        color: 線の色
        thickness: 線幅 (1〜50 px)
        opacity: 不透明度 (0.1〜1.0)
    """

    color: RGB = BLACK
    thickness: int = 3
    opacity: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", parse_color(self.color))
        object.__setattr__(self, "thickness", int(clamp(int(self.thickness), 1, 50)))
        object.__setattr__(self, "opacity", clamp(float(self.opacity), 0.1, 1.0))


@dataclass(frozen=True)
class TextStyle:
    """文字の描画スタイル。font_size は 8〜100 にクランプされる。

    フォントが見つからない場合は Pillow の既定フォントを同じサイズで使う。
    """

    font_name: str = DEFAULT_FONT
    font_size: int = 24
    color: RGB = BLACK
    bold: bool = False
    italic: bool = False
    underline: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "font_name", self.font_name or DEFAULT_FONT)
        object.__setattr__(self, "font_size", int(clamp(int(self.font_size), 8, 100)))
        object.__setattr__(self, "color", parse_color(self.color))


@dataclass(frozen=True)
class DrawingElement:
    """描画要素。

    TEXT は文字列と基準点（ベースライン左端）1点、それ以外は2点以上を要する。
    スタイル省略時は既定スタイルを使う。
    """

    kind: DrawingType
    points: tuple[Point, ...]
    text: str = ""
    brush: BrushStyle = field(default_factory=BrushStyle)
    text_style: TextStyle = field(default_factory=TextStyle)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, DrawingType):
            raise ConstructionError("kind", self.kind, "DrawingType required")
        points = tuple((int(x), int(y)) for x, y in self.points)
        object.__setattr__(self, "points", points)
        if self.kind is DrawingType.TEXT:
            if not self.text:
                raise ConstructionError("text", self.text, "must not be empty")
            if not points:
                raise ConstructionError("points", 0, "text needs an anchor point")
        elif len(points) < 2:
            raise ConstructionError(
                "points", len(points), f"{self.kind.value} needs at least 2 points",
            )

    @property
    def color(self) -> RGB:
        if self.kind is DrawingType.TEXT:
            return self.text_style.color
        return self.brush.color

    @property
    def opacity(self) -> float:
        if self.kind is DrawingType.TEXT:
            return 1.0
        return self.brush.opacity


def _bounds(p1: Point, p2: Point) -> tuple[int, int, int, int]:
    return min(p1[0], p2[0]), min(p1[1], p2[1]), max(p1[0], p2[0]), max(p1[1], p2[1])


def arrow_head(start: Point, end: Point, size: int) -> list[Point] | None:
    """矢印の頭（end を頂点とする三角形）。長さ 0 の矢印は None。

    両翼は軸から ±30° 開き、長さは size。
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0 and dy == 0:
        return None
    angle = math.atan2(dy, dx)
    wings = [
        (round(end[0] - size * math.cos(angle + sign * math.pi / 6)),
         round(end[1] - size * math.sin(angle + sign * math.pi / 6)))
        for sign in (-1, 1)
    ]
    return [end, *wings]


def load_font(style: TextStyle) -> Font:
    """TextStyle のフォントを読み込む。見つからなければ既定フォント。"""
    try:
        return ImageFont.truetype(style.font_name, style.font_size)
    except OSError:
        logger.debug("font %s not found; using default", style.font_name)
        return ImageFont.load_default(size=style.font_size)


def _text_mask(size: tuple[int, int], element: DrawingElement) -> Image.Image:
    style = element.text_style
    font = load_font(style)
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    x, y = element.points[0]
    anchor = "ls" if isinstance(font, ImageFont.FreeTypeFont) else None
    stroke = max(1, style.font_size // 24) if style.bold else 0
    draw.text((x, y), element.text, fill=255, font=font, anchor=anchor,
              stroke_width=stroke, stroke_fill=255)
    if style.underline:
        left, _, right, _ = draw.textbbox((x, y), element.text, font=font, anchor=anchor)
        offset = max(2, style.font_size // 10)
        draw.line([(left, y + offset), (right, y + offset)], fill=255,
                  width=max(1, style.font_size // 15))
    if style.italic:
        # ベースラインを軸に上側を右へ傾ける
        mask = mask.transform(
            size, Image.Transform.AFFINE,
            (1.0, _ITALIC_SHEAR, -_ITALIC_SHEAR * y, 0.0, 1.0, 0.0),
            resample=Image.Resampling.BILINEAR,
        )
    return mask


def element_mask(size: tuple[int, int], element: DrawingElement) -> Image.Image:
    """要素の被覆マスク（"L" モード、255 = 描画）を作る。

    Args:
        size: (幅, 高さ)
        element: 描画要素

    Returns:
        被覆マスク
    """
    if element.kind is DrawingType.TEXT:
        return _text_mask(size, element)

    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    width = element.brush.thickness
    points = list(element.points)
    p1, p2 = points[0], points[1]

    if element.kind is DrawingType.BRUSH:
        draw.line(points, fill=255, width=width, joint="curve")
        # 丸い端点
        r = width / 2.0
        for px, py in (points[0], points[-1]):
            draw.ellipse([px - r, py - r, px + r, py + r], fill=255)
    elif element.kind is DrawingType.RECTANGLE:
        draw.rectangle(_bounds(p1, p2), outline=255, width=width)
    elif element.kind is DrawingType.CIRCLE:
        x0, y0, x1, y1 = _bounds(p1, p2)
        diameter = min(x1 - x0, y1 - y0)
        draw.ellipse([x0, y0, x0 + diameter, y0 + diameter], outline=255, width=width)
    elif element.kind is DrawingType.LINE:
        draw.line([p1, p2], fill=255, width=width)
    else:
        draw.line([p1, p2], fill=255, width=width)
        head = arrow_head(p1, p2, width * 2)
        if head is not None:
            draw.polygon(head, fill=255)
    return mask


class DrawingOperation(Operation):
    """描画要素を順に画像へ合成する。要素が空なら入力のコピーを返す。"""

    def __init__(self, elements: Sequence[DrawingElement] = ()) -> None:
        for element in elements:
            if not isinstance(element, DrawingElement):
                raise ConstructionError("elements", element, "DrawingElement required")
        self._elements: tuple[DrawingElement, ...] = tuple(elements)

    @classmethod
    def brush(
        cls,
        points: Sequence[Point],
        color: ColorLike = BLACK,
        thickness: int = 3,
    ) -> DrawingOperation:
        """単一のブラシ軌跡。"""
        style = BrushStyle(parse_color(color), thickness, 1.0)
        return cls([DrawingElement(DrawingType.BRUSH, tuple(points), brush=style)])

    @classmethod
    def text(
        cls,
        text: str,
        x: int,
        y: int,
        font_name: str = DEFAULT_FONT,
        font_size: int = 24,
        color: ColorLike = BLACK,
    ) -> DrawingOperation:
        """(x, y) をベースライン左端とする単一の文字列。"""
        style = TextStyle(font_name, font_size, parse_color(color))
        return cls([DrawingElement(DrawingType.TEXT, ((x, y),), text, text_style=style)])

    @property
    def elements(self) -> tuple[DrawingElement, ...]:
        return self._elements

    @property
    def name(self) -> str:
        if not self._elements:
            return "drawing"
        return f"drawing ({self._elements[0].kind.value}, {len(self._elements)} elements)"

    def _apply(self, image: RasterImage) -> RasterImage:
        canvas = to_pil(image)
        for element in self._elements:
            mask = element_mask(canvas.size, element)
            opacity = element.opacity
            if opacity < 1.0:
                mask = mask.point(lambda v: int(v * opacity + 0.5))
            layer = Image.new("RGBA", canvas.size, element.color.to_tuple() + (0,))
            layer.putalpha(mask)
            canvas = Image.alpha_composite(canvas, layer)
        return from_pil(canvas)
