"""drawing_operations.py のテスト。"""

import numpy as np
import pytest

from raster_edit.application.drawing_operations import (
    DEFAULT_FONT,
    BrushStyle,
    DrawingElement,
    DrawingOperation,
    TextStyle,
    arrow_head,
)
from raster_edit.domain.color import BLACK, RGB
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import DrawingType, RasterImage


def _white(width: int = 40, height: int = 40) -> RasterImage:
    return RasterImage.solid(width, height, (255, 255, 255))


def _dark(image: RasterImage) -> np.ndarray:
    """いずれかのチャンネルが 128 未満の画素。"""
    return np.any(image.rgb() < 128, axis=2)


def _draw(kind: DrawingType, points, thickness: int = 1, image: RasterImage | None = None):
    element = DrawingElement(kind, points, brush=BrushStyle(BLACK, thickness))
    return DrawingOperation([element]).apply(image if image is not None else _white())


class TestStyles:
    def test_brush_clamped(self) -> None:
        low = BrushStyle(thickness=0, opacity=0.0)
        high = BrushStyle(thickness=99, opacity=2.0)
        assert (low.thickness, low.opacity) == (1, pytest.approx(0.1))
        assert (high.thickness, high.opacity) == (50, 1.0)

    def test_brush_color_parsed(self) -> None:
        assert BrushStyle("#ff0000").color == RGB(255, 0, 0)

    def test_text_size_clamped(self) -> None:
        assert TextStyle(font_size=2).font_size == 8
        assert TextStyle(font_size=500).font_size == 100

    def test_text_defaults(self) -> None:
        style = TextStyle(font_name="")
        assert style.font_name == DEFAULT_FONT
        assert style.color == BLACK
        assert not (style.bold or style.italic or style.underline)


class TestDrawingElement:
    def test_shape_needs_two_points(self) -> None:
        with pytest.raises(ConstructionError):
            DrawingElement(DrawingType.LINE, ((1, 1),))

    def test_text_needs_text(self) -> None:
        with pytest.raises(ConstructionError):
            DrawingElement(DrawingType.TEXT, ((1, 1),), "")

    def test_text_needs_anchor(self) -> None:
        with pytest.raises(ConstructionError):
            DrawingElement(DrawingType.TEXT, (), "hello")

    def test_kind_must_be_enum(self) -> None:
        with pytest.raises(ConstructionError):
            DrawingElement("line", ((0, 0), (1, 1)))  # type: ignore[arg-type]

    def test_points_normalized(self) -> None:
        element = DrawingElement(DrawingType.LINE, [(1.0, 2.0), (3, 4)])
        assert element.points == ((1, 2), (3, 4))


class TestArrowHead:
    def test_horizontal(self) -> None:
        assert arrow_head((5, 20), (30, 20), 4) == [(30, 20), (27, 22), (27, 18)]

    def test_zero_length(self) -> None:
        assert arrow_head((5, 5), (5, 5), 4) is None


class TestShapes:
    def test_rectangle_outline(self) -> None:
        out = _draw(DrawingType.RECTANGLE, ((30, 20), (5, 5)))
        dark = _dark(out)
        assert dark[5, 5] and dark[20, 30] and dark[12, 5] and dark[5, 17]
        assert not dark[12, 17]
        assert not dark[25, 35]

    def test_circle_uses_shorter_side(self) -> None:
        out = _draw(DrawingType.CIRCLE, ((0, 0), (20, 30)))
        dark = _dark(out)
        assert dark[0:2, 10].any()
        assert dark[10, 0:2].any()
        assert not dark[10, 10]
        assert not dark[21:, :].any()

    def test_line(self) -> None:
        out = _draw(DrawingType.LINE, ((2, 10), (30, 10)), thickness=3)
        dark = _dark(out)
        assert dark[10, 4:29].all()
        assert not dark[14, :].any()
        assert not dark[10, 33:].any()

    def test_arrow_adds_head(self) -> None:
        line = _dark(_draw(DrawingType.LINE, ((5, 20), (30, 20)), thickness=4))
        arrow = _dark(_draw(DrawingType.ARROW, ((5, 20), (30, 20)), thickness=4))
        assert arrow.sum() > line.sum()
        # 頭は (30, 20), (23, 24), (23, 16)
        assert arrow[17, 24] and not line[17, 24]

    def test_brush_polyline_with_round_caps(self) -> None:
        out = _draw(DrawingType.BRUSH, ((10, 10), (20, 10), (20, 30)), thickness=9)
        dark = _dark(out)
        assert dark[10, 15] and dark[25, 20]
        # 始点より手前も半径内は塗られる
        assert dark[10, 7]
        assert not dark[35, 35]

    def test_opacity_blends(self) -> None:
        style = BrushStyle("#ff0000", 5, 0.5)
        element = DrawingElement(DrawingType.LINE, ((0, 10), (39, 10)), brush=style)
        out = DrawingOperation([element]).apply(_white())
        r, g, b, a = (int(v) for v in out.pixels[10, 20])
        assert r == 255 and a == 255
        assert 120 <= g <= 135 and g == b

    def test_paints_on_transparent_image(self) -> None:
        clear = RasterImage(np.zeros((40, 40, 4), dtype=np.uint8))
        out = _draw(DrawingType.RECTANGLE, ((5, 5), (30, 20)), image=clear)
        assert out.pixels[5, 10, 3] == 255
        assert out.pixels[12, 17, 3] == 0


class TestText:
    def _render(self, **style) -> RasterImage:
        text_style = TextStyle(font_size=20, **style)
        element = DrawingElement(DrawingType.TEXT, ((5, 30),), "Hi", text_style=text_style)
        return DrawingOperation([element]).apply(_white(60, 40))

    def test_draws_glyphs(self) -> None:
        dark = _dark(self._render())
        assert dark.any()
        # ベースラインより上に描かれる
        assert dark[:31].any()
        assert not dark[33:].any()

    def test_missing_font_falls_back(self) -> None:
        out = DrawingOperation.text("Hi", 5, 30, "no-such-font.ttf", 20).apply(_white(60, 40))
        assert _dark(out).any()

    def test_bold_is_heavier(self) -> None:
        assert _dark(self._render(bold=True)).sum() > _dark(self._render()).sum()

    def test_italic_differs(self) -> None:
        assert self._render(italic=True) != self._render()

    def test_underline_below_baseline(self) -> None:
        assert not _dark(self._render())[32].any()
        assert _dark(self._render(underline=True))[32].any()

    def test_color(self) -> None:
        out = DrawingOperation.text("Hi", 5, 30, font_size=20, color="#0000ff").apply(
            _white(60, 40),
        )
        rgb = out.rgb()[_dark(out)]
        assert np.all(rgb[:, 2] >= rgb[:, 0])


class TestDrawingOperation:
    def test_empty_is_identity(self) -> None:
        rng = np.random.default_rng(42)
        image = RasterImage(rng.integers(0, 256, (8, 9, 4), dtype=np.uint8))
        out = DrawingOperation().apply(image)
        assert out == image
        assert out.pixels is not image.pixels

    def test_input_unchanged(self) -> None:
        image = _white()
        before = image.pixels.copy()
        _draw(DrawingType.LINE, ((0, 0), (39, 39)), image=image)
        np.testing.assert_array_equal(image.pixels, before)

    def test_elements_in_order(self) -> None:
        red = DrawingElement(
            DrawingType.LINE, ((0, 5), (39, 5)), brush=BrushStyle("#ff0000", 3),
        )
        blue = DrawingElement(
            DrawingType.LINE, ((20, 0), (20, 39)), brush=BrushStyle("#0000ff", 3),
        )
        out = DrawingOperation([red, blue]).apply(_white())
        assert tuple(out.pixels[5, 20, :3]) == (0, 0, 255)
        assert tuple(out.pixels[5, 5, :3]) == (255, 0, 0)

    def test_brush_factory(self) -> None:
        op = DrawingOperation.brush([(0, 0), (10, 10)], "#00ff00", 4)
        (element,) = op.elements
        assert element.kind is DrawingType.BRUSH
        assert element.brush.color == RGB(0, 255, 0)
        assert element.brush.opacity == 1.0

    def test_name(self) -> None:
        assert DrawingOperation().name == "drawing"
        op = DrawingOperation.text("a", 0, 10)
        assert op.name == "drawing (text, 1 elements)"

    def test_rejects_non_elements(self) -> None:
        with pytest.raises(ConstructionError):
            DrawingOperation(["line"])  # type: ignore[list-item]
