"""artistic_operations.py のテスト。"""

import numpy as np
import pytest

from raster_edit.application.artistic_operations import (
    ArtisticStyleOperation,
    StyleParameters,
    mosaic,
    oil_painting,
)
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import ArtisticStyle, RasterImage


def _make_image(h: int = 12, w: int = 12) -> RasterImage:
    rng = np.random.default_rng(42)
    return RasterImage(rng.integers(0, 256, (h, w, 4), dtype=np.uint8))


class TestStyleParameters:
    def test_clamped(self) -> None:
        params = StyleParameters(intensity=5.0, brush_size=0, detail_preserve=-1.0)
        assert params.intensity == 1.0
        assert params.brush_size == 1
        assert params.detail_preserve == 0.0

    def test_upper_brush(self) -> None:
        assert StyleParameters(brush_size=99).brush_size == 20
        assert StyleParameters(intensity=0.0).intensity == pytest.approx(0.1)


class TestMosaic:
    def test_blocks_are_uniform(self) -> None:
        rgba = _make_image(8, 8).pixels
        out = mosaic(rgba, StyleParameters(brush_size=2))
        # ブロック辺 4
        for by in range(0, 8, 4):
            for bx in range(0, 8, 4):
                block = out[by:by + 4, bx:bx + 4]
                np.testing.assert_allclose(block, block[0, 0][np.newaxis, np.newaxis])
                np.testing.assert_allclose(
                    block[0, 0], rgba[by:by + 4, bx:bx + 4].reshape(-1, 4).mean(axis=0),
                )

    def test_partial_edge_blocks(self) -> None:
        rgba = _make_image(5, 5).pixels
        out = mosaic(rgba, StyleParameters(brush_size=1))
        np.testing.assert_allclose(out[4, 4], rgba[4, 4])


class TestOilPainting:
    def test_uniform_unchanged(self) -> None:
        rgba = np.full((6, 6, 4), 77, dtype=np.uint8)
        np.testing.assert_allclose(oil_painting(rgba, StyleParameters()), 77.0)

    def test_dominant_value_wins(self) -> None:
        rgba = np.full((7, 7, 4), 200, dtype=np.uint8)
        rgba[3, 3, :3] = 10
        out = oil_painting(rgba, StyleParameters(intensity=1.0, brush_size=2))
        np.testing.assert_allclose(out[3, 3, :3], 200.0)


class TestArtisticStyleOperation:
    @pytest.mark.parametrize("style", list(ArtisticStyle))
    def test_shape_and_alpha(self, style: ArtisticStyle) -> None:
        image = _make_image()
        out = ArtisticStyleOperation(style, seed=1).apply(image)
        assert out.size == image.size
        if style is not ArtisticStyle.MOSAIC:
            np.testing.assert_array_equal(out.alpha(), image.alpha())

    def test_pencil_seeded_is_deterministic(self) -> None:
        image = _make_image()
        a = ArtisticStyleOperation(ArtisticStyle.PENCIL_SKETCH, seed=3).apply(image)
        b = ArtisticStyleOperation(ArtisticStyle.PENCIL_SKETCH, seed=3).apply(image)
        assert a == b

    def test_pencil_is_gray(self) -> None:
        out = ArtisticStyleOperation(ArtisticStyle.PENCIL_SKETCH, seed=0).apply(_make_image())
        rgb = out.rgb()
        assert np.all(rgb[:, :, 0] == rgb[:, :, 1])

    def test_cartoon_has_outlines(self) -> None:
        arr = np.full((12, 12, 4), 255, dtype=np.uint8)
        arr[:, :6, :3] = 0
        out = ArtisticStyleOperation(ArtisticStyle.CARTOON).apply(RasterImage(arr))
        assert np.all(out.pixels[2:-2, 5:7, :3] == 0)

    def test_invalid_style(self) -> None:
        with pytest.raises(ConstructionError):
            ArtisticStyleOperation("oil")  # type: ignore[arg-type]
