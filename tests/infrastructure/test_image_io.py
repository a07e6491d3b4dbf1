"""image_io.py のテスト。"""

import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from raster_edit.domain.errors import ErrorCode, ProcessingError
from raster_edit.domain.image_model import RasterImage, ScaleQuality
from raster_edit.infrastructure.image_io import (
    from_pil,
    load_image,
    resize_rgba,
    save_image,
    to_pil,
)


def _make_image(h: int = 6, w: int = 5) -> RasterImage:
    rng = np.random.default_rng(42)
    return RasterImage(rng.integers(0, 256, (h, w, 4), dtype=np.uint8))


class TestPilConversion:
    def test_rgb_becomes_opaque_rgba(self) -> None:
        img = Image.new("RGB", (3, 2), (10, 20, 30))
        image = from_pil(img)
        assert image.pixels.shape == (2, 3, 4)
        assert tuple(image.pixels[0, 0]) == (10, 20, 30, 255)

    def test_to_pil_mode(self) -> None:
        assert to_pil(_make_image()).mode == "RGBA"


class TestLoadSave:
    def test_png_roundtrip_keeps_alpha(self) -> None:
        image = _make_image()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.png"
            save_image(image, path)
            loaded = load_image(path)
        np.testing.assert_array_equal(loaded.pixels, image.pixels)

    def test_jpeg_drops_alpha(self) -> None:
        image = RasterImage.solid(8, 8, (200, 100, 50, 128))
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.jpg"
            save_image(image, path)
            loaded = load_image(path)
        assert np.all(loaded.alpha() == 255)

    def test_grayscale_saves(self) -> None:
        image = RasterImage(np.full((4, 4), 90, dtype=np.uint8))
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "g.png"
            save_image(image, path)
            loaded = load_image(path)
        assert tuple(loaded.pixels[0, 0]) == (90, 90, 90, 255)

    def test_missing_file(self) -> None:
        with pytest.raises(ProcessingError) as excinfo:
            load_image("/nonexistent/image.png")
        assert excinfo.value.code is ErrorCode.IMAGE_NOT_LOADED

    def test_not_an_image(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "bad.png"
            path.write_text("not an image")
            with pytest.raises(ProcessingError):
                load_image(path)


class TestResize:
    @pytest.mark.parametrize("quality", list(ScaleQuality))
    def test_size(self, quality: ScaleQuality) -> None:
        out = resize_rgba(_make_image(), 10, 3, quality)
        assert (out.width, out.height) == (10, 3)
