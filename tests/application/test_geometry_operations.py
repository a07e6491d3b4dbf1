"""geometry_operations.py のテスト。"""

import numpy as np
import pytest

from raster_edit.application.geometry_operations import (
    CropOperation,
    FlipOperation,
    MirrorOperation,
    RotateOperation,
    ScaleOperation,
)
from raster_edit.domain.errors import ConstructionError, ErrorCode, ProcessingError
from raster_edit.domain.image_model import (
    FlipDirection,
    MirrorDirection,
    RasterImage,
    RotationAngle,
    ScaleMode,
    ScaleQuality,
)


def _make_image(h: int = 4, w: int = 6) -> RasterImage:
    rng = np.random.default_rng(42)
    return RasterImage(rng.integers(0, 256, (h, w, 4), dtype=np.uint8))


def _row_image(values: list[int]) -> RasterImage:
    arr = np.full((2, len(values), 4), 255, dtype=np.uint8)
    arr[:, :, 0] = values
    return RasterImage(arr)


class TestCropOperation:
    def test_inner_block(self) -> None:
        image = _make_image(4, 4)
        out = CropOperation(1, 1, 2, 2).apply(image)
        assert out.size == (2, 2)
        np.testing.assert_array_equal(out.pixels, image.pixels[1:3, 1:3])

    def test_clipped_to_bounds(self) -> None:
        out = CropOperation(2, 3, 100, 100).apply(_make_image())
        assert out.size == (4, 1)

    def test_outside_raises(self) -> None:
        with pytest.raises(ProcessingError) as excinfo:
            CropOperation(10, 10, 2, 2).apply(_make_image())
        assert excinfo.value.code is ErrorCode.INVALID_REGION

    def test_crop_then_reembed(self) -> None:
        image = _make_image(5, 5)
        out = CropOperation(1, 2, 3, 2).apply(image)
        canvas = image.rgba()
        canvas[2:4, 1:4] = out.pixels
        np.testing.assert_array_equal(canvas, image.pixels)

    def test_empty_size_rejected(self) -> None:
        with pytest.raises(ConstructionError):
            CropOperation(0, 0, 0, 3)


class TestRotateOperation:
    def test_90_dimensions_and_corner(self) -> None:
        image = _make_image(4, 6)
        out = RotateOperation(RotationAngle.ROTATE_90).apply(image)
        assert out.size == (4, 6)
        # 左上 → 右上（時計回り）
        np.testing.assert_array_equal(out.pixels[0, -1], image.pixels[0, 0])
        np.testing.assert_array_equal(out.pixels[-1, -1], image.pixels[0, -1])

    def test_270_corner(self) -> None:
        image = _make_image(4, 6)
        out = RotateOperation(RotationAngle.ROTATE_270).apply(image)
        np.testing.assert_array_equal(out.pixels[-1, 0], image.pixels[0, 0])

    def test_180_twice_is_identity(self) -> None:
        image = _make_image()
        op = RotateOperation(RotationAngle.ROTATE_180)
        assert op.apply(op.apply(image)) == image

    def test_90_four_times_is_identity(self) -> None:
        image = _make_image()
        op = RotateOperation(RotationAngle.ROTATE_90)
        out = image
        for _ in range(4):
            out = op.apply(out)
        assert out == image

    def test_from_degrees(self) -> None:
        assert RotateOperation.from_degrees(-90).angle is RotationAngle.ROTATE_270
        assert RotateOperation.from_degrees(450).angle is RotationAngle.ROTATE_90

    @pytest.mark.parametrize("degrees", [0, 45, 360])
    def test_invalid_degrees(self, degrees: int) -> None:
        with pytest.raises(ConstructionError):
            RotateOperation.from_degrees(degrees)


class TestFlipOperation:
    @pytest.mark.parametrize("direction", list(FlipDirection))
    def test_twice_is_identity(self, direction: FlipDirection) -> None:
        image = _make_image()
        op = FlipOperation(direction)
        assert op.apply(op.apply(image)) == image

    def test_horizontal(self) -> None:
        out = FlipOperation(FlipDirection.HORIZONTAL).apply(_row_image([1, 2, 3]))
        np.testing.assert_array_equal(out.pixels[0, :, 0], [3, 2, 1])

    def test_vertical(self) -> None:
        image = _make_image()
        out = FlipOperation(FlipDirection.VERTICAL).apply(image)
        np.testing.assert_array_equal(out.pixels[0], image.pixels[-1])


class TestMirrorOperation:
    def test_replace_left(self) -> None:
        out = MirrorOperation(MirrorDirection.VERTICAL_LEFT).apply(_row_image([0, 1, 2, 3]))
        np.testing.assert_array_equal(out.pixels[0, :, 0], [3, 2, 2, 3])

    def test_replace_right(self) -> None:
        out = MirrorOperation(MirrorDirection.VERTICAL_RIGHT).apply(_row_image([0, 1, 2, 3]))
        np.testing.assert_array_equal(out.pixels[0, :, 0], [0, 1, 1, 0])

    def test_horizontal_top_is_symmetric(self) -> None:
        out = MirrorOperation(MirrorDirection.HORIZONTAL_TOP).apply(_make_image(6, 3))
        np.testing.assert_array_equal(out.pixels, out.pixels[::-1])

    def test_uneven_split(self) -> None:
        out = MirrorOperation(MirrorDirection.VERTICAL_RIGHT, 0.25).apply(
            _row_image([10, 20, 30, 40, 50, 60, 70, 80]),
        )
        # 左 2 画素の鏡像を右 6 画素に引き伸ばす
        np.testing.assert_array_equal(out.pixels[0, :, 0], [10, 20, 20, 20, 20, 10, 10, 10])

    @pytest.mark.parametrize("ratio", [0.0, 1.0, -0.5])
    def test_invalid_ratio(self, ratio: float) -> None:
        with pytest.raises(ConstructionError):
            MirrorOperation(MirrorDirection.VERTICAL_LEFT, ratio)


class TestScaleOperation:
    def test_keep_aspect(self) -> None:
        op = ScaleOperation(50, 50, ScaleMode.KEEP_ASPECT_RATIO)
        assert op.target_size(100, 50) == (50, 25)

    def test_stretch(self) -> None:
        assert ScaleOperation(30, 7, ScaleMode.STRETCH).target_size(100, 50) == (30, 7)

    def test_fit_width_and_height(self) -> None:
        assert ScaleOperation(20, 1, ScaleMode.FIT_WIDTH).target_size(10, 5) == (20, 10)
        assert ScaleOperation(1, 20, ScaleMode.FIT_HEIGHT).target_size(10, 5) == (40, 20)

    def test_minimum_one_pixel(self) -> None:
        assert ScaleOperation(1, 1, ScaleMode.KEEP_ASPECT_RATIO).target_size(1000, 10) == (1, 1)

    @pytest.mark.parametrize("quality", list(ScaleQuality))
    def test_apply(self, quality: ScaleQuality) -> None:
        out = ScaleOperation(12, 8, ScaleMode.STRETCH, quality).apply(_make_image())
        assert out.size == (12, 8)

    def test_same_size_is_copy(self) -> None:
        image = _make_image()
        out = ScaleOperation(6, 4, ScaleMode.STRETCH).apply(image)
        assert out == image
        assert out is not image

    @pytest.mark.parametrize(("w", "h"), [(0, 10), (10, 0), (10_001, 10)])
    def test_invalid_size(self, w: int, h: int) -> None:
        with pytest.raises(ConstructionError):
            ScaleOperation(w, h)
