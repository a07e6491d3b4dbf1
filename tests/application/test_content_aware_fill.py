"""content_aware_fill.py のテスト。"""

import numpy as np
import pytest

from raster_edit.application.content_aware_fill import ContentAwareFillOperation
from raster_edit.domain.errors import ConstructionError, ErrorCode, ProcessingError
from raster_edit.domain.image_model import FillAlgorithm, RasterImage, Region


def _hole_image(size: int = 24) -> tuple[RasterImage, Region]:
    """単色 (60, 120, 180) の中央を黒で塗った画像。"""
    arr = np.empty((size, size, 4), dtype=np.uint8)
    arr[:, :] = (60, 120, 180, 255)
    region = Region(10, 10, 4, 4)
    arr[region.slices()] = (0, 0, 0, 255)
    return RasterImage(arr), region


def _make_image(h: int = 24, w: int = 24) -> RasterImage:
    rng = np.random.default_rng(42)
    return RasterImage(rng.integers(0, 256, (h, w, 4), dtype=np.uint8))


class TestContentAwareFill:
    @pytest.mark.parametrize("algorithm", [FillAlgorithm.PATCH_BASED, FillAlgorithm.HYBRID])
    def test_patch_restores_uniform_fill(self, algorithm: FillAlgorithm) -> None:
        image, region = _hole_image()
        op = ContentAwareFillOperation(region, algorithm, border_margin=2, seed=0)
        out = op.apply(image)
        assert np.all(out.pixels[region.slices()] == np.array([60, 120, 180, 255]))

    def test_diffusion_approaches_surroundings(self) -> None:
        image, region = _hole_image()
        op = ContentAwareFillOperation(region, FillAlgorithm.DIFFUSION_BASED, diffusion_rounds=60)
        filled = op.apply(image).pixels[region.slices()].astype(int)
        assert np.all(np.abs(filled - np.array([60, 120, 180, 255])) <= 2)

    def test_outside_region_unchanged(self) -> None:
        image = _make_image()
        region = Region(8, 9, 5, 4)
        out = ContentAwareFillOperation(region, border_margin=2, seed=1).apply(image)
        mask = np.ones((24, 24), dtype=bool)
        mask[region.slices()] = False
        np.testing.assert_array_equal(out.pixels[mask], image.pixels[mask])

    def test_seeded_is_deterministic(self) -> None:
        image = _make_image()
        op = ContentAwareFillOperation(
            Region(8, 8, 5, 5), FillAlgorithm.PATCH_BASED, border_margin=2, seed=7,
        )
        assert op.apply(image) == op.apply(image)

    def test_region_clipped(self) -> None:
        image = _make_image()
        out = ContentAwareFillOperation(Region(20, 20, 10, 10), border_margin=2, seed=0).apply(image)
        assert out.size == image.size
        np.testing.assert_array_equal(out.pixels[:20, :20], image.pixels[:20, :20])

    def test_region_outside_raises(self) -> None:
        with pytest.raises(ProcessingError) as excinfo:
            ContentAwareFillOperation(Region(50, 50, 4, 4)).apply(_make_image())
        assert excinfo.value.code is ErrorCode.INVALID_REGION

    def test_no_candidates_keeps_diffusion(self) -> None:
        image, region = _hole_image(size=12)
        region = Region(4, 4, 4, 4)
        out = ContentAwareFillOperation(region, FillAlgorithm.HYBRID, border_margin=10).apply(image)
        assert out.size == image.size

    def test_smart_preset(self) -> None:
        op = ContentAwareFillOperation.smart(1, 2, 3, 4)
        assert op.region == Region(1, 2, 3, 4)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"patch_size": 4},
            {"patch_size": 0},
            {"sample_count": 0},
            {"border_margin": -1},
            {"diffusion_rounds": 0},
        ],
    )
    def test_invalid_parameters(self, kwargs: dict) -> None:
        with pytest.raises(ConstructionError):
            ContentAwareFillOperation(Region(0, 0, 2, 2), **kwargs)
