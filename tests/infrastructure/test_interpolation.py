"""interpolation.py のテスト。"""

import numpy as np
import pytest

from raster_edit.infrastructure.interpolation import (
    bicubic_weights,
    bilinear_weights,
    lanczos_weights,
    nearest_indices,
    resample,
    scaled_size,
)


def _make_image(h: int = 6, w: int = 8) -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)


class TestWeights:
    @pytest.mark.parametrize("fn", [bilinear_weights, bicubic_weights, lanczos_weights])
    def test_rows_sum_to_one(self, fn) -> None:
        w = fn(7, 20)
        assert w.shape == (20, 7)
        np.testing.assert_allclose(w.sum(axis=1), 1.0)

    @pytest.mark.parametrize("fn", [bilinear_weights, bicubic_weights, lanczos_weights])
    def test_identity_scale(self, fn) -> None:
        np.testing.assert_allclose(fn(5, 5), np.eye(5), atol=1e-12)

    def test_bilinear_clamps_at_edges(self) -> None:
        w = bilinear_weights(4, 8)
        # 先頭の出力画素はソース座標 -0.25 → 0 にクランプ
        assert w[0, 0] == pytest.approx(1.0)
        assert w[-1, -1] == pytest.approx(1.0)

    def test_bilinear_midpoint(self) -> None:
        w = bilinear_weights(2, 4)
        # dst=1 → src = 1.5·0.5 - 0.5 = 0.25
        np.testing.assert_allclose(w[1], [0.75, 0.25])

    def test_lanczos_nonnegative_at_sample_points(self) -> None:
        w = lanczos_weights(10, 20)
        assert np.all(w.sum(axis=1) > 0)


class TestResample:
    def test_output_shape(self) -> None:
        out = resample(_make_image(), 16, 12)
        assert out.shape == (12, 16, 4)

    def test_uniform_stays_uniform(self) -> None:
        data = np.full((4, 4, 4), 90, dtype=np.uint8)
        for fn in (bilinear_weights, bicubic_weights, lanczos_weights):
            np.testing.assert_allclose(resample(data, 12, 12, fn), 90.0)

    def test_identity_size(self) -> None:
        image = _make_image()
        np.testing.assert_allclose(resample(image, 8, 6), image.astype(np.float64), atol=1e-9)


class TestHelpers:
    def test_nearest_indices(self) -> None:
        np.testing.assert_array_equal(nearest_indices(2, 4), [0, 0, 1, 1])

    def test_scaled_size_floor_at_one(self) -> None:
        assert scaled_size(3, 0.01) == 1
        assert scaled_size(10, 1.25) == 13
