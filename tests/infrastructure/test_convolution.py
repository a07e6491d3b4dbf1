"""convolution.py のテスト。"""

import numpy as np
import pytest

from raster_edit.domain.kernel import Kernel, gaussian_kernel
from raster_edit.infrastructure.convolution import (
    box_sum,
    convolve,
    convolve_interior,
    laplacian,
    sobel_gradients,
    sobel_magnitude,
    unsharp_mask,
)


def _make_image(h: int = 12, w: int = 10) -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (h, w, 4), dtype=np.uint8)


class TestConvolve:
    def test_identity_kernel(self) -> None:
        image = _make_image()
        identity = Kernel([[0, 0, 0], [0, 1, 0], [0, 0, 0]])
        np.testing.assert_array_equal(convolve(image, identity), image.astype(np.float64))

    def test_clamp_to_edge(self) -> None:
        data = np.array([[1.0, 2.0, 3.0]])
        # 右隣を参照するカーネル: 範囲外は端画素 (3) を再利用
        shift = Kernel([[0, 0, 0], [0, 0, 1], [0, 0, 0]])
        np.testing.assert_array_equal(convolve(data, shift), [[2.0, 3.0, 3.0]])

    def test_weighted_sum_orientation(self) -> None:
        data = np.zeros((5, 5))
        data[2, 3] = 1.0
        k = Kernel([[0, 0, 0], [0, 0, 7], [0, 0, 0]])
        out = convolve(data, k)
        # out[y, x] = Σ k[ky, kx] · src[y + ky - 1, x + kx - 1]
        assert out[2, 2] == 7.0

    def test_gaussian_preserves_uniform(self) -> None:
        data = np.full((6, 6, 3), 200.0)
        np.testing.assert_allclose(convolve(data, gaussian_kernel(5)), data)

    def test_does_not_modify_input(self) -> None:
        image = _make_image()
        before = image.copy()
        convolve(image, gaussian_kernel(3))
        np.testing.assert_array_equal(image, before)


class TestInterior:
    def test_border_ring_zero(self) -> None:
        data = np.full((5, 5), 10.0)
        out = convolve_interior(data, Kernel(np.full((3, 3), 1.0)))
        assert np.all(out[0, :] == 0) and np.all(out[-1, :] == 0)
        assert np.all(out[:, 0] == 0) and np.all(out[:, -1] == 0)
        assert np.all(out[1:-1, 1:-1] == 90.0)


class TestSobel:
    def test_uniform_has_zero_gradient(self) -> None:
        gx, gy = sobel_gradients(np.full((8, 8), 123, dtype=np.uint8))
        assert np.all(gx == 0) and np.all(gy == 0)

    def test_vertical_step_detected_by_gx(self) -> None:
        data = np.zeros((6, 6))
        data[:, 3:] = 100.0
        gx, gy = sobel_gradients(data)
        assert gx[2, 2] == 400.0
        assert np.all(gy == 0)

    def test_magnitude(self) -> None:
        data = np.zeros((6, 6))
        data[:, 3:] = 100.0
        assert sobel_magnitude(data)[2, 3] == pytest.approx(400.0)


class TestHelpers:
    def test_laplacian_uniform_zero(self) -> None:
        np.testing.assert_array_equal(laplacian(np.full((4, 4), 9.0)), np.zeros((4, 4)))

    def test_box_sum_counts_in_bounds(self) -> None:
        counts = box_sum(np.ones((3, 3)), 3)
        assert counts[0, 0] == 4.0
        assert counts[1, 1] == 9.0
        assert counts[0, 1] == 6.0

    def test_unsharp_zero_amount_is_identity(self) -> None:
        data = _make_image()[:, :, :3]
        np.testing.assert_array_equal(unsharp_mask(data, 0.0), data.astype(np.float64))

    def test_unsharp_increases_local_contrast(self) -> None:
        data = np.zeros((7, 7))
        data[:, 4:] = 100.0
        sharp = unsharp_mask(data[:, :, np.newaxis], 1.0)[:, :, 0]
        assert sharp[3, 3] < 0.0
        assert sharp[3, 4] > 100.0
