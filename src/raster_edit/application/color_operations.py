"""点単位の色操作。

明るさ・コントラストは線形リスケール out = in·scale + offset、
彩度は HSL 変換、グレースケールは3方式。アルファは常に保持する。
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from raster_edit.domain.color import LUMA_B, LUMA_G, LUMA_R
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import BrightnessMode, GrayscaleMethod, RasterImage
from raster_edit.domain.operation import Operation, require_range
from raster_edit.infrastructure.color_space import hsl_to_rgb_batch, rgb_to_hsl_batch

# コントラストの支点（中間グレー）
_CONTRAST_PIVOT = 128.0
_MAX_CONTRAST_LEVEL = 5.0


def rescale_rgb(
    rgba: npt.NDArray[np.uint8],
    scale: float,
    offset: float = 0.0,
) -> npt.NDArray[np.uint8]:
    """RGB チャンネルに out = in·scale + offset を適用（アルファは保持）。

    Args:
        rgba: (H, W, 4) uint8
        scale: 乗数
        offset: 加算量

    Returns:
        (H, W, 4) uint8 の新しい配列
    """
    out = rgba.copy()
    rgb = rgba[:, :, :3].astype(np.float64) * scale + offset
    out[:, :, :3] = np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.uint8)
    return out


class BrightnessOperation(Operation):
    """明るさ調整。"""

    def __init__(
        self,
        mode: BrightnessMode = BrightnessMode.INCREASE,
        intensity: float = 0.2,
    ) -> None:
        if not isinstance(mode, BrightnessMode):
            raise ConstructionError("mode", mode, "BrightnessMode required")
        self._mode = mode
        self._intensity = require_range("intensity", intensity, 0.0, 1.0)

    @classmethod
    def increase(cls, intensity: float) -> BrightnessOperation:
        return cls(BrightnessMode.INCREASE, intensity)

    @classmethod
    def decrease(cls, intensity: float) -> BrightnessOperation:
        return cls(BrightnessMode.DECREASE, intensity)

    @property
    def name(self) -> str:
        sign = "+" if self._mode is BrightnessMode.INCREASE else "-"
        return f"brightness {sign}{self._intensity * 100:.0f}%"

    @property
    def scale(self) -> float:
        if self._mode is BrightnessMode.INCREASE:
            return 1.0 + self._intensity
        return 1.0 - self._intensity

    def _apply(self, image: RasterImage) -> RasterImage:
        return RasterImage(rescale_rgb(image.rgba(), self.scale))


class ContrastOperation(Operation):
    """コントラスト調整。中間グレー 128 を支点とする。"""

    def __init__(self, level: float = 1.2) -> None:
        self._level = require_range(
            "level", level, 0.0, _MAX_CONTRAST_LEVEL, low_inclusive=False,
        )

    @classmethod
    def enhance(cls, percent: float) -> ContrastOperation:
        """コントラストを percent% 強める (0〜200)。"""
        require_range("percent", percent, 0.0, 200.0)
        return cls(1.0 + percent / 100.0)

    @classmethod
    def reduce(cls, percent: float) -> ContrastOperation:
        """コントラストを percent% 弱める (0〜100 未満)。"""
        require_range("percent", percent, 0.0, 100.0, high_inclusive=False)
        return cls(1.0 - percent / 100.0)

    @property
    def level(self) -> float:
        return self._level

    @property
    def name(self) -> str:
        return f"contrast x{self._level:.2f}"

    def _apply(self, image: RasterImage) -> RasterImage:
        offset = _CONTRAST_PIVOT * (1.0 - self._level)
        return RasterImage(rescale_rgb(image.rgba(), self._level, offset))


class SaturationOperation(Operation):
    """彩度調整。HSL の S に係数を掛けてクランプする。"""

    def __init__(self, factor: float = 1.2) -> None:
        if not factor >= 0.0:
            raise ConstructionError("factor", factor, "must be >= 0")
        self._factor = factor

    @property
    def name(self) -> str:
        return f"saturation x{self._factor:.2f}"

    def _apply(self, image: RasterImage) -> RasterImage:
        return RasterImage(scale_saturation(image.rgba(), self._factor))


def scale_saturation(
    rgba: npt.NDArray[np.uint8],
    factor: float,
) -> npt.NDArray[np.uint8]:
    """HSL の彩度を factor 倍する（アルファ保持）。"""
    hsl = rgb_to_hsl_batch(rgba[:, :, :3])
    hsl[:, :, 1] = np.clip(hsl[:, :, 1] * factor, 0.0, 1.0)
    out = rgba.copy()
    out[:, :, :3] = hsl_to_rgb_batch(hsl)
    return out


def grayscale_values(
    rgba: npt.NDArray[np.uint8],
    method: GrayscaleMethod,
) -> npt.NDArray[np.uint8]:
    """グレー値 (H, W) を算出。

    - AVERAGE: (r + g + b) // 3
    - LUMINOSITY: int(0.299r + 0.587g + 0.114b)
    - DESATURATION: (max + min) // 2
    """
    rgb = rgba[:, :, :3].astype(np.int32)
    if method is GrayscaleMethod.AVERAGE:
        gray = rgb.sum(axis=-1) // 3
    elif method is GrayscaleMethod.LUMINOSITY:
        weighted = LUMA_R * rgb[:, :, 0] + LUMA_G * rgb[:, :, 1] + LUMA_B * rgb[:, :, 2]
        # 浮動小数誤差で整数境界を割り込まないよう微小量を加える
        gray = np.floor(weighted + 1e-9).astype(np.int32)
    else:
        gray = (rgb.max(axis=-1) + rgb.min(axis=-1)) // 2
    return np.clip(gray, 0, 255).astype(np.uint8)


class GrayscaleOperation(Operation):
    """グレースケール化。出力は R=G=B の RGBA、アルファは保持。"""

    def __init__(self, method: GrayscaleMethod = GrayscaleMethod.LUMINOSITY) -> None:
        if not isinstance(method, GrayscaleMethod):
            raise ConstructionError("method", method, "GrayscaleMethod required")
        self._method = method

    @property
    def method(self) -> GrayscaleMethod:
        return self._method

    @property
    def name(self) -> str:
        return f"grayscale ({self._method.value})"

    def _apply(self, image: RasterImage) -> RasterImage:
        rgba = image.rgba()
        gray = grayscale_values(rgba, self._method)
        out = rgba.copy()
        out[:, :, 0] = gray
        out[:, :, 1] = gray
        out[:, :, 2] = gray
        return RasterImage(out)
