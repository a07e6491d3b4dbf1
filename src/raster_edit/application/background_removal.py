"""背景除去。

背景色（指定色または4辺平均）とのマンハッタン距離で背景を判定し、
背景画素を透明化した後、距離変換でアルファの境界をぼかす。
"""

from __future__ import annotations

from dataclasses import dataclass

from raster_edit.domain.color import RGB, WHITE, parse_color
from raster_edit.domain.errors import ConstructionError
from raster_edit.domain.image_model import RasterImage, RemovalAlgorithm
from raster_edit.domain.operation import Operation, clamp
from raster_edit.infrastructure.matting import (
    background_mask,
    border_connected,
    estimate_border_color,
    feather_alpha,
)


@dataclass(frozen=True)
class RemovalParameters:
    """背景除去のパラメータ。tolerance と edge_feathering は 0〜1 にクランプ。"""

    target_color: RGB = WHITE
    tolerance: float = 0.3
    edge_feathering: float = 0.2
    keep_transparency: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "target_color", parse_color(self.target_color))
        object.__setattr__(self, "tolerance", clamp(float(self.tolerance), 0.0, 1.0))
        object.__setattr__(
            self, "edge_feathering", clamp(float(self.edge_feathering), 0.0, 1.0),
        )


class BackgroundRemovalOperation(Operation):
    """背景除去。背景画素はアルファ 0（RGB は保持）、他の画素はそのまま。"""

    def __init__(
        self,
        algorithm: RemovalAlgorithm = RemovalAlgorithm.ADAPTIVE,
        params: RemovalParameters | None = None,
    ) -> None:
        if not isinstance(algorithm, RemovalAlgorithm):
            raise ConstructionError("algorithm", algorithm, "RemovalAlgorithm required")
        self._algorithm = algorithm
        self._params = params or RemovalParameters()

    @classmethod
    def auto(cls) -> BackgroundRemovalOperation:
        """白背景想定・4辺平均推定のプリセット。"""
        return cls(RemovalAlgorithm.ADAPTIVE, RemovalParameters(WHITE, 0.3, 0.2, True))

    @classmethod
    def for_color(
        cls,
        color: RGB | str | tuple[int, int, int],
        tolerance: float,
    ) -> BackgroundRemovalOperation:
        """指定色を除去するプリセット。"""
        return cls(
            RemovalAlgorithm.COLOR_THRESHOLD,
            RemovalParameters(parse_color(color), tolerance, 0.1, True),
        )

    @property
    def params(self) -> RemovalParameters:
        return self._params

    @property
    def name(self) -> str:
        return f"remove background ({self._algorithm.value}, tol {self._params.tolerance:.2f})"

    def _apply(self, image: RasterImage) -> RasterImage:
        rgba = image.rgba()
        if self._algorithm is RemovalAlgorithm.COLOR_THRESHOLD:
            background = self._params.target_color
        else:
            background = estimate_border_color(rgba)

        mask = background_mask(rgba, background, self._params.tolerance)
        if self._algorithm is RemovalAlgorithm.EDGE_AWARE:
            mask = border_connected(mask, rgba)

        out = rgba.copy()
        alpha = rgba[:, :, 3].copy()
        alpha[mask] = 0
        transparent = mask
        if self._params.keep_transparency:
            transparent = mask | (rgba[:, :, 3] == 0)
        else:
            alpha[~mask & (rgba[:, :, 3] == 0)] = 255
        out[:, :, 3] = feather_alpha(alpha, transparent, self._params.edge_feathering)
        return RasterImage(out)
