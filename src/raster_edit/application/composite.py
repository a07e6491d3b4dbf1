"""複数の Operation を順に適用する合成操作。"""

from __future__ import annotations

import logging
from typing import Sequence

from raster_edit.application.color_operations import (
    BrightnessOperation,
    ContrastOperation,
    GrayscaleOperation,
)
from raster_edit.application.filter_operations import EdgeDetectionOperation
from raster_edit.domain.errors import ConstructionError, ProcessingError
from raster_edit.domain.image_model import EdgeDirection, GrayscaleMethod, RasterImage
from raster_edit.domain.operation import Operation

logger = logging.getLogger(__name__)


class CompositeOperation(Operation):
    """Operation の列を順に適用する。

    途中で失敗した場合は残りを中断し、失敗したステージを示す
    ProcessingError を送出する。
    """

    def __init__(self, name: str, operations: Sequence[Operation] = ()) -> None:
        if not name:
            raise ConstructionError("name", name, "must not be empty")
        for op in operations:
            if not isinstance(op, Operation):
                raise ConstructionError("operations", op, "Operation required")
        self._name = name
        self._operations: tuple[Operation, ...] = tuple(operations)

    def add(self, operation: Operation) -> CompositeOperation:
        """operation を末尾に追加した新しい合成操作を返す。"""
        return CompositeOperation(self._name, self._operations + (operation,))

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._operations)

    def _apply(self, image: RasterImage) -> RasterImage:
        current = image
        total = len(self._operations)
        for index, op in enumerate(self._operations, start=1):
            logger.debug("%s: stage %d/%d %s", self._name, index, total, op.name)
            try:
                current = op.apply(current)
            except ProcessingError as e:
                raise ProcessingError(
                    self._name, e.reason, code=e.code,
                    stage=f"{index}/{total} ({op.name})",
                ) from e
        if current is image:
            return RasterImage(image.pixels.copy())
        return current


def vintage() -> CompositeOperation:
    """ビンテージ風: グレースケール → コントラスト 1.3 → 明るさ -10%。"""
    return CompositeOperation("vintage", [
        GrayscaleOperation(GrayscaleMethod.LUMINOSITY),
        ContrastOperation(1.3),
        BrightnessOperation.decrease(0.1),
    ])


def sketch() -> CompositeOperation:
    """スケッチ風: グレースケール → 全方向エッジ → コントラスト 2.0。"""
    return CompositeOperation("sketch", [
        GrayscaleOperation(GrayscaleMethod.LUMINOSITY),
        EdgeDetectionOperation(EdgeDirection.BOTH),
        ContrastOperation(2.0),
    ])
