"""バッチ処理サービス。

固定サイズのスレッドプールで複数画像に Operation を適用する。
タスク毎に失敗を隔離し、結果は入力順で返す。
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence, Union

import numpy as np
import numpy.typing as npt

from raster_edit.application.composite import CompositeOperation
from raster_edit.domain.errors import BatchTaskError, ConstructionError, ProcessingError
from raster_edit.domain.image_model import BatchMode, RasterImage
from raster_edit.domain.operation import Operation

logger = logging.getLogger(__name__)

MIN_THREADS = 1
MAX_THREADS = 8
DEFAULT_THREADS = 4
DEFAULT_OUTPUT_SUFFIX = "_processed"

CustomProcessor = Callable[[RasterImage, str], RasterImage]
ImageSource = Union[RasterImage, npt.NDArray[np.generic]]


@dataclass(frozen=True)
class BatchConfig:
    """バッチ処理の設定。thread_count は [1, 8] にクランプされる。"""

    mode: BatchMode = BatchMode.SINGLE_OPERATION
    operations: tuple[Operation, ...] = ()
    thread_count: int = DEFAULT_THREADS
    output_suffix: str = DEFAULT_OUTPUT_SUFFIX
    custom: CustomProcessor | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "operations", tuple(self.operations))
        object.__setattr__(
            self, "thread_count", max(MIN_THREADS, min(MAX_THREADS, int(self.thread_count))),
        )
        if self.mode is BatchMode.SINGLE_OPERATION and len(self.operations) != 1:
            raise ConstructionError(
                "operations", len(self.operations), "exactly one operation required",
            )
        if self.mode is BatchMode.OPERATION_SEQUENCE and not self.operations:
            raise ConstructionError("operations", 0, "at least one operation required")
        if self.mode is BatchMode.CUSTOM_PROCESSING and self.custom is None:
            raise ConstructionError("custom", None, "custom processor required")

    @classmethod
    def single(cls, operation: Operation, thread_count: int = DEFAULT_THREADS) -> BatchConfig:
        return cls(BatchMode.SINGLE_OPERATION, (operation,), thread_count)

    @classmethod
    def sequence(
        cls,
        operations: Sequence[Operation],
        thread_count: int = DEFAULT_THREADS,
    ) -> BatchConfig:
        return cls(BatchMode.OPERATION_SEQUENCE, tuple(operations), thread_count)

    def output_name(self, name: str) -> str:
        return f"{name}{self.output_suffix}"


@dataclass(frozen=True)
class BatchTask:
    """バッチの1タスク。"""

    image: ImageSource
    name: str
    config: BatchConfig


@dataclass(frozen=True)
class BatchResult:
    """1タスクの結果。成功時は image、失敗時は error を持つ。"""

    success: bool
    name: str
    image: RasterImage | None = None
    message: str = ""
    error: BatchTaskError | None = field(default=None, compare=False)


class BatchProgressListener(Protocol):
    """バッチ進捗の通知先。

    通知は run を呼んだスレッドから完了順に呼ばれる（入力順とは限らない）。
    """

    def on_progress(self, name: str, completed: int, total: int) -> None: ...

    def on_task_complete(self, result: BatchResult) -> None: ...

    def on_batch_complete(self, success_count: int, total: int) -> None: ...


def create_tasks(
    images: Sequence[ImageSource],
    config: BatchConfig,
    names: Sequence[str] | None = None,
) -> list[BatchTask]:
    """画像列からタスクを生成。名前が足りない分は image_{i} とする。"""
    tasks = []
    for i, image in enumerate(images):
        name = names[i] if names is not None and i < len(names) else f"image_{i}"
        tasks.append(BatchTask(image, name, config))
    return tasks


def recommended_workers(task_count: int) -> int:
    """タスク数に応じた推奨スレッド数 min(4, max(1, n // 10 + 1))。"""
    return min(4, max(1, task_count // 10 + 1))


def process_task(task: BatchTask) -> RasterImage:
    """1タスクを実行。失敗時は ProcessingError を送出。"""
    image = RasterImage.coerce(task.image)
    config = task.config
    custom = config.custom
    if config.mode is BatchMode.CUSTOM_PROCESSING and custom is not None:
        result = custom(image, task.name)
        if not isinstance(result, RasterImage):
            raise ProcessingError(
                f"custom {task.name}",
                f"processor returned {type(result).__name__}, RasterImage required",
            )
        return result
    if config.mode is BatchMode.SINGLE_OPERATION:
        return config.operations[0].apply(image)
    return CompositeOperation(f"batch sequence {task.name}", config.operations).apply(image)


class BatchService:
    """バッチ処理サービス。"""

    def __init__(self, max_workers: int | None = None) -> None:
        self._max_workers = max_workers

    def _worker_count(self, tasks: Sequence[BatchTask]) -> int:
        if self._max_workers is not None:
            return max(MIN_THREADS, min(MAX_THREADS, self._max_workers))
        return tasks[0].config.thread_count

    def run(
        self,
        tasks: Sequence[BatchTask],
        listener: BatchProgressListener | None = None,
    ) -> list[BatchResult]:
        """全タスクを実行し、入力順の結果リストを返す。

        失敗したタスクは success=False の結果となり、他のタスクは継続する。

        Args:
            tasks: タスク列
            listener: 進捗通知先

        Returns:
            tasks と同じ順序の BatchResult リスト
        """
        total = len(tasks)
        if total == 0:
            if listener:
                listener.on_batch_complete(0, 0)
            return []

        results: list[BatchResult | None] = [None] * total
        completed = 0
        workers = self._worker_count(tasks)
        logger.info("batch start: %d tasks on %d threads", total, workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._run_one, task): index
                for index, task in enumerate(tasks)
            }
            for future in as_completed(futures):
                index = futures[future]
                result = future.result()
                results[index] = result
                completed += 1
                if listener:
                    listener.on_task_complete(result)
                    listener.on_progress(result.name, completed, total)

        final = [r for r in results if r is not None]
        success_count = sum(1 for r in final if r.success)
        logger.info("batch complete: %d/%d succeeded", success_count, total)
        if listener:
            listener.on_batch_complete(success_count, total)
        return final

    def run_optimized(
        self,
        images: Sequence[ImageSource],
        operation: Operation,
        listener: BatchProgressListener | None = None,
    ) -> list[BatchResult]:
        """単一 Operation をタスク数に応じたスレッド数で適用。"""
        config = BatchConfig.single(operation, recommended_workers(len(images)))
        return self.run(create_tasks(images, config), listener)

    @staticmethod
    def _run_one(task: BatchTask) -> BatchResult:
        try:
            image = process_task(task)
        except ProcessingError as e:
            logger.error("task %s failed: %s", task.name, e)
            error = BatchTaskError(task.name, str(e), code=e.code)
            error.__cause__ = e
            return BatchResult(False, task.name, None, str(e), error)
        except Exception as e:
            logger.exception("task %s raised unexpectedly", task.name)
            error = BatchTaskError(task.name, str(e) or type(e).__name__)
            error.__cause__ = e
            return BatchResult(False, task.name, None, str(error), error)
        return BatchResult(True, task.name, image, "ok")


def summarize(results: Sequence[BatchResult]) -> tuple[int, int]:
    """(成功数, 失敗数)。"""
    success = sum(1 for r in results if r.success)
    return success, len(results) - success
