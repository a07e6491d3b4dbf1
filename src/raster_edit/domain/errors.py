"""画像編集エンジンの例外定義。

構築時エラー（パラメータ不正）と適用時エラー（処理失敗）を区別する。
バッチ処理ではタスク単位の失敗を BatchTaskError として結果に格納する。
"""

from __future__ import annotations

from enum import Enum
from typing import Final

_INVALID_PARAMETER_MESSAGE: Final[str] = "Invalid parameter {parameter}={value!r}: {reason}"
_PROCESSING_MESSAGE: Final[str] = "{operation} failed: {reason}"
_STAGE_MESSAGE: Final[str] = "{operation} failed at stage {stage}: {reason}"
_BATCH_TASK_MESSAGE: Final[str] = "Batch task '{task_name}' failed: {reason}"


class ErrorCode(Enum):
    """処理エラーの分類コード。"""

    INVALID_PARAMETERS = "invalid_parameters"
    INVALID_REGION = "invalid_region"
    IMAGE_NOT_LOADED = "image_not_loaded"
    OUT_OF_MEMORY = "out_of_memory"
    PROCESSING_FAILED = "processing_failed"
    UNSUPPORTED_OPERATION = "unsupported_operation"


class ConstructionError(ValueError):
    """Operation 構築時のパラメータ不正。

    画像に触れる前に送出されるため、パイプライン全体を事前検証できる。

    Attributes:
        parameter: 不正なパラメータ名
        value: 渡された値
    """

    def __init__(self, parameter: str, value: object, reason: str) -> None:
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(
            _INVALID_PARAMETER_MESSAGE.format(
                parameter=parameter, value=value, reason=reason,
            ),
        )


class ProcessingError(Exception):
    """Operation 適用時の失敗。

    Attributes:
        code: エラー分類
        operation: 失敗した Operation 名
        stage: 合成処理内で失敗したステージ（該当時のみ）
        reason: 人間向けの説明
    """

    def __init__(
        self,
        operation: str,
        reason: str,
        code: ErrorCode = ErrorCode.PROCESSING_FAILED,
        stage: str | None = None,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.code = code
        self.stage = stage
        if stage is None:
            message = _PROCESSING_MESSAGE.format(operation=operation, reason=reason)
        else:
            message = _STAGE_MESSAGE.format(
                operation=operation, stage=stage, reason=reason,
            )
        super().__init__(message)

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__


class BatchTaskError(ProcessingError):
    """バッチ内の1タスクの失敗。兄弟タスクには影響しない。

    Attributes:
        task_name: 失敗したタスク名
    """

    def __init__(
        self,
        task_name: str,
        reason: str,
        code: ErrorCode = ErrorCode.PROCESSING_FAILED,
    ) -> None:
        super().__init__("batch", reason, code=code)
        self.task_name = task_name
        # 基底のメッセージをタスク名入りに差し替え
        self.args = (_BATCH_TASK_MESSAGE.format(task_name=task_name, reason=reason),)
