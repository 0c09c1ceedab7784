"""
Типы результатов ядра леджера

Отклонения возвращаются как значения, а не выбрасываются: вызывающий код
сопоставляет причину со своим форматом ошибок без разбора текста.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class RejectionReason(str, Enum):
    """Причины отклонения операций"""

    # Обработка блока
    INVALID_BLOCK_ID = "INVALID_BLOCK_ID"
    INVALID_HEIGHT = "INVALID_HEIGHT"
    INVALID_INPUTS = "INVALID_INPUTS"
    INVALID_BALANCE = "INVALID_BALANCE"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"

    # Откат
    NEGATIVE_HEIGHT = "NEGATIVE_HEIGHT"
    HEIGHT_NOT_IN_PAST = "HEIGHT_NOT_IN_PAST"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"

    # Инфраструктура
    STORAGE_FAILURE = "STORAGE_FAILURE"


@dataclass(frozen=True)
class Rejection:
    """Отклонение с причиной и деталями для исправления запроса"""

    reason: RejectionReason
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.reason.value,
            "message": self.message,
            "details": self.details,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Результат валидации блока: принят, либо отклонен с причиной"""

    rejection: Optional[Rejection] = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return cls()

    @classmethod
    def reject(
        cls, reason: RejectionReason, message: str, **details: Any
    ) -> "ValidationOutcome":
        return cls(rejection=Rejection(reason, message, details))


@dataclass(frozen=True)
class Result(Generic[T]):
    """Результат операции ядра: значение или отклонение"""

    value: Optional[T] = None
    error: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, rejection: Rejection) -> "Result[T]":
        return cls(error=rejection)


@dataclass(frozen=True)
class ProcessBlockResult:
    block_id: str
    height: int


@dataclass(frozen=True)
class RollbackResult:
    target_height: int
    previous_height: int
