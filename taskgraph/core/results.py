# taskgraph/core/results.py
"""
Типизированный результат операций TaskService.

Каждая публичная операция возвращает Result: либо value, либо error + message.
"Не найдено" такая же ошибка, как и остальные, без None и без исключений.
"""
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorKind(str, Enum):
    DUPLICATE_TITLE = "duplicate_title"
    INVALID_DATE = "invalid_date"
    INVALID_INPUT = "invalid_input"
    PARENT_NOT_FOUND = "parent_not_found"
    PARENT_ALREADY_COMPLETED = "parent_already_completed"
    DEPENDENCY_CYCLE = "dependency_cycle"
    DEPENDENCY_NOT_SATISFIED = "dependency_not_satisfied"
    HIERARCHY_CONFLICT = "hierarchy_conflict"
    TASK_NOT_FOUND = "task_not_found"
    ATTACHMENT_NOT_FOUND = "attachment_not_found"
    IO_FAILURE = "io_failure"


class Result(BaseModel, Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "") -> "Result[T]":
        return cls(error=error, message=message or error.value)
