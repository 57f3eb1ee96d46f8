"""Tagged success/failure values returned by public operations."""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from han_excel.utils.exceptions import ErrorType, HanExcelError

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorInfo:
    """Error payload carried by a failed result."""

    kind: ErrorType
    message: str
    stack: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.stack:
            result["stack"] = self.stack
        if self.details:
            result["details"] = self.details
        return result


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome holding the produced value."""

    data: T
    success: Literal[True] = True

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "data": self.data}


@dataclass(frozen=True)
class Failure:
    """Failed outcome holding the error description."""

    error: ErrorInfo
    success: Literal[False] = False

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.error.to_dict()}


Result = Success[T] | Failure


def failure(
    kind: ErrorType,
    message: str,
    *,
    stack: str = "",
    details: dict[str, Any] | None = None,
) -> Failure:
    """Build a failed result."""
    return Failure(
        error=ErrorInfo(kind=kind, message=message, stack=stack, details=details or {})
    )


def failure_from_exception(
    exc: BaseException, kind: ErrorType | None = None
) -> Failure:
    """Convert a caught exception into a failed result.

    Package exceptions keep their own kind and details unless ``kind`` is
    given; anything else becomes ``kind`` (BUILD_ERROR by default).
    """
    stack = "".join(traceback.format_exception(exc))
    if isinstance(exc, HanExcelError):
        info = exc.to_error_info(stack=stack)
        if kind is not None and kind != info.kind:
            info = ErrorInfo(
                kind=kind, message=info.message, stack=stack, details=info.details
            )
        return Failure(error=info)
    message = str(exc) or type(exc).__name__
    return failure(kind or ErrorType.BUILD_ERROR, message, stack=stack)
