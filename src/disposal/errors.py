"""
Structured error types for disposal.

Only a handful of conditions ever reach a caller as an exception: a bad
argument to ``decorate``, a submission that the executor refused, and (on
request) a shutdown that ran out of time. Everything else is a soft
condition that the library logs and moves past.

Manifesto:
    - **Typed Error Hierarchy:** One base class, one subclass per failure
    - **Rich Context:** Errors carry metadata for logging
    - **Error Chaining:** The underlying exception is kept as ``cause``
    - **Soft by default:** Re-registering or cancelling twice is never an error

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                     DisposalError                         │
        │            (category, context, cause)                     │
        ├──────────────────────────────────────────────────────────┤
        │  InvalidArgumentError   DispatchError   ShutdownTimeout  │
        │  (VALIDATION, TypeError)  (DISPATCH)      (LIFECYCLE)    │
        └──────────────────────────────────────────────────────────┘

Examples:
    >>> error = InvalidArgumentError("target must not be None")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> isinstance(error, TypeError)
    True

    >>> try:
    ...     raise RuntimeError("cannot schedule new futures after shutdown")
    ... except RuntimeError as e:
    ...     raise DispatchError("submit failed", cause=e)
    Traceback (most recent call last):
    ...
    DispatchError: submit failed

Tags:
    error-handling, exception-hierarchy, disposal

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories for classification and log routing."""

    VALIDATION = "VALIDATION"  # Bad arguments from the caller
    DISPATCH = "DISPATCH"  # Executor refused or lost the callback
    LIFECYCLE = "LIFECYCLE"  # Start/stop problems
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class DisposalError(Exception):
    """Base class for all disposal errors.

    Args:
        message: Human-readable description
        category: Error category, defaults to the class default
        context: Extra metadata to include in logs
        cause: Underlying exception, if any
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DisposalError:
        """Add context fields and return self for chaining."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class InvalidArgumentError(DisposalError, TypeError):
    """A ``None`` target or callback, a target without weak reference
    support, or an executor that cannot accept submissions."""

    default_category = ErrorCategory.VALIDATION


class DispatchError(DisposalError):
    """The executor refused a callback submission."""

    default_category = ErrorCategory.DISPATCH


class ShutdownTimeoutError(DisposalError):
    """A bounded shutdown wait expired before the work finished."""

    default_category = ErrorCategory.LIFECYCLE


__all__ = [
    "ErrorCategory",
    "DisposalError",
    "InvalidArgumentError",
    "DispatchError",
    "ShutdownTimeoutError",
]
