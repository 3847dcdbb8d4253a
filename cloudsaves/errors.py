"""Error types for Cloud Saves.

Library-level functions (atomic writes, config persistence) return a
``Result``: either ``Ok(value)`` or ``Err(CloudSavesError)``. Callers that
cannot handle the error locally call ``unwrap()``, which raises
``UnwrapError`` carrying the original error.

Example:
    result = atomic_write_json(path, data)
    if result.is_err():
        logger.error(format_error(result.unwrap_err()))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class CloudSavesError:
    """Structured error with a machine-readable code."""

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class UnwrapError(Exception):
    """Raised when unwrapping a Result holding the wrong variant."""

    def __init__(self, error: Any):
        super().__init__(str(error))
        self.error = error


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self):
        raise UnwrapError(f"Called unwrap_err() on Ok: {self.value!r}")


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result."""

    error: E

    @property
    def ok(self) -> bool:
        return False

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        raise UnwrapError(self.error)

    def unwrap_err(self) -> E:
        return self.error


Result = Union[Ok[T], Err[E]]


def format_error(error: CloudSavesError) -> str:
    """Human-readable one-liner for CLI output."""
    if error.context:
        details = ", ".join(f"{k}={v}" for k, v in error.context.items())
        return f"{error.message} ({details})"
    return error.message
