"""Operation results returned by every public entry point.

Every operation reports ``{success, message, details?}``. Extra payload
(``saves``, ``changed_files``...) is carried in ``data`` and flattened into
the dict form so the HTTP layer can return it as-is.

Codes follow the error taxonomy:
    not_found      referenced checkpoint/tag/ref does not exist
    remote_failed  push/fetch/clone rejected or unreachable
    git_failed     a local git step failed
    invalid        missing or malformed input
    unauthorized   repository not authorized yet
    busy           another operation holds the lock
    unexpected     exception caught at the operation boundary
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

NOT_FOUND = "not_found"
REMOTE_FAILED = "remote_failed"
GIT_FAILED = "git_failed"
INVALID = "invalid"
UNAUTHORIZED = "unauthorized"
BUSY = "busy"
UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a checkpoint or service operation."""

    success: bool
    message: str
    code: str | None = None
    warning: bool = False
    details: Any = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        message: str,
        *,
        warning: bool = False,
        details: Any = None,
        **data: Any,
    ) -> OperationResult:
        return cls(success=True, message=message, warning=warning, details=details, data=data)

    @classmethod
    def fail(
        cls,
        message: str,
        *,
        code: str = GIT_FAILED,
        details: Any = None,
        warning: bool = False,
        **data: Any,
    ) -> OperationResult:
        return cls(
            success=False,
            message=message,
            code=code,
            warning=warning,
            details=details,
            data=data,
        )

    @classmethod
    def busy(cls, operation: str | None) -> OperationResult:
        return cls(
            success=False,
            message=f"Operation in progress: {operation}",
            code=BUSY,
            data={"operation": operation},
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON transport."""
        out: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.code:
            out["code"] = self.code
        if self.warning:
            out["warning"] = True
        if self.details is not None:
            details = self.details
            if hasattr(details, "to_dict"):
                details = details.to_dict()
            out["details"] = details
        out.update(self.data)
        return out
