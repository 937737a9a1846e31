# SPDX-License-Identifier: Apache-2.0

"""
Typed operation results and the failure taxonomy.

Every expected failure of a lifecycle operation is returned as a value, never
raised. Only storage faults propagate as exceptions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Stable identifiers for expected, caller-recoverable failures."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    WRONG_TYPE = "wrong_type"
    SELF_ACCEPTANCE = "self_acceptance"
    ALREADY_ACCEPTED = "already_accepted"
    NOT_PENDING = "not_pending"
    NOT_ACCEPTED = "not_accepted"
    PHONE_REQUIRED = "phone_required"
    VALIDATION_FAILED = "validation_failed"


@dataclass
class OperationResult(Generic[T]):
    """Result of a lifecycle operation."""
    success: bool
    value: Optional[T] = None
    error_kind: Optional[FailureKind] = None
    error_message: Optional[str] = None
    validation_errors: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: str,
        validation_errors: Optional[List[str]] = None
    ) -> "OperationResult":
        return cls(
            success=False,
            error_kind=kind,
            error_message=message,
            validation_errors=validation_errors or []
        )

    def is_failure(self, kind: FailureKind) -> bool:
        """Check if this result failed with the given kind."""
        return not self.success and self.error_kind == kind


def not_found(entity: str = "Request") -> OperationResult:
    return OperationResult.fail(FailureKind.NOT_FOUND, f"{entity} not found")


def forbidden(message: str) -> OperationResult:
    return OperationResult.fail(FailureKind.FORBIDDEN, message)
