from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Higher rank = more privilege
ROLE_RANK: dict["Role", int] = {
    Role.OWNER: 3,
    Role.ADMIN: 2,
    Role.MEMBER: 1,
}

MANAGER_ROLES = frozenset({Role.OWNER, Role.ADMIN})


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


# Kanban column order
TASK_STATUS_ORDER: list["TaskStatus"] = [
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
]


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ErrorKind(str, Enum):
    NOT_AUTHORIZED = "not_authorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    EMAIL_MISMATCH = "email_mismatch"
    STORE_ERROR = "store_error"


class ConflictCode(str, Enum):
    DUPLICATE_ASSIGNMENT = "duplicate_assignment"
    ALREADY_INVITED = "already_invited"
    ALREADY_MEMBER = "already_member"


UNKNOWN_USER = "Unknown User"
UNKNOWN_ORGANIZATION = "Unknown Organization"
UNKNOWN_PROJECT = "Unknown Project"


class OperationResult(BaseModel):
    """Outcome of a mutation: a success flag plus either data or an error."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        *,
        code: Optional[str] = None,
        data: Any = None,
    ) -> "OperationResult":
        return cls(success=False, kind=kind, error=error, code=code, data=data)


def strip_required(value: Optional[str], field: str) -> Optional[str]:
    """Trim a required text field; blank input is rejected, None passes through."""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be blank")
    return value
