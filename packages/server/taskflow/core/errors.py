"""
Domain errors and the result-value boundary.

Services raise TaskFlowError subclasses internally. Mutating services are
wrapped with ``returns_result`` so callers always receive an OperationResult
instead of an exception; store failures are classified on the way out.
The API layer maps failed results (and errors raised by read paths) to HTTP
responses via STATUS_BY_KIND.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Optional

import structlog
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskflow_shared.schemas.common import ConflictCode, ErrorKind, OperationResult

log = structlog.get_logger()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.EMAIL_MISMATCH: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.EXPIRED: 410,
    ErrorKind.STORE_ERROR: 502,
}


class TaskFlowError(Exception):
    kind: ErrorKind = ErrorKind.STORE_ERROR
    default_message = "The operation could not be completed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        data: Any = None,
    ):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.code = code
        self.data = data

    def to_result(self) -> OperationResult:
        return OperationResult.failure(self.kind, self.message, code=self.code, data=self.data)


class NotAuthorized(TaskFlowError):
    kind = ErrorKind.NOT_AUTHORIZED
    default_message = "You are not authorized to perform this action"


class NotFound(TaskFlowError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class Conflict(TaskFlowError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflicting record already exists"


class DuplicateAssignment(Conflict):
    default_message = "User is already assigned to this task"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("code", ConflictCode.DUPLICATE_ASSIGNMENT.value)
        super().__init__(message, **kwargs)


class AlreadyInvited(Conflict):
    default_message = "An active invitation already exists for this email"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("code", ConflictCode.ALREADY_INVITED.value)
        super().__init__(message, **kwargs)


class AlreadyMember(Conflict):
    default_message = "User is already a member of this organization"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("code", ConflictCode.ALREADY_MEMBER.value)
        super().__init__(message, **kwargs)


class Expired(TaskFlowError):
    kind = ErrorKind.EXPIRED
    default_message = "This invitation has expired"


class EmailMismatch(TaskFlowError):
    kind = ErrorKind.EMAIL_MISMATCH
    default_message = "This invitation was issued for a different email address"


def _store_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def returns_result(func):
    """Convert a mutating service coroutine into one that returns OperationResult.

    The wrapped coroutine's return value becomes ``OperationResult.data``.
    Domain errors and store errors become failed results; the ``session``
    argument, when present, is rolled back so nothing half-written is
    committed by the caller.
    """
    signature = inspect.signature(func)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> OperationResult:
        session = signature.bind_partial(*args, **kwargs).arguments.get("session")
        try:
            data = await func(*args, **kwargs)
        except TaskFlowError as exc:
            if session is not None:
                await session.rollback()
            log.info(
                "operation.failed",
                operation=func.__name__,
                kind=exc.kind.value,
                code=exc.code,
                error=exc.message,
            )
            return exc.to_result()
        except IntegrityError as exc:
            if session is not None:
                await session.rollback()
            log.warning("operation.conflict", operation=func.__name__, error=_store_message(exc))
            return OperationResult.failure(ErrorKind.CONFLICT, _store_message(exc))
        except SQLAlchemyError as exc:
            if session is not None:
                await session.rollback()
            log.error("operation.store_error", operation=func.__name__, error=_store_message(exc))
            return OperationResult.failure(ErrorKind.STORE_ERROR, _store_message(exc))
        return OperationResult.ok(data)

    return wrapper


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

def _detail(kind: ErrorKind, message: Optional[str], code: Optional[str], data: Any = None) -> dict:
    detail = {"kind": kind.value, "code": code, "message": message}
    if data is not None:
        # e.g. the authoritative task state after a denied status change
        detail["data"] = jsonable_encoder(data)
    return detail


def unwrap(result: OperationResult) -> Any:
    """Return the result's data or raise the matching HTTPException."""
    if result.success:
        return result.data
    kind = result.kind or ErrorKind.STORE_ERROR
    raise HTTPException(
        status_code=STATUS_BY_KIND[kind],
        detail=_detail(kind, result.error, result.code, result.data),
    )


async def taskflow_error_handler(request: Request, exc: TaskFlowError) -> JSONResponse:
    """Exception handler for domain errors raised from read paths."""
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={"detail": _detail(exc.kind, exc.message, exc.code)},
    )
