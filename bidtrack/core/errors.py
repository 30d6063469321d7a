# bidtrack/core/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(ValueError):
    """
    Base for service-layer validation failures.
    Subclasses ValueError so callers catching ValueError keep working.
    """

    code = "domain_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404


class ConflictError(DomainError):
    code = "conflict"
    status_code = 409


class DuplicateNameError(ConflictError):
    code = "duplicate_name"


class DuplicatePositionError(ConflictError):
    code = "duplicate_position"


class DuplicateTransitionError(ConflictError):
    code = "duplicate_transition"


class ConcurrentModificationError(ConflictError):
    code = "concurrent_modification"


class InvalidPositionError(DomainError):
    code = "invalid_position"


class ProtectedStatusError(DomainError):
    code = "protected_status"


class InvalidStatusError(DomainError):
    code = "invalid_status"


class TransitionNotAllowedError(DomainError):
    code = "transition_not_allowed"


class CommentBidMismatchError(DomainError):
    code = "comment_bid_mismatch"


def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "domain error",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "code": exc.code,
            "detail": exc.message,
            "path": request.url.path,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def _permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={"detail": str(exc), "code": "forbidden"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(PermissionError, _permission_error_handler)
