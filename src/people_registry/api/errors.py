"""Translation of failures and rejected input into HTTP responses.

=====================================  ======
failure                                status
=====================================  ======
validation-classified, malformed value 400
Unauthorized                           401
Forbidden                              403
NotFound                               404
conflict-classified                    409
ServiceUnavailable                     503
Error, anything else                   500
=====================================  ======

500 responses never carry the underlying message; it is logged instead.
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn, TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from people_registry.core.enums import FailureKind
from people_registry.core.errors import ValidationError
from people_registry.domain.result import Error, FailureReason, Result, ValidationFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERNAL_ERROR_MESSAGE = "Internal server error"

_STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.VALIDATION: 400,
    FailureKind.UNAUTHORIZED: 401,
    FailureKind.FORBIDDEN: 403,
    FailureKind.NOT_FOUND: 404,
    FailureKind.CONFLICT: 409,
    FailureKind.UNAVAILABLE: 503,
}


class ResultFailure(Exception):
    """Carries a ``FailureReason`` out of a route to the exception handler."""

    def __init__(self, reason: FailureReason):
        super().__init__(type(reason).__name__)
        self.reason = reason


def _raise(reason: FailureReason) -> NoReturn:
    raise ResultFailure(reason)


def unwrap(result: Result[T]) -> T:
    """Return the success value or raise :class:`ResultFailure`."""
    return result.fold(lambda value: value, _raise)


def status_for(reason: FailureReason) -> int:
    return _STATUS_BY_KIND.get(reason.kind, 500)


def failure_body(reason: FailureReason) -> dict[str, Any]:
    match reason:
        case Error(message=message, cause=cause):
            logger.error("Request failed: %s", message, exc_info=cause)
            return {"error": INTERNAL_ERROR_MESSAGE, "kind": reason.kind.value}
        case ValidationFailed(message=message, field_errors=field_errors):
            body: dict[str, Any] = {"error": message, "kind": reason.kind.value}
            if field_errors:
                body["field_errors"] = dict(field_errors)
            return body
        case _ if status_for(reason) == 500:
            logger.error("Unmapped failure reason %s", type(reason).__name__)
            return {"error": INTERNAL_ERROR_MESSAGE, "kind": reason.kind.value}
        case _:
            return {"error": reason.message, "kind": reason.kind.value}


def failure_response(reason: FailureReason) -> JSONResponse:
    return JSONResponse(status_code=status_for(reason), content=failure_body(reason))


def _request_validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        cause = (err.get("ctx") or {}).get("error")
        if isinstance(cause, ValueError):
            return str(cause)
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        return f"{location}: {err.get('msg', 'invalid value')}" if location else err.get("msg", "")
    return "Invalid request"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ResultFailure)
    async def _on_failure(request: Request, exc: ResultFailure) -> JSONResponse:
        return failure_response(exc.reason)

    @app.exception_handler(ValidationError)
    async def _on_invalid_value(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _on_invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _request_validation_message(exc)})
