"""
Error taxonomy and HTTP envelope mapping

Every core operation either returns its value or raises exactly one
LMSError subclass. The handlers below turn them into
{"status": "fail", "code": ..., "message": ...} responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class LMSError(Exception):
    status_code = 400
    code = "BadRequest"
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(LMSError):
    status_code = 404
    code = "NotFound"
    default_message = "Resource not found"


class Forbidden(LMSError):
    status_code = 403
    code = "Forbidden"
    default_message = "You are not authorized to perform this action"


class NotPublished(Forbidden):
    code = "NotPublished"
    default_message = "This resource is not published yet"


class ValidationError(LMSError):
    status_code = 400
    code = "ValidationError"
    default_message = "Invalid input"


class AlreadyEnrolled(LMSError):
    status_code = 400
    code = "AlreadyEnrolled"
    default_message = "You are already enrolled in this course"


class DueDatePassed(LMSError):
    status_code = 400
    code = "DueDatePassed"
    default_message = "The due date for this assignment has passed"


def fail_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "fail", "code": code, "message": message},
    )


def success(data: dict = None, message: str = None, **extra) -> dict:
    """Build the success envelope"""
    body = {"status": "success"}
    if message:
        body["message"] = message
    body.update(extra)
    if data is not None:
        body["data"] = data
    return body


# ==================== HANDLERS ====================

async def lms_error_handler(request: Request, exc: LMSError):
    logger.warning(
        "%s %s denied: %s (%s)", request.method, request.url.path, exc.code, exc.message
    )
    return fail_response(exc.status_code, exc.message, exc.code)


async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return fail_response(exc.status_code, message, "HTTPError")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "invalid"))
    return fail_response(400, "; ".join(parts) or "Invalid input", ValidationError.code)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return fail_response(500, "Internal server error", "InternalError")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(LMSError, lms_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
