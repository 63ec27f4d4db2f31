from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from app.core.exceptions import AppError
from app.schemas.response import ErrorResponse
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _respond(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse.build(code, message, str(request.url), _request_id(request), jsonable_encoder(details))
    return JSONResponse(status_code=status_code, content=body.model_dump())

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[{_request_id(request)}] Validation error on {request.url.path}: {exc.errors()}")
    return _respond(
        request, 422, "VALIDATION_ERROR", "Request validation failed",
        details={"validation_errors": exc.errors()}
    )

async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)

    if isinstance(exc, AppError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"[{request_id}] {exc.code} ({exc.status_code}): {exc.message}", extra={"request_id": request_id})
        return _respond(request, exc.status_code, exc.code, exc.message, details=exc.details)

    if isinstance(exc, HTTPException):
        logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return _respond(request, exc.status_code, _get_error_code(exc.status_code), message)

    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return _respond(
        request, 500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred",
        details={"error_type": type(exc).__name__}
    )
