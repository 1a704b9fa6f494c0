"""Error types raised by the API and the handlers that render them."""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

logger = logging.getLogger("udyam")


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class InfrastructureError(AppError):
    code = "infrastructure_error"
    status_code = 500


def _error_payload(code: str, message: str) -> dict:
    return {"error": message, "code": code}


async def app_error_handler(request: Request, exc: AppError):
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"path": request.url.path, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.code, exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    status_code = exc.status_code
    headers = exc.headers
    is_api = request.url.path.startswith("/api")
    # a known /api path hit with the wrong method is reported like any unknown endpoint
    if status_code == 405 and is_api:
        status_code = 404
        headers = None

    if status_code == 404:
        code = "not_found"
        message = "API endpoint not found" if is_api else "Route not found"
    else:
        code = "http_error"
        message = exc.detail if exc.detail else "HTTP error"
    logger.warning("http.error", extra={"path": request.url.path, "error_code": code, "status": status_code})
    return JSONResponse(status_code=status_code, content=_error_payload(code, message), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("request.invalid", extra={"path": request.url.path})
    return JSONResponse(status_code=400, content=_error_payload("validation_error", "Invalid request body"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=True, extra={"path": request.url.path, "error_code": "internal_error"})
    return JSONResponse(status_code=500, content=_error_payload("internal_error", "Something went wrong!"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
