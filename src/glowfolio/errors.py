"""Error taxonomy and the handlers that render it as JSON.

Every failure leaves the API as ``{"success": false, "error": {"code", "message"}}``.
Expected failures are raised as :class:`AppError` and rendered verbatim; anything
else is logged and replaced with a generic message in production.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DataError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Interní chyba serveru"


class AppError(Exception):
    """An expected, operational error with a stable code and a Czech message."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def error_body(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    error.update(extra)
    return {"success": False, "error": error}


def error_response(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, **extra))


# Validation
def missing_credentials() -> AppError:
    return AppError(
        status.HTTP_400_BAD_REQUEST,
        "MISSING_CREDENTIALS",
        "Uživatelské jméno a heslo jsou povinné",
    )


def invalid_category_id() -> AppError:
    return AppError(status.HTTP_400_BAD_REQUEST, "INVALID_CATEGORY_ID", "Neplatné ID kategorie")


def invalid_image_id() -> AppError:
    return AppError(status.HTTP_400_BAD_REQUEST, "INVALID_IMAGE_ID", "Neplatné ID obrázku")


# Not found
def category_not_found() -> AppError:
    return AppError(status.HTTP_404_NOT_FOUND, "CATEGORY_NOT_FOUND", "Kategorie nebyla nalezena")


def image_not_found() -> AppError:
    return AppError(status.HTTP_404_NOT_FOUND, "IMAGE_NOT_FOUND", "Obrázek nebyl nalezen")


# Unauthorized
def invalid_credentials() -> AppError:
    return AppError(
        status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Neplatné přihlašovací údaje"
    )


def _sqlstate(exc: Exception) -> str | None:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _integrity_error_kind(exc: IntegrityError) -> str:
    orig = getattr(exc, "orig", None)
    pgcode = _sqlstate(exc)
    if pgcode == "23505":
        return "unique"
    if pgcode == "23503":
        return "foreign_key"
    text = str(orig or exc).lower()
    if "foreign key" in text:
        return "foreign_key"
    if "unique" in text or "duplicate" in text:
        return "unique"
    return "other"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.message
        )
    return error_response(exc.status_code, exc.code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Chyba validace dat")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(
            exc.status_code, "NOT_FOUND", f"Cesta {request.url.path} nebyla nalezena"
        )
    return error_response(
        exc.status_code,
        "HTTP_ERROR",
        str(exc.detail),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "rate limit exceeded for %s on %s %s",
        request.client.host if request.client else "-",
        request.method,
        request.url.path,
    )
    return error_response(status.HTTP_429_TOO_MANY_REQUESTS, "TOO_MANY_REQUESTS", str(exc.detail))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    kind = _integrity_error_kind(exc)
    if kind == "unique":
        return error_response(status.HTTP_409_CONFLICT, "DUPLICATE_ENTRY", "Záznam již existuje")
    if kind == "foreign_key":
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_REFERENCE",
            "Neplatný odkaz na související data",
        )
    return await unhandled_error_handler(request, exc)


async def data_error_handler(request: Request, exc: DataError) -> JSONResponse:
    # 22P02: Postgres could not parse a value for its column type
    if _sqlstate(exc) == "22P02":
        logger.warning("invalid data format on %s %s: %s", request.method, request.url.path, exc.orig)
        return error_response(
            status.HTTP_400_BAD_REQUEST, "INVALID_DATA_FORMAT", "Neplatný formát dat"
        )
    return await unhandled_error_handler(request, exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    settings = request.app.state.context.settings
    message = SERVER_ERROR_MESSAGE if settings.is_production else (str(exc) or SERVER_ERROR_MESSAGE)
    extra: Dict[str, Any] = {}
    if settings.is_development:
        extra["details"] = {"originalError": type(exc).__name__}
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERVER_ERROR", message, **extra)


def register_error_handlers(app: FastAPI) -> None:
    """Install the central handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DataError, data_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
