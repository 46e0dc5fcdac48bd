# errors.py
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .i18n import t


class AppError(HTTPException):
    """HTTPException whose message is looked up in the locale catalog.

    ``default`` is the English text, used whenever the catalog has no entry
    for the request locale. ``extra`` is merged into the response body.
    """

    def __init__(self, status_code: int, key: str, default: str, extra: dict = None, headers: dict = None):
        super().__init__(status_code=status_code, detail=default, headers=headers)
        self.key = key
        self.default = default
        self.extra = extra or {}


def error_body(message, errors=None, extra=None):
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if extra:
        body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, AppError):
        content = error_body(t(request, exc.key, exc.default), extra=exc.extra)
    else:
        content = error_body(exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def field_errors(errors):
    return [
        {
            "field": ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path", "form")),
            "message": err["msg"],
        }
        for err in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(t(request, "validation.error", "Validation error"), errors=field_errors(exc.errors())),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logging.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(t(request, "error.internal", "Internal server error")),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
