# app/core/errors.py
"""
Error envelope for the API.

Services keep raising ``HTTPException`` the usual way. ``AppError`` adds a
machine-readable ``code`` and optional field-level ``errors`` on top of it.

Every failure leaves the API as:

    {"success": false, "message": "...", "code": "...", "errors": [...]}

``code`` and ``errors`` are omitted when not set.
"""
import logging
import traceback
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Checkout / order error codes
EMPTY_CART = "EMPTY_CART"
PRODUCT_GONE = "PRODUCT_GONE"
PRODUCT_INACTIVE = "PRODUCT_INACTIVE"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
INVALID_ADDRESS = "INVALID_ADDRESS"
INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"
INVALID_COUPON = "INVALID_COUPON"
PAYMENT_DECLINED = "PAYMENT_DECLINED"
VALIDATION_ERROR = "VALIDATION_ERROR"


class AppError(HTTPException):
    """
    HTTPException carrying an error code and optional field errors.

    Args:
        status_code: HTTP status to return.
        message: human-readable message (becomes ``detail``).
        code: stable machine code, e.g. ``EMPTY_CART``.
        errors: list of ``{"field": ..., "message": ...}`` dicts.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.errors = errors


def error_body(
    message: str,
    code: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return body


def _message_from_detail(detail: Any) -> tuple[str, list[dict[str, Any]] | None]:
    # detail may be a plain string or a {"message": ..., "items": [...]} dict
    if isinstance(detail, dict):
        message = str(detail.get("message") or "Request failed")
        items = detail.get("items") or detail.get("errors")
        return message, items
    return str(detail), None


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = getattr(exc, "code", None)
    errors = getattr(exc, "errors", None)
    message, detail_errors = _message_from_detail(exc.detail)

    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, message)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code, errors or detail_errors),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # drop the leading "body"/"query"/"path" location segment
        loc = [str(part) for part in err.get("loc", ())][1:]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})

    logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", VALIDATION_ERROR, errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Internal server error on %s %s", request.method, request.url.path)

    body = error_body("Internal Server Error")
    if get_settings().is_development:
        body["errorDetails"] = {
            "name": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        }
        body["stack"] = traceback.format_exception(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
