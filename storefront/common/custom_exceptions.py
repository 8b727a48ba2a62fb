from typing import Optional
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from storefront import logger
from storefront.common.utils import build_error, json_error
from storefront.common.constants import request_id_ctx


class StorefrontError(HTTPException):
    """HTTPException carrying a stable machine-readable error code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "SERVER_ERROR"
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, headers=None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)


class Unauthorized(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_message = "Not authenticated"


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Not allowed"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class BadRequest(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    default_message = "Bad request"


class InsufficientStock(BadRequest):
    error_code = "INSUFFICIENT_STOCK"
    default_message = "Not enough stock available"


class EmptyCart(BadRequest):
    error_code = "EMPTY_CART"
    default_message = "Cart is empty"


class Conflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflict"


class PayloadTooLarge(StorefrontError):
    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"
    default_message = "Upload too large"


class GatewayError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "GATEWAY_ERROR"
    default_message = "Payment gateway unavailable"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)
    logger.warning(
        "request.validation_failed",
        extra={
            "errors": jsonable_encoder(exc.errors()),
            "path": request.url.path,
        },
    )

    payload = build_error(code="UNPROCESSABLE_ENTITY", details={"message": "invalid request", "errors": jsonable_encoder(exc.errors())}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):

    rid = request_id_ctx.get(None)

    error_code = getattr(exc, "error_code", None) or f"HTTP_{exc.status_code}"
    payload = build_error(code=error_code, details={"message": exc.detail}, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler
    )
