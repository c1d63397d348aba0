"""Exception taxonomy and HTTP error mapping."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ShopError(Exception):
    """Base exception for all shop service errors"""
    status_code = 500

    def __init__(self, message: str, code: str = "shop_error"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationError(ShopError):
    """Malformed input or a reference to a row that does not exist"""
    status_code = 400

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message=message, code="validation_error")


class NotFoundError(ShopError):
    """Requested resource id is absent"""
    status_code = 404

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource} {resource_id} not found",
            code="not_found"
        )


class ConflictError(ShopError):
    """Write rejected by a constraint or by the current row state"""
    status_code = 409

    def __init__(self, message: str, code: str = "conflict"):
        super().__init__(message=message, code=code)


class DuplicateError(ConflictError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(
            message=f"{field} '{value}' is already taken",
            code="duplicate"
        )


class InsufficientStockError(ConflictError):
    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            message=(
                f"Insufficient stock for product {product_id}: "
                f"requested {requested}, available {available}"
            ),
            code="insufficient_stock"
        )


class InvalidStatusTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            message=f"Cannot move order from '{current}' to '{requested}'",
            code="invalid_status_transition"
        )


class InactiveUserError(ConflictError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(
            message=f"User {user_id} is inactive",
            code="inactive_user"
        )


def _error_body(code: str, detail) -> dict:
    return {"error": code, "detail": detail}


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Shop error", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed", extra={"path": request.url.path})
    return JSONResponse(
        status_code=400,
        content=_error_body("validation_error", jsonable_encoder(exc.errors()))
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Unhandled database error: {exc}")
    return JSONResponse(
        status_code=500,
        content=_error_body("database_error", "An unexpected database error occurred")
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP responses."""
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
