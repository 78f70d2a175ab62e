"""Map ordering errors onto HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from ordering.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    OperationNotPermitted,
    OrderingError,
    SignatureError,
)

STATUS_CODES = {
    SignatureError: 400,
    NotFoundError: 404,
    OperationNotPermitted: 403,
    ConflictError: 409,
    DependencyError: 502,
}


def error_status(exc: Exception) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def _ordering_error(request: Request, exc: OrderingError) -> JSONResponse:
    return JSONResponse(status_code=error_status(exc), content={"error": exc.message})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.messages})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, _ordering_error)
    app.add_exception_handler(ValidationError, _validation_error)
