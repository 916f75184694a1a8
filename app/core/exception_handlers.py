"""
Maps domain exceptions to JSON responses with a consistent error format:

    {"success": false, "message": "...", ...}
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info(f"Rejected request to {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": exc.message, "fields": exc.fields},
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # loc is ("body" | "query" | ..., field, *nested); report the top-level field name
    fields = []
    for error in exc.errors():
        loc = error.get("loc") or ()
        if len(loc) > 1 and isinstance(loc[1], str) and loc[1] not in fields:
            fields.append(loc[1])
    logger.info(f"Rejected malformed request to {request.url.path}: {fields}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Invalid request data", "fields": fields},
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "message": exc.message},
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc.cause or exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": exc.message, "error": exc.cause or exc.message},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(StoreError, store_error_handler)
