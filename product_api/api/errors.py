import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from product_api.exceptions import ProductServiceError
from product_api.schemas.product import Envelope

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    """Wrap an error message into the response envelope."""
    envelope = Envelope(success=False, error=message)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(exclude_none=True),
        headers=headers,
    )


async def product_error_handler(request: Request, exc: ProductServiceError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies and wrongly typed fields as a bad request."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {details}")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.add_exception_handler(ProductServiceError, product_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
