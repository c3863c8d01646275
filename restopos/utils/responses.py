"""
Standardized response utilities
"""

import logging
from typing import Any, Optional
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError
from sqlalchemy.exc import SQLAlchemyError

from restopos.schemas.common import StandardResponse, ErrorResponse
from restopos.services.exceptions import RecordNotFound, TableCloseError, ValidationFailed

logger = logging.getLogger(__name__)

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    # python-mode dump keeps Decimal, which the encoder turns into a JSON number
    return JSONResponse(
        content=jsonable_encoder(response.model_dump()),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=jsonable_encoder(response.model_dump()),
        status_code=status_code
    )

def not_found_error(resource: str = "Resource"):
    """Create not found error"""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{resource} not found"
    )

def unauthorized_error(message: str = "Unauthorized"):
    """Create unauthorized error"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message
    )

def rate_limit_error():
    """Create rate limit error"""
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later."
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Map service exceptions to standardized error responses"""

    @app.exception_handler(RecordNotFound)
    async def record_not_found_handler(request: Request, exc: RecordNotFound):
        return error_response(
            message=str(exc),
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND
        )

    @app.exception_handler(ValidationFailed)
    async def validation_failed_handler(request: Request, exc: ValidationFailed):
        return error_response(
            message=exc.message,
            error_code=exc.error_code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    @app.exception_handler(TableCloseError)
    async def table_close_error_handler(request: Request, exc: TableCloseError):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return error_response(
            message=TableCloseError.STEP_MESSAGES.get(exc.step, "Table could not be closed"),
            error_code=f"close_failed:{exc.step}",
            details={"step": exc.step, "reason": exc.reason},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"{request.method} {request.url.path}: database error: {exc}")
        return error_response(
            message="Database error",
            error_code="store_error",
            details=exc.__class__.__name__,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    @app.exception_handler(GoogleAPIError)
    async def firestore_error_handler(request: Request, exc: GoogleAPIError):
        logger.error(f"{request.method} {request.url.path}: Firebase error: {exc}")
        return error_response(
            message=str(exc),
            error_code="store_error",
            status_code=status.HTTP_502_BAD_GATEWAY
        )
