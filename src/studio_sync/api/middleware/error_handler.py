"""
Global error handling middleware.
"""

import time
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError

from studio_sync.services.provisioning import PHASE_VALIDATION
from studio_sync.utils.logger import get_logger
from studio_sync.utils.exceptions import (
    StudioSyncError,
    AuthenticationError,
    NotFoundError,
    ProvisioningError,
    SheetsNotFoundError,
    SyncError,
    ValidationError,
)

logger = get_logger(__name__)


def _status_for(exc: StudioSyncError) -> int:
    if isinstance(exc, ProvisioningError):
        if exc.phase == PHASE_VALIDATION:
            return status.HTTP_400_BAD_REQUEST
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, (NotFoundError, SheetsNotFoundError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SyncError) and isinstance(exc.cause, SheetsNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, AuthenticationError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(exc: StudioSyncError) -> JSONResponse:
    """Build the JSON error body for an application error."""
    content = {
        "success": False,
        "error": exc.message,
    }
    if isinstance(exc, ProvisioningError):
        content["phase"] = exc.phase
        if exc.created_resources:
            content["createdResources"] = exc.created_resources
    elif exc.details:
        content["details"] = {key: str(value) for key, value in exc.details.items()}
    
    return JSONResponse(status_code=_status_for(exc), content=content)


async def studio_sync_error_handler(request: Request, exc: StudioSyncError) -> JSONResponse:
    response = error_response(exc)
    if response.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    missing = [".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()]
    logger.warning(f"Invalid request body for {request.url.path}: {missing}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": f"Missing or invalid fields: {', '.join(missing)}",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map application errors and request validation errors to JSON responses."""
    app.add_exception_handler(StudioSyncError, studio_sync_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request logging and a last-resort error response.
    """
    
    async def dispatch(self, request: Request, call_next):
        """Process request with error handling."""
        start_time = time.time()
        
        try:
            response = await call_next(request)
            
            # Log request
            duration = time.time() - start_time
            logger.info(
                f"{request.method} {request.url.path} - {response.status_code} - {duration:.3f}s"
            )
            
            return response
        
        except StudioSyncError as e:
            return error_response(e)
        
        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error: {e}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": "A database error occurred"
                }
            )
        
        except Exception as e:
            logger.error(f"Unhandled exception: {e}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": "An unexpected error occurred"
                }
            )
