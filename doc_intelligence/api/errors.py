"""Mapping of domain exceptions onto HTTP responses"""
import logging

from fastapi import HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse

from ..core.exceptions import (
    AuthenticationError,
    DocumentIntelligenceException,
    DocumentNotFoundError,
    DocumentProcessingError,
    StorageError,
    ValidationError
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    DocumentNotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    DocumentProcessingError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def to_http_exception(exc: DocumentIntelligenceException) -> HTTPException:
    status_code = next(
        (code for exc_type, code in STATUS_CODES.items() if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    details = getattr(exc, "details", None)
    detail = {"message": message, **details} if details else message
    return HTTPException(status_code=status_code, detail=detail)

async def domain_exception_handler(request: Request, exc: DocumentIntelligenceException):
    http_exc = to_http_exception(exc)
    if http_exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc}")
    return await http_exception_handler(request, http_exc)

async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
