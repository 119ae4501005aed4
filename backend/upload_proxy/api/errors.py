"""
Upload error taxonomy and JSON error responses.

Every failure in the upload pipeline is terminal: the handler raises one
of these and it is rendered as {"error": message} with CORS headers.
Messages are fixed strings; backend details never reach the caller.
"""
import logging
from typing import Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from upload_proxy.api.cors import build_cors_headers
from upload_proxy.schemas.upload import ErrorResponse

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Base class for failures that end an upload request."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad request"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MethodNotAllowed(UploadError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    message = "Method not allowed"


class OriginForbidden(UploadError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Origin not allowed"


class Unauthorized(UploadError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class TooManyRequests(UploadError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests. Please wait a minute and try again."


class BadRequest(UploadError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPayload(BadRequest):
    message = 'Invalid request. Expected multipart/form-data with a "file" field.'


class UnsupportedFileType(BadRequest):
    def __init__(self, content_type: str, allowed: str):
        self.content_type = content_type
        super().__init__(f'Unsupported file type "{content_type}". Allowed types: {allowed}')


class StorageUnavailable(UploadError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Upload to storage failed. Please try again."


def error_response(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
    headers = build_cors_headers(request.headers.get("Origin"))
    return error_response(exc.status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing-level errors (e.g. an unlisted verb) in the same JSON shape."""
    headers = build_cors_headers(request.headers.get("Origin"))
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = MethodNotAllowed.message
    else:
        message = str(exc.detail)
    return error_response(exc.status_code, message, headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error for {request.method} {request.url.path}: {exc}")
    headers = build_cors_headers(request.headers.get("Origin"))
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        headers,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(UploadError, upload_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
