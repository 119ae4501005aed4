"""
Image upload endpoint.

The editor posts one image as multipart/form-data; the proxy validates it,
writes it to R2 and answers with the object's public URL.

Pipeline (first failure wins, nothing is retried):
1. OPTIONS preflight -> 204 with CORS headers
2. Method must be POST
3. Origin must match ALLOWED_ORIGIN when one is configured
4. X-Upload-Api-Key must equal UPLOAD_API_KEY
5. Per-IP rate limit
6. Body must carry exactly one "file" part
7. File type must be an allowed image type
8-9. Generate a key and write the bytes to storage
10. Return {"url": ...}
"""
import asyncio
import logging
import secrets
import time
from typing import Optional, Set, Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile

from upload_proxy.api.cors import build_cors_headers, configured_origin
from upload_proxy.api.errors import (
    InvalidPayload,
    MethodNotAllowed,
    OriginForbidden,
    StorageUnavailable,
    TooManyRequests,
    Unauthorized,
    UnsupportedFileType,
    UploadError,
)
from upload_proxy.config import settings
from upload_proxy.schemas.upload import ErrorResponse, UploadResponse
from upload_proxy.services.rate_limiter import RateLimiter, get_rate_limiter
from upload_proxy.storage.keys import (
    allowed_types_description,
    build_public_url,
    generate_object_key,
    get_extension,
)
from upload_proxy.storage.r2_client import R2Client, get_r2_client
from upload_proxy.utils.logging import log_storage_failure, log_upload_rejected, log_upload_stored
from upload_proxy.utils.metrics import (
    rate_limited_total,
    storage_errors_total,
    storage_write_duration_seconds,
    upload_bytes_total,
    uploads_rejected_total,
    uploads_stored_total,
)

logger = logging.getLogger(__name__)

router = APIRouter()

API_KEY_HEADER = "X-Upload-Api-Key"
FILE_FIELD = "file"
UNKNOWN_CLIENT = "unknown"

# Verbs routed to the handler; anything else is refused by the router with 405.
HANDLED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_storage() -> R2Client:
    """FastAPI dependency for the storage backend (overridable in tests)."""
    return get_r2_client()


def get_client_ip(request: Request) -> str:
    """
    Client identifier for rate limiting.

    Trusts the IP header injected by the edge platform. Without it every
    caller shares the "unknown" bucket.
    """
    return request.headers.get(settings.client_ip_header, UNKNOWN_CLIENT)


def verify_origin(request_origin: Optional[str]) -> None:
    configured = configured_origin()
    if configured and request_origin != configured:
        raise OriginForbidden()


def verify_api_key(api_key: Optional[str]) -> None:
    expected = settings.upload_api_key
    if not expected or api_key is None:
        raise Unauthorized()
    if not secrets.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8")):
        raise Unauthorized()


def enforce_rate_limit(limiter: RateLimiter, client_ip: str) -> None:
    if not limiter.check_and_increment(client_ip):
        rate_limited_total.inc()
        raise TooManyRequests()


async def read_upload_file(request: Request) -> Tuple[str, bytes]:
    """
    Extract the single "file" part from a multipart body.

    The parsed form is closed before returning, so spooled parts are
    released whether or not the body was valid.

    Returns:
        (declared content type, file bytes)

    Raises:
        InvalidPayload: If the body cannot be parsed, or "file" is missing,
            repeated, or not a file
    """
    try:
        form = await request.form()
    except Exception as e:
        logger.debug(f"Failed to parse upload form: {e}")
        raise InvalidPayload()

    try:
        uploads = form.getlist(FILE_FIELD)
        if len(uploads) != 1 or not isinstance(uploads[0], UploadFile):
            raise InvalidPayload()
        upload = uploads[0]
        return upload.content_type or "", await upload.read()
    finally:
        await form.close()


def resolve_extension(content_type: str) -> str:
    extension = get_extension(content_type)
    if extension is None:
        raise UnsupportedFileType(content_type, allowed_types_description())
    return extension


# Strong references to cleanup tasks still running after their request ended
_pending_cleanups: Set["asyncio.Future[None]"] = set()


async def discard_late_object(storage: R2Client, object_key: str, put_task: "asyncio.Future[None]") -> None:
    """Wait for a put that outlived its deadline, then delete what it wrote."""
    try:
        await put_task
    except Exception as e:
        logger.debug(f"Timed-out put for {object_key} failed, nothing to discard: {e}")
        return

    if await asyncio.to_thread(storage.delete_object, object_key):
        logger.info(
            f"Discarded late object: {object_key}",
            extra={"event": "late_object_discarded", "object_key": object_key},
        )


async def store_upload(
    storage: R2Client,
    object_key: str,
    content: bytes,
    content_type: str,
    client_ip: str
) -> None:
    """
    Write the payload to storage within STORAGE_TIMEOUT_SECONDS.

    The put runs in a worker thread that cannot be cancelled. On timeout
    the caller gets the same 502 as any other failure, and the object is
    deleted once the late put completes so a failed upload leaves nothing
    behind.
    """
    start_time = time.time()
    put_task = asyncio.ensure_future(
        asyncio.to_thread(storage.put_object, object_key, content, content_type)
    )
    try:
        await asyncio.wait_for(
            asyncio.shield(put_task),
            timeout=settings.storage_timeout_seconds,
        )
    except asyncio.TimeoutError:
        duration_ms = (time.time() - start_time) * 1000
        storage_errors_total.labels(error_type="timeout").inc()
        log_storage_failure(
            logger,
            object_key=object_key,
            error=f"timed out after {settings.storage_timeout_seconds}s",
            duration_ms=duration_ms,
            client_ip=client_ip,
            include_traceback=False,
        )
        cleanup = asyncio.ensure_future(discard_late_object(storage, object_key, put_task))
        _pending_cleanups.add(cleanup)
        cleanup.add_done_callback(_pending_cleanups.discard)
        raise StorageUnavailable()
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        storage_errors_total.labels(error_type=type(e).__name__).inc()
        log_storage_failure(
            logger,
            object_key=object_key,
            error=str(e),
            duration_ms=duration_ms,
            client_ip=client_ip,
        )
        raise StorageUnavailable()

    duration_ms = (time.time() - start_time) * 1000
    storage_write_duration_seconds.observe(duration_ms / 1000)
    log_upload_stored(
        logger,
        object_key=object_key,
        content_type=content_type,
        size_bytes=len(content),
        duration_ms=duration_ms,
        client_ip=client_ip,
    )


@router.api_route(
    "/{path:path}",
    methods=HANDLED_METHODS,
    response_model=UploadResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_405_METHOD_NOT_ALLOWED: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    },
)
async def handle_upload(
    request: Request,
    storage: R2Client = Depends(get_storage),
    limiter: RateLimiter = Depends(get_rate_limiter)
):
    """
    Upload one image and return its public URL.

    Expects multipart/form-data with a single "file" part and the shared
    secret in X-Upload-Api-Key. Answers on any path.
    """
    request_origin = request.headers.get("Origin")
    cors_headers = build_cors_headers(request_origin)

    # CORS preflight
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers)

    client_ip = get_client_ip(request)

    try:
        if request.method != "POST":
            raise MethodNotAllowed()

        verify_origin(request_origin)
        verify_api_key(request.headers.get(API_KEY_HEADER))
        enforce_rate_limit(limiter, client_ip)

        content_type, content = await read_upload_file(request)
        extension = resolve_extension(content_type)
    except UploadError as exc:
        uploads_rejected_total.labels(reason=type(exc).__name__).inc()
        log_upload_rejected(logger, status=exc.status_code, reason=exc.message, client_ip=client_ip)
        raise

    object_key = generate_object_key(extension)
    await store_upload(storage, object_key, content, content_type, client_ip)

    uploads_stored_total.labels(content_type=content_type).inc()
    upload_bytes_total.inc(len(content))

    url = build_public_url(settings.r2_public_url, object_key)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=UploadResponse(url=url).model_dump(),
        headers=cors_headers,
    )
