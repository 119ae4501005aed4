"""
CORS headers for the upload endpoint.

Computed per request rather than through CORSMiddleware: the preflight
is answered by the upload handler itself and every response, errors
included, carries the same headers.
"""
from typing import Dict, Optional

from upload_proxy.config import settings

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, X-Upload-Api-Key"
MAX_AGE_SECONDS = "86400"


def configured_origin() -> str:
    """The single origin uploads are restricted to, or "" for any origin."""
    return (settings.allowed_origin or "").strip()


def get_allowed_origin(request_origin: Optional[str]) -> str:
    configured = configured_origin()
    if configured:
        return configured
    return request_origin if request_origin is not None else "*"


def build_cors_headers(request_origin: Optional[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": get_allowed_origin(request_origin),
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Max-Age": MAX_AGE_SECONDS,
    }
