"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- client_ip
- object_key
- duration_ms

Usage:
    from upload_proxy.utils.logging import configure_logging, log_upload_stored

    configure_logging('upload-proxy', 'INFO')
    log_upload_stored(logger, object_key='uploads/...', content_type='image/png', size_bytes=1024)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. upload-proxy)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        # Create JSON formatter
        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Create console handler (for container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        # Configure root logger
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    client_ip: Optional[str] = None,
    object_key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        client_ip: Optional client identifier used for rate limiting
        object_key: Optional storage key
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if client_ip:
        extra["client_ip"] = client_ip
    if object_key:
        extra["object_key"] = object_key
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_upload_stored(
    logger: logging.Logger,
    object_key: str,
    content_type: str,
    size_bytes: int,
    duration_ms: Optional[float] = None,
    client_ip: Optional[str] = None,
    **kwargs
):
    """
    Log a successful upload.

    Args:
        logger: Logger instance
        object_key: Storage key the file was written to (required)
        content_type: Declared MIME type (required)
        size_bytes: Payload size (required)
        duration_ms: Optional storage write duration
        client_ip: Optional client identifier
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_stored",
        client_ip=client_ip,
        object_key=object_key,
        duration_ms=duration_ms,
        content_type=content_type,
        size_bytes=size_bytes,
        **kwargs
    )

    logger.info(f"Upload stored: {object_key}", extra=extra)


def log_upload_rejected(
    logger: logging.Logger,
    status: int,
    reason: str,
    client_ip: Optional[str] = None,
    **kwargs
):
    """
    Log a request refused by the pipeline (4xx).

    Args:
        logger: Logger instance
        status: HTTP status returned to the caller
        reason: Message returned to the caller
        client_ip: Optional client identifier
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_rejected",
        client_ip=client_ip,
        status=status,
        reason=reason,
        **kwargs
    )

    logger.info(f"Upload rejected ({status}): {reason}", extra=extra)


def log_storage_failure(
    logger: logging.Logger,
    object_key: str,
    error: str,
    duration_ms: Optional[float] = None,
    client_ip: Optional[str] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log a failed storage write. The error detail stays server-side.

    Args:
        logger: Logger instance
        object_key: Storage key that failed (required)
        error: Backend error message (required)
        duration_ms: Optional duration in milliseconds
        client_ip: Optional client identifier
        include_traceback: Whether to include stack trace (default: True)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        client_ip=client_ip,
        object_key=object_key,
        duration_ms=duration_ms,
        error=str(error),
        **kwargs
    )

    message = f"Storage failure: {object_key} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
        else:
            logger.error(message, extra=extra)
    else:
        logger.error(message, extra=extra)


# Convenience alias for backward compatibility
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
