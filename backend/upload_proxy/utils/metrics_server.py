"""
Prometheus exposition server for the upload proxy.

The upload endpoint answers on every path of the main app, so metrics
are served from a separate port instead of a /metrics route.
"""
import logging
from wsgiref.simple_server import WSGIServer

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_metrics_server(port: int = 9090, host: str = '0.0.0.0') -> WSGIServer:
    """
    Start the Prometheus metrics server in a daemon thread.

    Args:
        port: Port to listen on (0 picks a free one)
        host: Interface to bind

    Returns:
        The running server; call shutdown() and server_close() to stop it
    """
    try:
        server, _thread = start_http_server(port, addr=host)
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {port}: {e}")
        raise

    logger.info(f"Metrics server started on port {server.server_address[1]}")
    return server
