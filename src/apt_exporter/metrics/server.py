"""HTTP surface: metrics endpoint and landing page."""

from __future__ import annotations

import socket
import threading
from socketserver import ThreadingMixIn
from typing import Any, Callable, Iterable
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from apt_exporter.core.errors import ListenError
from apt_exporter.core.logging import get_logger

log = get_logger(__name__)

LANDING_PAGE = """<html>
<head><title>APT Exporter</title></head>
<body>
<h1>APT Exporter</h1>
<p><a href='{path}'>Metrics</a></p>
</body>
</html>
"""


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each request in its own thread."""

    daemon_threads = True


class ThreadingWSGIServerV6(ThreadingWSGIServer):
    """IPv6 variant, selected for hosts such as `::` or `::1`."""

    address_family = socket.AF_INET6


class QuietHandler(WSGIRequestHandler):
    """Request handler logging through structlog instead of stderr."""

    def log_message(self, format: str, *args: Any) -> None:
        log.debug("http_request", client=self.address_string(), request=format % args)


def make_app(registry: CollectorRegistry, telemetry_path: str) -> Callable:
    """Build the WSGI application.

    Args:
        registry: Registry holding the exporter's collectors.
        telemetry_path: Path serving the metrics payload.

    Returns:
        A WSGI application.
    """
    metrics_app = make_wsgi_app(registry)
    landing = LANDING_PAGE.format(path=telemetry_path).encode("utf-8")

    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"

        if path == telemetry_path:
            return metrics_app(environ, start_response)

        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [landing]

        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"404 page not found\n"]

    return app


class MetricsServer:
    """Serves the WSGI application from a background thread."""

    def __init__(self, app: Callable, host: str, port: int) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._httpd: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def start(self) -> None:
        """Bind the listener and start serving.

        Raises:
            ListenError: If the address cannot be bound.
        """
        try:
            self._httpd = make_server(
                self.host, self.port, self.app,
                server_class=ThreadingWSGIServerV6 if ":" in self.host else ThreadingWSGIServer,
                handler_class=QuietHandler,
            )
        except OSError as e:
            raise ListenError(address=self.address, error=e.strerror or str(e)) from e

        self.port = self._httpd.server_port
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="metrics-http", daemon=True
        )
        self._thread.start()
        log.info("listening", address=self.address)

    def stop(self) -> None:
        if self._httpd is None:
            return

        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
        log.info("listener_closed", address=self.address)
