"""Short-lived local HTTP listener that captures an OAuth2 authorization code.

The listener serves on a background thread and reports back through a
one-shot ``Future``: the code arrives as its result, any failure (missing
code, provider error, state mismatch) as its exception. The waiting thread
blocks on that future with a deadline.
"""

from __future__ import annotations

import logging
import socketserver
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Iterable, Optional
from urllib.parse import parse_qs, urlparse

from drive_uploader.errors import (
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
    PortUnavailableError,
)

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
DEFAULT_PORT_RANGE = range(54321, 54330)
SHUTDOWN_TIMEOUT_SECONDS = 5.0
# Idle connections are dropped after this many seconds.
HANDLER_TIMEOUT_SECONDS = 5.0

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Authorization Successful</title>
    <style>
        body { font-family: Arial, sans-serif; text-align: center; padding: 50px; }
        .success { color: #4CAF50; font-size: 24px; margin-bottom: 20px; }
        .message { color: #666; font-size: 16px; }
    </style>
</head>
<body>
    <div class="success">Authorization Successful!</div>
    <div class="message">You can close this window and return to the terminal.</div>
</body>
</html>
""".encode("utf-8")


class _CallbackHTTPServer(ThreadingHTTPServer):
    # Each connection gets its own thread, so an idle browser preconnect
    # cannot hold up the request carrying the code.
    allow_reuse_address = False
    daemon_threads = True

    def __init__(self, server_address, expected_state: Optional[str]) -> None:
        super().__init__(server_address, _CallbackHandler)
        self.expected_state = expected_state
        self.result: "Future[str]" = Future()
        self.result_lock = threading.Lock()

    def server_bind(self) -> None:
        # HTTPServer.server_bind resolves the FQDN, which can stall on some hosts.
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host
        self.server_port = port


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer
    timeout = HANDLER_TIMEOUT_SECONDS

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self._respond(404, "text/plain; charset=utf-8", b"Not found")
            return

        params = parse_qs(parsed.query)
        code = params.get("code", [""])[0]
        provider_error = params.get("error", [""])[0]
        state = params.get("state", [""])[0]
        expected = self.server.expected_state

        error: Optional[AuthorizationError] = None
        if provider_error:
            error = AuthorizationDeniedError(f"authorization denied: {provider_error}")
            status, body = 400, f"Authorization failed: {provider_error}".encode()
        elif not code:
            error = AuthorizationError("no authorization code in callback")
            status, body = 400, b"No authorization code received"
        elif expected is not None and state != expected:
            error = AuthorizationError("state mismatch in authorization callback")
            status, body = 400, b"Invalid state parameter"

        with self.server.result_lock:
            result = self.server.result
            if result.done():
                self._respond(409, "text/plain; charset=utf-8", b"Authorization already received")
                return
            if error is not None:
                result.set_exception(error)
            else:
                result.set_result(code)

        if error is not None:
            self._respond(status, "text/plain; charset=utf-8", body)
        else:
            self._respond(200, "text/html; charset=utf-8", SUCCESS_PAGE)

    def _respond(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("callback server: " + format, *args)


class CallbackServer:
    """Local listener on the first free port of ``port_range``.

    Use as a context manager so the port is released on every exit path::

        with CallbackServer(expected_state=state) as server:
            code = server.wait_for_code(timeout=300)
    """

    def __init__(
        self,
        port_range: Iterable[int] = DEFAULT_PORT_RANGE,
        *,
        host: str = "localhost",
        expected_state: Optional[str] = None,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT_SECONDS,
    ) -> None:
        self.port_range = list(port_range)
        self.host = host
        self.expected_state = expected_state
        self.shutdown_timeout = shutdown_timeout
        self._server: Optional[_CallbackHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("callback server is not running")
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}{CALLBACK_PATH}"

    def start(self) -> "CallbackServer":
        """Bind the first available port and start serving.

        Raises:
            PortUnavailableError: If every port in the range is taken
        """
        for port in self.port_range:
            try:
                self._server = _CallbackHTTPServer((self.host, port), self.expected_state)
            except OSError as exc:
                logger.debug("Port %d unavailable: %s", port, exc)
                continue
            break
        else:
            ports = f"{self.port_range[0]}-{self.port_range[-1]}" if self.port_range else "(empty)"
            raise PortUnavailableError(f"no available ports found in range {ports}")

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="oauth-callback-server",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback server listening on %s", self.redirect_uri)
        return self

    def wait_for_code(self, timeout: float) -> str:
        """Block until the callback delivers a code, an error, or ``timeout`` passes.

        Raises:
            AuthorizationTimeoutError: If nothing arrives in time
            AuthorizationError: If the callback reported a failure
        """
        if self._server is None:
            raise RuntimeError("callback server is not running")
        try:
            return self._server.result.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise AuthorizationTimeoutError(
                f"no authorization callback received within {timeout:g} seconds"
            ) from exc

    def shutdown(self) -> None:
        """Stop serving and release the port, waiting at most ``shutdown_timeout``."""
        server, thread = self._server, self._thread
        if server is None:
            return
        stopper = threading.Thread(target=server.shutdown, daemon=True)
        stopper.start()
        stopper.join(self.shutdown_timeout)
        if stopper.is_alive():
            logger.warning(
                "Callback server did not stop within %.0f seconds", self.shutdown_timeout
            )
        try:
            server.server_close()
        except OSError as exc:
            logger.warning("Error closing callback server: %s", exc)
        if thread is not None:
            thread.join(self.shutdown_timeout)
        self._server = None
        self._thread = None

    def __enter__(self) -> "CallbackServer":
        if self._server is None:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


__all__ = ["CALLBACK_PATH", "CallbackServer", "DEFAULT_PORT_RANGE", "SUCCESS_PAGE"]
