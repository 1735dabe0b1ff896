"""Integration tests against a real HTTP server on localhost.

The echo server answers every request with a JSON description of what it
received, so these tests check what actually went over the wire.
"""

from __future__ import annotations

import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Generator

import pytest

from request_client.client import RequestClient
from request_client.transport import TransportError

SLOW_RESPONSE_SECONDS = 2.0


class EchoHandler(BaseHTTPRequestHandler):
    def _echo(self) -> None:
        if self.path.startswith("/slow"):
            time.sleep(SLOW_RESPONSE_SECONDS)

        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8") if length else ""
        payload = json.dumps({
            "method": self.command,
            "path": self.path,
            "body": body,
            "headers": {k.lower(): v for k, v in self.headers.items()},
        }).encode("utf-8")

        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    do_GET = _echo
    do_POST = _echo
    do_PUT = _echo
    do_DELETE = _echo

    def log_message(self, format: str, *args) -> None:
        # Keep test output quiet
        pass


@pytest.fixture
def echo_server() -> Generator[str, None, None]:
    """Start the echo server and yield its base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port_url() -> str:
    """URL of a local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))  # Port 0 = OS assigns ephemeral port
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/"


class TestLiveSend:
    def test_get_query(self, echo_server: str) -> None:
        client = RequestClient().set_url(f"{echo_server}/api").set_params({"x": "y", "n": "1"})

        echoed = json.loads(client.send())

        assert echoed["method"] == "GET"
        assert echoed["path"] == "/api?x=y&n=1"
        assert client.get_status_code() == 200

    def test_post_form(self, echo_server: str) -> None:
        client = (
            RequestClient()
            .set_url(f"{echo_server}/api")
            .set_method("POST")
            .set_params({"a": "1", "b": "2"})
        )

        echoed = json.loads(client.send())

        assert echoed["method"] == "POST"
        assert echoed["body"] == "a=1&b=2"
        assert echoed["headers"]["content-type"] == "application/x-www-form-urlencoded"

    def test_headers_and_auth(self, echo_server: str) -> None:
        client = (
            RequestClient()
            .set_url(f"{echo_server}/api")
            .set_headers(["X-One: 1"])
            .add_raw_header("X-Two: 2")
            .set_http_auth("alice", "s3cret")
        )

        echoed = json.loads(client.send())

        assert echoed["headers"]["x-one"] == "1"
        assert echoed["headers"]["x-two"] == "2"
        assert echoed["headers"]["authorization"].startswith("Basic ")

    def test_debug_captures_wire_head(self, echo_server: str) -> None:
        client = RequestClient().enable_debug().set_url(f"{echo_server}/api")

        client.send()

        head = client.get_response_headers()
        assert head.startswith("GET /api HTTP/1.1\r\n")
        assert f"Host: {echo_server.removeprefix('http://')}\r\n" in head

    def test_connection_refused(self, closed_port_url: str) -> None:
        client = RequestClient().set_url(closed_port_url)

        with pytest.raises(TransportError) as exc_info:
            client.send()

        assert exc_info.value.code == "ConnectError"

    def test_timeout(self, echo_server: str) -> None:
        client = RequestClient().set_url(f"{echo_server}/slow").set_timeout(0.3)

        with pytest.raises(TransportError) as exc_info:
            client.send()

        assert exc_info.value.code == "ReadTimeout"


class TestLiveSendAsync:
    def test_connection_refused_reports_success(self, closed_port_url: str) -> None:
        assert RequestClient().set_url(closed_port_url).send_async() is True

    def test_returns_within_async_timeout(self, echo_server: str) -> None:
        client = RequestClient().set_url(f"{echo_server}/slow").set_async_timeout(0.3)

        start = time.monotonic()
        result = client.send_async()
        elapsed = time.monotonic() - start

        assert result is True
        assert elapsed < SLOW_RESPONSE_SECONDS
