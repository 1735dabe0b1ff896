"""Pytest configuration and fixtures for request-client tests.

This file provides:
- RequestRecorder: httpx.MockTransport wrapper that records sent requests
- Fixtures: recorders for successful and failing transports, YAML writer
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest


class RequestRecorder:
    """Answers every request with a canned response and keeps what was sent.

    Usage:
        recorder = RequestRecorder(body=b"hello")
        client = RequestClient(recorder.transport)
        client.set_url("http://example.org/").send()
        assert recorder.last.method == "GET"

    Pass error to make every request fail with that httpx exception type.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"ok",
        headers: dict[str, str] | None = None,
        error: type[httpx.TransportError] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.headers = headers or {"Content-Type": "text/plain"}
        self.error = error
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("simulated failure", request=request)
        return httpx.Response(self.status_code, headers=self.headers, content=self.body)

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]

    def header_lines(self, name: str) -> list[str]:
        """All values sent for a header name, in order."""
        return self.last.headers.get_list(name)


@pytest.fixture
def recorder() -> RequestRecorder:
    """Transport that answers 200 'ok'."""
    return RequestRecorder()


@pytest.fixture
def refusing_recorder() -> RequestRecorder:
    """Transport that fails like a host refusing the connection."""
    return RequestRecorder(error=httpx.ConnectError)


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str], Path]:
    """Write YAML text to a temporary settings file and return its path."""

    def _write(content: str, name: str = "settings.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
