"""Transport - Executes one configured request over httpx.

A Transport is a single-use handle: RequestClient acquires one at construction
and consumes it on the first execution call. The whole RequestConfig is
translated into httpx arguments in one step, so nothing depends on the order
in which the builder's setters were called.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Any

import httpx

from request_client.models import HttpMethod, RequestConfig
from request_client.query_builder import build_query

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TransportError(Exception):
    """Raised when the transport cannot complete a request.

    Covers connection refused, DNS failure, TLS handshake failure, timeouts
    and URLs the transport cannot parse.

    Attributes:
        code: Native error code, the httpx exception class name
            (e.g. "ConnectError", "ReadTimeout").
        message: Native error message.
        url: URL the request was sent to.
    """

    def __init__(self, code: str, message: str, url: str | None = None) -> None:
        self.code = code
        self.message = message
        self.url = url
        super().__init__(f"{code}: {message}")


@dataclass
class TransportResult:
    """Outcome of a completed request."""

    body: str
    status_code: int
    request_head: str | None = None


def split_raw_header(raw: str) -> tuple[str, str] | None:
    """Split a raw 'Name: value' line. Returns None for lines without a colon."""
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        return None
    return name.strip(), value.strip()


def format_request_head(request: httpx.Request, http_version: str = "HTTP/1.1") -> str:
    """Render the outgoing request line and headers as they went on the wire."""
    target = request.url.raw_path.decode("ascii")
    lines = [f"{request.method} {target} {http_version}"]
    for name, value in request.headers.raw:
        lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
    return "\r\n".join(lines) + "\r\n\r\n"


def _log_request(request: httpx.Request) -> None:
    logger.debug("> %s %s", request.method, request.url)
    for name, value in request.headers.multi_items():
        logger.debug("> %s: %s", name, value)


def _log_response(response: httpx.Response) -> None:
    logger.debug("< %s %s %s", response.http_version, response.status_code, response.reason_phrase)
    for name, value in response.headers.multi_items():
        logger.debug("< %s: %s", name, value)


class Transport:
    """Single-use handle that performs exactly one request.

    The handle is a lease, not a connection: it holds no socket or pool.
    execute() opens an httpx.Client, sends one request and closes the client
    before returning. close() only marks the lease as spent so the owning
    RequestClient refuses a second execution.

    Usage:
        transport = Transport()
        try:
            result = transport.execute(config)
        finally:
            transport.close()
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the handle.

        Args:
            transport: Optional httpx transport to send through instead of the
                network (e.g. httpx.MockTransport).
        """
        self._transport = transport
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the handle. Safe to call more than once."""
        self._closed = True

    def execute(self, config: RequestConfig, timeout: float | None = None) -> TransportResult:
        """Perform the request described by config (blocking).

        Args:
            config: Full request configuration. The URL is used as given; any
                query string must already be appended.
            timeout: Total timeout override in seconds. Defaults to
                config.timeout.

        Returns:
            TransportResult with the body text, status code, and the outgoing
            request head when config.debug is set.

        Raises:
            TransportError: If the request could not be completed.
            RuntimeError: If the handle was already closed.
        """
        if self._closed:
            raise RuntimeError("Transport handle is closed")

        total = config.timeout if timeout is None else timeout
        method = config.effective_method

        try:
            client_kwargs = self._build_client_kwargs(config, total)
            with httpx.Client(**client_kwargs) as client:
                response = client.request(**self._build_request_kwargs(config, method))
        except httpx.TimeoutException as e:
            raise TransportError(type(e).__name__, f"request timeout: {e}", config.url) from e
        except httpx.ConnectError as e:
            raise TransportError(type(e).__name__, f"connection error: {e}", config.url) from e
        except httpx.RequestError as e:
            raise TransportError(type(e).__name__, f"request error: {e}", config.url) from e
        except httpx.InvalidURL as e:
            raise TransportError(type(e).__name__, f"invalid URL: {e}", config.url) from e
        except ssl.SSLError as e:
            raise TransportError(type(e).__name__, f"TLS setup failed: {e}", config.url) from e
        except OSError as e:
            # CA bundle path that cannot be read
            raise TransportError(type(e).__name__, f"TLS setup failed: {e}", config.url) from e
        except UnicodeEncodeError as e:
            raise TransportError(
                type(e).__name__,
                f"non-ASCII characters in request line or headers: {e.object[e.start:e.end]!r}",
                config.url,
            ) from e

        request_head = None
        if config.debug:
            request_head = format_request_head(response.request, response.http_version)

        return TransportResult(
            body=response.text,
            status_code=response.status_code,
            request_head=request_head,
        )

    def _build_client_kwargs(self, config: RequestConfig, total: float) -> dict[str, Any]:
        """Build kwargs for httpx.Client including TLS configuration.

        Args:
            config: Request configuration with TLS, timeout and debug settings.
            total: Total timeout in seconds. The connect timeout never exceeds it.

        Returns:
            Dictionary of kwargs for httpx.Client constructor.
        """
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(total, connect=min(config.connect_timeout, total)),
        }

        if not config.verify_ssl:
            kwargs["verify"] = False
        elif config.ca_bundle:
            # cafile replaces the system trust store instead of adding to it
            kwargs["verify"] = ssl.create_default_context(cafile=config.ca_bundle)
        # else: use httpx default (system trust store, verification on)

        if config.debug:
            kwargs["event_hooks"] = {"request": [_log_request], "response": [_log_response]}

        if self._transport is not None:
            kwargs["transport"] = self._transport

        return kwargs

    def _build_request_kwargs(self, config: RequestConfig, method: HttpMethod) -> dict[str, Any]:
        """Build kwargs for httpx.Client.request from the configuration."""
        headers: list[tuple[str, str]] = []
        for raw in config.headers:
            pair = split_raw_header(raw)
            if pair is None:
                logger.warning("Skipping malformed header line %r", raw)
                continue
            headers.append(pair)

        content: str | None = None
        if method.has_body:
            content = build_query(config.params)
            if not any(name.lower() == "content-type" for name, _ in headers):
                headers.append(("Content-Type", FORM_CONTENT_TYPE))

        kwargs: dict[str, Any] = {
            "method": method.value,
            "url": config.url,
            "headers": headers,
            "content": content,
        }
        if config.auth is not None:
            kwargs["auth"] = httpx.BasicAuth(*config.auth)
        return kwargs
