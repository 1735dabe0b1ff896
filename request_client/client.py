"""Request Client - Builder-style HTTP client with single-use execution.

Setters accumulate an immutable RequestConfig; send() or send_async() hands the
whole snapshot to the Transport in one step and then releases the handle.

Usage:
    client = (
        RequestClient()
        .set_method("POST")
        .set_url("http://example.org/end-point")
        .set_params({"param1": "value1", "param2": "value2"})
    )
    try:
        body = client.send()
    except TransportError as e:
        print(e.code, e.message)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx

from request_client.models import ClientSettings, HttpMethod, RequestConfig
from request_client.query_builder import build_query
from request_client.transport import Transport, TransportError, TransportResult

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Base class for client errors."""


class HandleConsumedError(ClientError):
    """Raised when executing a client whose transport handle was already released."""


class RequestClient:
    """Accumulates request configuration and executes it once.

    The transport handle is acquired at construction and released after the
    first send()/send_async() call, or by close(). A client cannot be executed
    twice; build a new one per request.

    With a context manager the handle is released even if send() is never
    reached:
        with RequestClient() as client:
            body = client.set_url(url).send()
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the client.

        Args:
            transport: Optional httpx transport passed to the Transport handle
                instead of the network.
        """
        self._config = RequestConfig()
        self._handle = Transport(transport)
        self._response_headers: str | None = None
        self._status_code: int | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        transport: httpx.BaseTransport | None = None,
    ) -> RequestClient:
        """Create a client preconfigured from loaded settings."""
        client = cls(transport)
        client._update(
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
            async_timeout=settings.async_timeout,
            verify_ssl=settings.verify_ssl,
            ca_bundle=settings.ca_bundle,
            debug=settings.debug,
            headers=tuple(settings.headers),
        )
        if settings.username is not None:
            client.set_http_auth(settings.username, settings.password or "")
        return client

    def __enter__(self) -> RequestClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release the transport handle without executing."""
        if not self._handle.closed:
            self._handle.close()

    @property
    def consumed(self) -> bool:
        """True once the transport handle has been released."""
        return self._handle.closed

    def _update(self, **changes: Any) -> RequestClient:
        self._config = self._config.model_copy(update=changes)
        return self

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_url(self, url: str) -> RequestClient:
        """Set the target URL. Not validated; bad URLs fail at execution."""
        return self._update(url=url)

    def set_method(self, method: str) -> RequestClient:
        """Set the HTTP method (case-insensitive).

        GET, POST, PUT and DELETE are supported. Anything else is stored as
        given but sent as GET.
        """
        method = method.upper()
        if HttpMethod.resolve(method).value != method:
            logger.warning("Unsupported method %r, request will be sent as GET", method)
        return self._update(method=method)

    def set_params(self, params: Any) -> RequestClient:
        """Set request params: a mapping, a pre-encoded string, or None."""
        return self._update(params=params)

    def set_headers(self, headers: Iterable[str]) -> RequestClient:
        """Replace all headers with raw 'Name: value' lines."""
        return self._update(headers=tuple(headers))

    def add_raw_header(self, raw_header: str) -> RequestClient:
        """Append one raw 'Name: value' header line."""
        return self.set_headers([*self._config.headers, raw_header])

    def enable_ssl(self, cert_path: str) -> RequestClient:
        """Verify the peer certificate and host name against the CA bundle at cert_path."""
        return self._update(verify_ssl=True, ca_bundle=cert_path)

    def disable_ssl(self) -> RequestClient:
        """Turn off certificate and host name verification."""
        return self._update(verify_ssl=False, ca_bundle=None)

    def set_http_auth(self, username: str, password: str) -> RequestClient:
        """Use HTTP Basic authentication."""
        return self._update(auth=(username, password))

    def enable_debug(self) -> RequestClient:
        """Log transport traffic and capture outgoing headers for get_response_headers()."""
        return self._update(debug=True)

    def disable_debug(self) -> RequestClient:
        return self._update(debug=False)

    def set_timeout(self, seconds: float) -> RequestClient:
        """Set the total timeout for send()."""
        return self._update(timeout=seconds)

    def set_connect_timeout(self, seconds: float) -> RequestClient:
        return self._update(connect_timeout=seconds)

    def set_async_timeout(self, seconds: float) -> RequestClient:
        """Set how long send_async() may block before giving up on the request."""
        return self._update(async_timeout=seconds)

    # -------------------------------------------------------------------------
    # Getters
    # -------------------------------------------------------------------------

    def get_url(self) -> str:
        return self._config.url

    def get_params(self) -> Any:
        return self._config.params

    def get_method(self) -> str:
        return self._config.method

    def get_headers(self) -> list[str]:
        return list(self._config.headers)

    def get_response_headers(self) -> str | None:
        """Outgoing request head captured by the last send() in debug mode."""
        return self._response_headers

    def get_status_code(self) -> int | None:
        return self._status_code

    def get_config(self) -> RequestConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def send(self) -> str:
        """Send the request and wait for the response.

        For GET (and DELETE) requests the encoded params are appended to the
        stored URL before sending, so get_url() reflects the URL actually used.
        Nothing is appended when the params encode to an empty string, and the
        separator is "&" instead of "?" when the URL already has a query.

        Returns:
            The raw response body. HTTP error statuses are not treated as
            failures.

        Raises:
            TransportError: If the transport could not complete the request.
            HandleConsumedError: If this client was already executed or closed.
        """
        self._ensure_open()
        try:
            self._append_query()
            result = self._handle.execute(self._config)
        finally:
            self._handle.close()

        self._record(result)
        return result.body

    def send_async(self) -> bool:
        """Try to send the request without waiting for the response.

        Blocks for at most the async timeout, then reports success whether or
        not the remote end received the request. Transport failures are
        logged and discarded.

        Returns:
            Always True.

        Raises:
            HandleConsumedError: If this client was already executed or closed.
        """
        self._ensure_open()
        try:
            self._append_query()
            self._handle.execute(self._config, timeout=self._config.async_timeout)
        except TransportError as e:
            logger.debug("Fire-and-forget request to %s not confirmed: %s", self._config.url, e)
        finally:
            self._handle.close()
        return True

    def _ensure_open(self) -> None:
        if self._handle.closed:
            raise HandleConsumedError(
                "Transport handle already consumed; create a new RequestClient per request"
            )

    def _append_query(self) -> None:
        """Append encoded params to the URL for methods that carry no body."""
        if self._config.effective_method.has_body:
            return
        query = build_query(self._config.params)
        if not query:
            return
        separator = "&" if "?" in self._config.url else "?"
        self.set_url(f"{self._config.url}{separator}{query}")

    def _record(self, result: TransportResult) -> None:
        self._status_code = result.status_code
        self._response_headers = result.request_head
