"""Internal data models for request-client.

All models use Pydantic v2. RequestConfig is the immutable snapshot the
builder accumulates; ClientSettings is the on-disk settings file structure.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Long enough to tolerate slow endpoints
DEFAULT_TIMEOUT = 310.0
DEFAULT_CONNECT_TIMEOUT = 310.0
# Fire-and-forget budget. Values below a few seconds tend to abort the
# request before the transport has finished writing it.
DEFAULT_ASYNC_TIMEOUT = 5.0


# =============================================================================
# HTTP Method
# =============================================================================


class HttpMethod(str, Enum):
    """Methods the transport knows how to select."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def resolve(cls, method: str) -> HttpMethod:
        """Map a stored method name to the one the transport will use.

        Unknown verbs resolve to GET.
        """
        try:
            return cls(method.upper())
        except ValueError:
            return cls.GET

    @property
    def has_body(self) -> bool:
        """Whether params travel in the request body instead of the query string."""
        return self in (HttpMethod.POST, HttpMethod.PUT)


# =============================================================================
# Request Configuration
# =============================================================================


class RequestConfig(BaseModel):
    """Everything the transport needs to execute one request.

    Frozen: setters on RequestClient produce updated copies, and the transport
    translates the whole snapshot in one step at execution time.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(default="", description="Target URL, unvalidated")
    method: str = Field(default=HttpMethod.GET.value, description="Stored method, uppercase")
    params: Any = Field(default=None, description="None, a mapping, or a pre-encoded string")
    headers: tuple[str, ...] = Field(default=(), description="Raw 'Name: value' header lines")
    verify_ssl: bool = Field(default=True, description="Verify peer certificate and host name")
    ca_bundle: str | None = Field(default=None, description="CA bundle path pinned by enable_ssl")
    auth: tuple[str, str] | None = Field(default=None, description="Basic auth (username, password)")
    debug: bool = Field(default=False, description="Verbose logging and outgoing header capture")
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, description="Connect timeout in seconds")
    timeout: float = Field(default=DEFAULT_TIMEOUT, description="Total timeout in seconds")
    async_timeout: float = Field(
        default=DEFAULT_ASYNC_TIMEOUT, description="Total timeout used by send_async"
    )

    @property
    def effective_method(self) -> HttpMethod:
        """The method the transport actually sends."""
        return HttpMethod.resolve(self.method)


# =============================================================================
# Settings File Models
# =============================================================================


class ClientSettings(BaseModel):
    """Client defaults loaded from a YAML settings file."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=DEFAULT_TIMEOUT, description="Total timeout in seconds")
    connect_timeout: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT, description="Connect timeout in seconds"
    )
    async_timeout: float = Field(
        default=DEFAULT_ASYNC_TIMEOUT, description="Total timeout for fire-and-forget sends"
    )
    verify_ssl: bool = Field(default=True, description="Verify server certificates")
    ca_bundle: str | None = Field(default=None, description="Path to a CA bundle (PEM)")
    username: str | None = Field(default=None, description="Basic auth username")
    password: str | None = Field(
        default=None, description="Basic auth password (supports ${ENV_VAR} substitution)"
    )
    debug: bool = Field(default=False, description="Enable verbose transport logging")
    headers: list[str] = Field(
        default_factory=list, description="Raw 'Name: value' lines sent with every request"
    )

    @field_validator("timeout", "connect_timeout", "async_timeout")
    @classmethod
    def check_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"timeout must be positive, got {value}")
        return value

    @field_validator("headers")
    @classmethod
    def check_header_lines(cls, value: list[str]) -> list[str]:
        for line in value:
            if ":" not in line:
                raise ValueError(f"header line '{line}' is not in 'Name: value' form")
        return value

    @model_validator(mode="after")
    def check_credentials(self) -> Self:
        if self.password is not None and self.username is None:
            raise ValueError("password given without username")
        return self
