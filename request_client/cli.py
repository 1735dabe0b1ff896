"""CLI entry point for request-client.

Builds a RequestClient from command-line arguments (and an optional settings
file), sends it, and prints the response body.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from request_client.client import RequestClient
from request_client.config_loader import ConfigError, load_client_settings
from request_client.models import ClientSettings
from request_client.transport import TransportError


def positive_float(value: str) -> float:
    """Parse and validate a positive float value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive number.
    """
    try:
        result = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'.")
    if result <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive, got {result}.")
    return result


def parse_key_value(value: str) -> tuple[str, str]:
    """Parse KEY=VALUE format. The value may be empty, the key may not."""
    if "=" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid format '{value}'. Expected KEY=VALUE (e.g., 'page=2')"
        )
    key, _, val = value.partition("=")
    if not key:
        raise argparse.ArgumentTypeError(f"Invalid format '{value}'. Key cannot be empty.")
    return (key, val)


def parse_credentials(value: str) -> tuple[str, str]:
    """Parse USER:PASSWORD format. Splits on the first colon only."""
    if ":" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid format '{value}'. Expected USER:PASSWORD"
        )
    username, _, password = value.partition(":")
    return (username, password)


def raw_header(value: str) -> str:
    if ":" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid header '{value}'. Expected 'Name: value'"
        )
    return value


@dataclass
class RequestArgs:
    """Parsed arguments for a single request."""

    url: str
    method: str = "GET"
    data: list[tuple[str, str]] = field(default_factory=list)
    data_raw: str | None = None
    headers: list[str] = field(default_factory=list)
    user: tuple[str, str] | None = None
    cacert: str | None = None
    insecure: bool = False
    timeout: float | None = None
    connect_timeout: float | None = None
    fire_and_forget: bool = False
    config: Path | None = None
    verbose: bool = False


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="request-client",
        description="Send a single HTTP request and print the response body.",
    )
    parser.add_argument("url", help="Target URL")
    parser.add_argument(
        "-X",
        "--request",
        dest="method",
        default="GET",
        metavar="METHOD",
        help="HTTP method: GET, POST, PUT or DELETE (others are sent as GET)",
    )

    data_group = parser.add_mutually_exclusive_group()
    data_group.add_argument(
        "-d",
        "--data",
        type=parse_key_value,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Request param, form-encoded (can be repeated; a repeated KEY keeps its last VALUE)",
    )
    data_group.add_argument(
        "--data-raw",
        default=None,
        metavar="STRING",
        help="Pre-encoded query/body string, sent verbatim",
    )

    parser.add_argument(
        "-H",
        "--header",
        dest="headers",
        type=raw_header,
        action="append",
        default=[],
        metavar="HEADER",
        help="Raw 'Name: value' header line (can be repeated)",
    )
    parser.add_argument(
        "-u",
        "--user",
        type=parse_credentials,
        default=None,
        metavar="USER:PASSWORD",
        help="HTTP Basic authentication credentials",
    )

    tls_group = parser.add_mutually_exclusive_group()
    tls_group.add_argument(
        "--cacert",
        default=None,
        metavar="PATH",
        help="Verify the server against this CA bundle (PEM)",
    )
    tls_group.add_argument(
        "-k",
        "--insecure",
        action="store_true",
        help="Skip certificate verification",
    )

    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Total timeout in seconds",
    )
    parser.add_argument(
        "--connect-timeout",
        type=positive_float,
        default=None,
        help="Connect timeout in seconds",
    )
    parser.add_argument(
        "--async",
        dest="fire_and_forget",
        action="store_true",
        help="Fire and forget: do not wait for the response",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log transport traffic and print the outgoing headers to stderr",
    )
    return parser


def parse_args(args: list[str] | None = None) -> RequestArgs:
    """Parse command-line arguments and return typed args dataclass.

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    namespace = build_parser().parse_args(args)
    return RequestArgs(
        url=namespace.url,
        method=namespace.method,
        data=namespace.data,
        data_raw=namespace.data_raw,
        headers=namespace.headers,
        user=namespace.user,
        cacert=namespace.cacert,
        insecure=namespace.insecure,
        timeout=namespace.timeout,
        connect_timeout=namespace.connect_timeout,
        fire_and_forget=namespace.fire_and_forget,
        config=namespace.config,
        verbose=namespace.verbose,
    )


def build_client(
    args: RequestArgs,
    settings: ClientSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> RequestClient:
    """Create a client from settings, then apply command-line overrides."""
    client = RequestClient.from_settings(settings or ClientSettings(), transport)

    client.set_method(args.method).set_url(args.url)

    if args.data_raw is not None:
        client.set_params(args.data_raw)
    elif args.data:
        client.set_params(dict(args.data))

    for header in args.headers:
        client.add_raw_header(header)

    if args.user is not None:
        client.set_http_auth(*args.user)

    if args.insecure:
        client.disable_ssl()
    elif args.cacert:
        client.enable_ssl(args.cacert)

    if args.timeout is not None:
        client.set_timeout(args.timeout)
    if args.connect_timeout is not None:
        client.set_connect_timeout(args.connect_timeout)

    if args.verbose:
        client.enable_debug()

    return client


def run_request(args: RequestArgs, transport: httpx.BaseTransport | None = None) -> int:
    """Send the request described by args. Returns the process exit code."""
    settings = None
    if args.config is not None:
        try:
            settings = load_client_settings(args.config)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    with build_client(args, settings, transport) as client:
        if args.fire_and_forget:
            client.send_async()
            print("dispatched")
            return 0

        try:
            body = client.send()
        except TransportError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if args.verbose and client.get_response_headers():
            sys.stderr.write(client.get_response_headers())
        sys.stdout.write(body)
        return 0


def main() -> int:
    """Main entry point."""
    try:
        parsed = parse_args()
        if parsed.verbose:
            logging.basicConfig(
                level=logging.DEBUG,
                format="%(asctime)s %(name)s %(levelname)s %(message)s",
            )
        return run_request(parsed)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
