"""Query Builder - Serializes request params into a query string or form body.

Mappings become key=value pairs in insertion order. Nested mappings and
sequences flatten into bracketed keys (a[b]=1, a[0]=x) the way conventional
form encoding does, brackets included in the percent-encoding. Strings are
treated as already encoded and pass through untouched.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote_from_bytes, quote_plus

from pydantic import BaseModel

# Delimiters kept as-is when percent-encoding undecodable raw bytes
_RAW_SAFE = "!$&'()*+,-./:;=?@[]~%"


def build_query(params: Any) -> str:
    """Build a URL-encoded query string from params.

    Args:
        params: None, a mapping (optionally nested), a sequence, a pydantic
            model or dataclass instance, or a pre-encoded str/bytes. Raw
            bytes that are not valid UTF-8 get their non-ASCII bytes
            percent-encoded.

    Returns:
        Encoded string, e.g. "param1=value1&param2=value2". Empty string when
        there is nothing to encode.
    """
    if params is None:
        return ""
    if isinstance(params, str):
        return params
    if isinstance(params, bytes):
        try:
            return params.decode("utf-8")
        except UnicodeDecodeError:
            return quote_from_bytes(params, safe=_RAW_SAFE)

    items = _as_items(params)
    if items is None:
        # Lone scalar, nothing to pair it with
        return str(params)

    return "&".join(
        f"{quote_plus(name)}={quote_plus(value)}" for name, value in _flatten(items, None)
    )


def _as_items(value: Any) -> Iterable[tuple[Any, Any]] | None:
    """Return (key, value) pairs for container-like values, None for scalars."""
    if isinstance(value, Mapping):
        return value.items()
    if isinstance(value, BaseModel):
        return value.model_dump().items()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value).items()
    if isinstance(value, (list, tuple)):
        return enumerate(value)
    return None


def _flatten(
    items: Iterable[tuple[Any, Any]], prefix: str | None
) -> Iterable[tuple[str, str | bytes]]:
    for key, value in items:
        name = str(key) if prefix is None else f"{prefix}[{key}]"

        # None means "unset", not an empty value
        if value is None:
            continue

        children = _as_items(value)
        if children is not None:
            yield from _flatten(children, name)
        else:
            yield name, _scalar_value(value)


def _scalar_value(value: Any) -> str | bytes:
    # bool first: it is an int subclass
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        # quote_plus encodes raw bytes directly, so b"\xff" becomes %FF
        return value
    return str(value)
