"""Redaction of outgoing requests for DEBUG logs.

Every ConnectedDrive URL embeds the vehicle VIN as a path segment and the
remote-service form data may carry account credentials.  ``describe_request``
turns a request into a single log line with both masked.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

MASK = "<redacted>"

_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "username",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "cookie",
        "client_secret",
    }
)

# /webapi/v1/user/vehicles/{vin}/... and /api/vehicle/dynamic/v1/{vin}
_VIN_SEGMENT = re.compile(r"(/vehicles/|/dynamic/v1/)[^/?#]+")


def mask_url(url: str) -> str:
    """Replace the VIN path segment of a vehicle URL."""
    return _VIN_SEGMENT.sub(rf"\g<1>{MASK}", url)


def _shorten(text: str, limit: int) -> str:
    if len(text) > limit:
        return f"{text[:limit]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* with credentials and VINs masked.

    Mappings are redacted by key, URLs inside strings lose their VIN segment
    and bytes are summarised by length.
    """
    if isinstance(value, str):
        return _shorten(mask_url(value), max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {
            str(key): MASK if str(key).lower() in _CREDENTIAL_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    return value


def describe_request(
    method: str,
    url: str,
    params: Mapping[str, Any] | None = None,
    data: Mapping[str, Any] | str | None = None,
) -> str:
    """One-line, redacted rendition of an outgoing request."""
    parts = [method.upper(), mask_url(url)]
    if params:
        parts.append(f"params={redact_for_log(dict(params))}")
    if data:
        parts.append(f"data={redact_for_log(data)}")
    return " ".join(parts)
