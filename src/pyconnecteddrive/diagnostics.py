"""Troubleshooting fingerprint of the cached vehicle data.

The fingerprint is logged at DEBUG once per refresh cycle so that users can
attach it to bug reports.  It never contains the VIN, GPS coordinates or
destination addresses.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pyconnecteddrive._constants import ANONYMOUS
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource

_logger = logging.getLogger(__name__)

FINGERPRINT_BEGIN = "###### ConnectedDrive - Vehicle Troubleshoot Fingerprint Data - BEGIN ######"
FINGERPRINT_END = "###### ConnectedDrive - Vehicle Troubleshoot Fingerprint Data - END ######"

_SECTIONS: tuple[tuple[TelemetrySource, str], ...] = (
    (TelemetrySource.STATUS, "Vehicle Status"),
    (TelemetrySource.LAST_TRIP, "Last Trip"),
    (TelemetrySource.ALL_TRIPS, "All Trips"),
    (TelemetrySource.CHARGE_PROFILE, "Charge Profile"),
    (TelemetrySource.DESTINATIONS, "Destinations"),
    (TelemetrySource.RANGE_MAP, "Range Map"),
    (TelemetrySource.IMAGE, "Vehicle Image"),
)
_ELECTRIC_ONLY = frozenset({TelemetrySource.CHARGE_PROFILE, TelemetrySource.RANGE_MAP})

_COORDINATE_KEYS = frozenset({"lat", "lon", "latitude", "longitude", "heading", "gps_lat", "gps_lng"})
_ADDRESS_KEYS = frozenset({"city", "street", "streetNumber", "country"})


def anonymize(value: Any, vin: str, *, _depth: int = 0) -> Any:
    """Return a copy of a decoded JSON *value* without identifying data."""
    if _depth > 50:
        return "<max-depth>"
    if isinstance(value, str):
        return value.replace(vin, ANONYMOUS) if vin else value
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            if key in _COORDINATE_KEYS:
                result[anonymize(key, vin)] = 0
            elif key in _ADDRESS_KEYS:
                result[key] = ANONYMOUS
            else:
                result[anonymize(key, vin)] = anonymize(item, vin, _depth=_depth + 1)
        return result
    if isinstance(value, list):
        return [anonymize(item, vin, _depth=_depth + 1) for item in value]
    return value


def redact_payload(payload: str | bytes, vin: str) -> str:
    """Redacted one-line rendition of a cached payload."""
    if isinstance(payload, bytes):
        return f"<image: {len(payload)} bytes>"
    try:
        data = json.loads(payload)
    except ValueError:
        data = None
    if not isinstance(data, (dict, list)):
        return f"<unparseable payload: {len(payload)} chars>"
    return json.dumps(anonymize(data, vin))


def build_fingerprint(
    cache: SourceCache,
    vin: str,
    *,
    discovery: Mapping[str, str] | None = None,
    is_electric: bool = True,
) -> str:
    lines = [FINGERPRINT_BEGIN]
    if discovery:
        lines.append("### Discovery Result ###")
        lines.append(json.dumps(anonymize(dict(discovery), vin)))
    else:
        lines.append("### Discovery Result Empty ###")

    slots = cache.snapshot()
    for source, title in _SECTIONS:
        if source in _ELECTRIC_ONLY and not is_electric:
            continue
        slot = slots.get(source)
        if slot is None:
            lines.append(f"### {title} Empty ###")
            continue
        lines.append(f"### {title} ###")
        lines.append(redact_payload(slot.payload, vin))
    lines.append(FINGERPRINT_END)
    return "\n".join(lines)


def log_fingerprint(
    cache: SourceCache,
    vin: str,
    *,
    discovery: Mapping[str, str] | None = None,
    is_electric: bool = True,
) -> str:
    fingerprint = build_fingerprint(cache, vin, discovery=discovery, is_electric=is_electric)
    _logger.debug("%s", fingerprint)
    return fingerprint
