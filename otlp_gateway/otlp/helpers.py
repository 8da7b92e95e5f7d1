"""
Helpers for reading decoded OTLP payloads.

Everything here works on the dict form produced by the decoder, which is
the same shape for JSON and protobuf bodies (lowerCamelCase field names,
64-bit integers possibly as decimal strings).
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Any

from otlp_gateway.models.pydantic_models.telemetry import Attribute

AttributeMap = dict[str, str | int | float | bool]

# AnyValue oneof: JSON field name -> tag, in field-number order
ANY_VALUE_VARIANTS = (
    ("stringValue", "string"),
    ("boolValue", "bool"),
    ("intValue", "int"),
    ("doubleValue", "double"),
    ("arrayValue", "array"),
    ("kvlistValue", "kvlist"),
    ("bytesValue", "bytes"),
)

SCALAR_KINDS = frozenset({"string", "bool", "int", "double"})

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def resolve_any_value(value: Any) -> tuple[str, Any] | None:
    """
    Resolve an AnyValue object to its (tag, python value) pair.

    The first populated variant in field-number order wins. Returns None
    for anything that is not an AnyValue object or has no variant set.
    """
    if not isinstance(value, dict):
        return None

    for field, kind in ANY_VALUE_VARIANTS:
        # null means unset in the proto3 JSON mapping
        raw = value.get(field)
        if raw is None:
            continue
        if kind == "string":
            return kind, str(raw)
        if kind == "bool":
            return kind, bool(raw)
        if kind == "int":
            return kind, int(raw)
        if kind == "double":
            return kind, float(raw)
        if kind == "array":
            items = [resolve_any_value(v) for v in (raw or {}).get("values") or []]
            return kind, [item[1] for item in items if item is not None]
        if kind == "kvlist":
            entries = {}
            for kv in (raw or {}).get("values") or []:
                resolved = resolve_any_value(kv.get("value"))
                if resolved is not None:
                    entries[kv.get("key", "")] = resolved[1]
            return kind, entries
        if kind == "bytes":
            return kind, base64.b64decode(raw or "")
        raise AssertionError(f"unhandled AnyValue variant: {kind}")

    return None


def to_attribute_list(attrs: list[dict] | None) -> list[Attribute]:
    """Tagged attribute list; key/value pairs with no resolvable value are dropped."""
    attributes = []
    for kv in attrs or []:
        resolved = resolve_any_value(kv.get("value"))
        if resolved is None:
            continue
        kind, value = resolved
        attributes.append(Attribute(key=kv.get("key", ""), kind=kind, value=value))
    return attributes


def extract_attributes(attrs: list[dict] | None) -> AttributeMap:
    """Flatten attributes to a key -> scalar map, skipping arrays, maps and bytes."""
    result: AttributeMap = {}
    for kv in attrs or []:
        resolved = resolve_any_value(kv.get("value"))
        if resolved is None or resolved[0] not in SCALAR_KINDS:
            continue
        result[kv["key"]] = resolved[1]
    return result


def nano_to_datetime(nanos: str | int) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-02-16T12:00:00.000Z"""
    dt = _EPOCH + timedelta(milliseconds=int(nanos) // 1_000_000)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def span_duration_ms(start: str | int, end: str | int) -> float:
    return (int(end) - int(start)) / 1_000_000


def to_hex_string(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return bytes(value).hex()


def span_status_to_string(code: int | None) -> str:
    # STATUS_CODE_ERROR
    return "error" if code == 2 else "ok"


def severity_number_to_string(severity_number: int | None) -> str:
    if not severity_number:
        return "unspecified"
    if severity_number <= 4:
        return "trace"
    if severity_number <= 8:
        return "debug"
    if severity_number <= 12:
        return "info"
    if severity_number <= 16:
        return "warn"
    if severity_number <= 20:
        return "error"
    return "fatal"


def get_numeric_value(point: dict) -> int | float:
    """Value of a NumberDataPoint, preferring asDouble over asInt."""
    if point.get("asDouble") is not None:
        return float(point["asDouble"])
    if point.get("asInt") is not None:
        return int(point["asInt"])
    return 0


def attr_string(attrs: AttributeMap, key: str) -> str | None:
    value = attrs.get(key)
    return value if isinstance(value, str) else None


def attr_number(attrs: AttributeMap, key: str) -> int | float | None:
    value = attrs.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value
