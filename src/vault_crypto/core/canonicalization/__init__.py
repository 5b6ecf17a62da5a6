# SPDX-License-Identifier: MPL-2.0
"""Canonicalization utilities following JSON Canonicalization Scheme (RFC 8785).

Documents are hashed over their canonical form, so the same logical content
must always produce the same bytes. Keys are sorted by UTF-16 code units and
separators are compact. Strings are NFC-normalised and floats use the
ECMAScript number rendering. Datetimes, decimals and UUIDs each have a single
textual rendering. Integers are written exactly, even beyond 2**53.
"""

from __future__ import annotations

import dataclasses
import json
import math
import unicodedata
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from vault_crypto.core.exceptions import CanonicalizationError


def _format_datetime(value: datetime) -> str:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    iso = value.isoformat(timespec="microseconds").replace("+00:00", "Z")
    main, rest = iso.split(".", 1)
    frac = rest.rstrip("Z").rstrip("0")
    return main + ("." + frac if frac else "") + "Z"


def _format_decimal(value: Decimal) -> str:
    if not value.is_finite():
        raise CanonicalizationError("Non-finite decimal values are not allowed")
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def _format_float(value: float) -> str:
    """Render a finite float like ECMAScript ``Number.prototype.toString``."""

    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    # repr yields the shortest digit string that round-trips
    _, digits, exponent = Decimal(repr(abs(value))).as_tuple()
    s = "".join(str(d) for d in digits).rstrip("0")
    k = len(s)
    n = exponent + len(digits)

    if k <= n <= 21:
        text = s + "0" * (n - k)
    elif 0 < n <= 21:
        text = s[:n] + "." + s[n:]
    elif -6 < n <= 0:
        text = "0." + "0" * -n + s
    else:
        e = n - 1
        mantissa = s if k == 1 else s[0] + "." + s[1:]
        text = f"{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"
    return sign + text


def _normalize(value: Any) -> Any:
    """Recursively normalise a value for canonical JSON serialisation."""

    if isinstance(value, str):
        return unicodedata.normalize("NFC", value)

    if isinstance(value, Enum):
        return _normalize(value.value)

    if isinstance(value, bool) or value is None or isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError("Non-finite float values are not allowed")
        return value

    if isinstance(value, Decimal):
        return _format_decimal(value)

    if isinstance(value, datetime):
        return _format_datetime(value)

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, UUID):
        return str(value)

    if isinstance(value, BaseModel):
        return _normalize(value.model_dump(mode="python"))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _normalize(dataclasses.asdict(value))

    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]

    if isinstance(value, dict):
        if any(not isinstance(k, str) for k in value):
            raise CanonicalizationError("Dictionary keys must be strings")
        normalized = {}
        for k, v in value.items():
            key = unicodedata.normalize("NFC", k)
            if key in normalized:
                raise CanonicalizationError(
                    f"Duplicate key after normalization: {key!r}", details={"key": key}
                )
            normalized[key] = _normalize(v)
        return normalized

    raise CanonicalizationError(f"Type {type(value)!r} is not supported for canonicalization")


def _serialize(value: Any) -> str:
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda item: item[0].encode("utf-16-be"))
        return "{" + ",".join(_serialize(k) + ":" + _serialize(v) for k, v in items) + "}"
    if isinstance(value, list):
        return "[" + ",".join(_serialize(v) for v in value) + "]"
    if isinstance(value, float):
        return _format_float(value)
    return json.dumps(value, ensure_ascii=False)


def canonicalize(data: Any) -> str:
    """Convert data to a canonical JSON string.

    Accepts plain JSON-like structures as well as pydantic models and
    dataclasses. The implementation performs Unicode NFC normalisation and
    follows the JSON Canonicalization Scheme (RFC 8785) for key order and
    floats.
    Decimals are rendered as plain-notation strings so that no precision is
    lost to binary floating point.

    Raises:
        CanonicalizationError: If the data contains unsupported types, or two
            keys of one object are equal after NFC normalisation.
    """

    return _serialize(_normalize(data))


def canonical_bytes(data: Any) -> bytes:
    """Return the UTF-8 encoding of :func:`canonicalize`."""

    return canonicalize(data).encode("utf-8")


def verify_canonical_equivalence(a: Any, b: Any) -> bool:
    """Return True if two objects canonicalize to the same JSON string."""

    try:
        return canonicalize(a) == canonicalize(b)
    except CanonicalizationError:
        return False
