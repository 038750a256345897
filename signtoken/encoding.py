"""Canonical JSON serialization and base64url framing of token payloads.

The same logical payload always produces the same text: object keys are sorted
at every nesting level, no whitespace is emitted and strings are written as
UTF-8. Signatures are computed over this text, so any deviation here breaks
verification of previously issued tokens.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from collections.abc import Mapping
from typing import Any

from signtoken.errors import DecodeError, UnsupportedValueError

_B64URL_TEXT = re.compile(r"[A-Za-z0-9_-]*")


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    if not isinstance(data, str) or not _B64URL_TEXT.fullmatch(data) or len(data) % 4 == 1:
        raise DecodeError("Invalid base64url text")

    padding = "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(data + padding)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("Invalid base64url text") from exc

    # Unused trailing bits must be zero, otherwise two texts map to one payload.
    if b64url_encode(raw) != data:
        raise DecodeError("Non-canonical base64url text")
    return raw


def _utf16_order(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


def to_json_value(value: Any, path: str = "$") -> Any:
    """Return a fresh plain copy of ``value`` with object keys in canonical order.

    Keys are ordered by UTF-16 code unit, the order JavaScript sorts strings
    in, so astral characters sort before U+E000..U+FFFF.
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedValueError(f"Non-finite number at {path}")
        return value
    if isinstance(value, Mapping):
        for key in value:
            if not isinstance(key, str):
                raise UnsupportedValueError(f"Non-string key {key!r} at {path}")
        return {key: to_json_value(value[key], f"{path}.{key}") for key in sorted(value, key=_utf16_order)}
    if isinstance(value, (list, tuple)):
        return [to_json_value(item, f"{path}[{index}]") for index, item in enumerate(value)]
    raise UnsupportedValueError(f"Unsupported value of type {type(value).__name__} at {path}")


def canonical_json(value: Mapping[str, Any]) -> bytes:
    """Serialize ``value`` to its canonical UTF-8 JSON bytes.

    Raises ``UnsupportedValueError`` for anything that has no JSON form:
    sets, bytes, datetimes, arbitrary objects, NaN/Infinity and mappings
    with non-string keys.
    """
    normalized = to_json_value(value)
    text = json.dumps(
        normalized,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise UnsupportedValueError("String is not valid Unicode text") from exc


def encode(payload: Mapping[str, Any]) -> str:
    """Return the base64url text of the canonical JSON form of ``payload``."""
    return b64url_encode(canonical_json(payload))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unsupported JSON constant {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def decode(text: str) -> dict[str, Any]:
    """Reverse ``encode``.

    Raises ``DecodeError`` if ``text`` is not base64url, the bytes are not
    UTF-8, the JSON is malformed, or the top-level value is not an object.
    """
    raw = b64url_decode(text)
    try:
        value = json.loads(raw.decode("utf-8"), parse_constant=_reject_constant, parse_float=_parse_finite_float)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise DecodeError("Payload is not valid JSON") from exc

    if not isinstance(value, dict):
        raise DecodeError("Payload is not a JSON object")
    return value
