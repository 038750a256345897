"""Issue, parse and verify ``<secretKey>:<signature>:<payload>`` tokens.

``parse`` and ``verify`` accept anything a client can send and never raise:
a malformed token is reported as ``None`` / ``False`` and the reason is only
written to the debug log, so callers cannot leak it to whoever presented the
token. ``sign`` is the one operation that rejects its input with an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, Union

from pydantic import ValidationError

from signtoken.clock import Clock, SystemClock
from signtoken.encoding import canonical_json, decode, encode
from signtoken.errors import DecodeError, InvalidPayloadError, UnsupportedValueError
from signtoken.models import LATEST_VERSION, ParsedToken, Payload, PayloadVersion, Secret
from signtoken.signing import compute_signature, verify_signature
from signtoken.timestamps import format_timestamp, parse_timestamp, to_utc

logger = logging.getLogger(__name__)

SEPARATOR = ":"

PayloadLike = Union[Payload, Mapping[str, Any]]


def _split(token: Any) -> tuple[str, str, str] | None:
    if not isinstance(token, str) or not token.isascii():
        return None
    parts = token.split(SEPARATOR)
    if len(parts) != 3 or not all(parts):
        return None
    return parts[0], parts[1], parts[2]


def _validate_payload(candidate: Any) -> Payload:
    if isinstance(candidate, Payload):
        return candidate
    if not isinstance(candidate, Mapping):
        raise InvalidPayloadError(f"Payload must be a mapping, got {type(candidate).__name__}")
    try:
        return Payload.model_validate(dict(candidate))
    except ValidationError as exc:
        raise InvalidPayloadError(f"Invalid token payload: {exc}") from exc


def _reject(reason: str) -> bool:
    logger.debug("Token rejected: %s", reason)
    return False


class TokenCodec:
    """Token operations bound to a clock.

    The clock is the only state, so a single instance may be shared across
    threads and tasks.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock: Clock = clock or SystemClock()

    def sign(self, secret: Secret, payload: PayloadLike) -> str:
        model = _validate_payload(payload)
        encoded = encode(model.to_wire())
        signature = compute_signature(secret.secret_value, encoded)
        logger.debug("Signed %s payload with key %s", model.version, secret.secret_key)
        return SEPARATOR.join((secret.secret_key, signature, encoded))

    def parse(self, token: str) -> ParsedToken | None:
        """Decode ``token`` without checking its signature or expiry.

        Anyone can build a token that parses. Never authorize on the result
        of ``parse``; call ``verify`` first.
        """
        parts = _split(token)
        if parts is None:
            return None

        secret_key, _, encoded = parts
        try:
            payload = Payload.model_validate(decode(encoded))
        except (DecodeError, UnsupportedValueError, ValidationError):
            return None
        return ParsedToken(secret_key=secret_key, payload=payload)

    def verify(self, token: str, secret: Secret) -> bool:
        parts = _split(token)
        if parts is None:
            return _reject("malformed")

        secret_key, signature, encoded = parts
        if not verify_signature(secret.secret_value, encoded, signature):
            return _reject("bad_signature")

        parsed = self.parse(token)
        if parsed is None:
            return _reject("undecodable")
        if self.is_expired(parsed.payload):
            return _reject("expired")
        if secret_key != secret.secret_key:
            return _reject("key_mismatch")
        return True

    def verify_with(self, token: str, secrets: Mapping[str, Secret] | Iterable[Secret]) -> bool:
        """Verify against whichever of ``secrets`` the token names by key id."""
        parts = _split(token)
        if parts is None:
            return _reject("malformed")

        secret_key = parts[0]
        if isinstance(secrets, Mapping):
            secret = secrets.get(secret_key)
        else:
            secret = next((item for item in secrets if item.secret_key == secret_key), None)
        if secret is None:
            return _reject("unknown_key")
        return self.verify(token, secret)

    def is_expired(self, payload: PayloadLike, now: datetime | None = None) -> bool:
        if isinstance(payload, Payload):
            if payload.expired_time is None:
                return False
            expired_time = payload.expired_time
        elif "expiredTime" not in payload:
            return False
        else:
            # A present but null expiredTime is malformed and fails closed below.
            expired_time = payload["expiredTime"]

        try:
            expires_at = parse_timestamp(expired_time)
        except ValueError:
            logger.debug("Unreadable expiredTime, treating payload as expired")
            return True

        current = to_utc(now if now is not None else self.clock.now())
        return current > expires_at

    def is_valid_payload(self, candidate: Any) -> bool:
        try:
            _validate_payload(candidate)
        except (InvalidPayloadError, UnsupportedValueError):
            return False
        return True

    def new_payload(
        self,
        user_id: str,
        username: str,
        *,
        ttl: float | timedelta | None = None,
        extra: Mapping[str, Any] | None = None,
        version: PayloadVersion = LATEST_VERSION,
    ) -> Payload:
        """Build a payload created now, expiring ``ttl`` (seconds) later.

        With no ``ttl`` the payload never expires. ``extra`` keys land in
        ``data`` next to ``userId`` and ``username`` and must be JSON
        compatible.
        """
        created_at = self.clock.now()
        wire: dict[str, Any] = {
            "version": version,
            "createdTime": format_timestamp(created_at),
            "data": {**(extra or {}), "userId": user_id, "username": username},
        }
        if ttl is not None:
            if not isinstance(ttl, timedelta):
                ttl = timedelta(seconds=ttl)
            wire["expiredTime"] = format_timestamp(created_at + ttl)

        payload = _validate_payload(wire)
        # Raises UnsupportedValueError for strings that are not valid Unicode.
        canonical_json(payload.to_wire())
        return payload

    def issue(
        self,
        secret: Secret,
        user_id: str,
        username: str,
        *,
        ttl: float | timedelta | None = None,
        extra: Mapping[str, Any] | None = None,
        version: PayloadVersion = LATEST_VERSION,
    ) -> str:
        payload = self.new_payload(user_id, username, ttl=ttl, extra=extra, version=version)
        return self.sign(secret, payload)


_default_codec = TokenCodec()


def sign(secret: Secret, payload: PayloadLike) -> str:
    return _default_codec.sign(secret, payload)


def parse(token: str) -> ParsedToken | None:
    return _default_codec.parse(token)


def verify(token: str, secret: Secret) -> bool:
    return _default_codec.verify(token, secret)


def verify_with(token: str, secrets: Mapping[str, Secret] | Iterable[Secret]) -> bool:
    return _default_codec.verify_with(token, secrets)


def is_expired(payload: PayloadLike, now: datetime | None = None) -> bool:
    return _default_codec.is_expired(payload, now)


def is_valid_payload(candidate: Any) -> bool:
    return _default_codec.is_valid_payload(candidate)


def new_payload(
    user_id: str,
    username: str,
    *,
    ttl: float | timedelta | None = None,
    extra: Mapping[str, Any] | None = None,
    version: PayloadVersion = LATEST_VERSION,
) -> Payload:
    return _default_codec.new_payload(user_id, username, ttl=ttl, extra=extra, version=version)
