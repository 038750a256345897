from __future__ import annotations

import hashlib
import hmac
from typing import Union

from pydantic import SecretStr

from signtoken.encoding import b64url_encode

DIGEST = hashlib.sha256

SecretValue = Union[str, bytes, SecretStr]


def _key_bytes(secret_value: SecretValue) -> bytes:
    if isinstance(secret_value, SecretStr):
        secret_value = secret_value.get_secret_value()
    if isinstance(secret_value, str):
        return secret_value.encode("utf-8")
    return bytes(secret_value)


def compute_signature(secret_value: SecretValue, encoded_payload: str) -> str:
    """HMAC-SHA256 of the encoded payload text, as unpadded base64url."""
    digest = hmac.new(_key_bytes(secret_value), encoded_payload.encode("utf-8"), DIGEST).digest()
    return b64url_encode(digest)


def verify_signature(secret_value: SecretValue, encoded_payload: str, candidate: str) -> bool:
    expected = compute_signature(secret_value, encoded_payload)
    try:
        candidate_bytes = candidate.encode("ascii")
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected.encode("ascii"), candidate_bytes)
