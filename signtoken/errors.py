from __future__ import annotations


class TokenError(Exception):
    pass


class InvalidPayloadError(TokenError, ValueError):
    pass


class DecodeError(TokenError, ValueError):
    pass


class UnsupportedValueError(TokenError, TypeError):
    pass
