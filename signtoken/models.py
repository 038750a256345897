from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, StrictStr, field_validator, model_validator

from signtoken.encoding import to_json_value

PayloadVersion = Literal["v1", "v2"]

LATEST_VERSION: PayloadVersion = "v2"


class Secret(BaseModel):
    """Key id plus key material. Only ``secret_key`` ever leaves the process."""

    model_config = ConfigDict(frozen=True)

    secret_key: StrictStr = Field(min_length=1)
    secret_value: SecretStr

    @field_validator("secret_key")
    @classmethod
    def ensure_token_safe(cls, value: str) -> str:
        if ":" in value:
            raise ValueError("secret_key must not contain ':'")
        if not value.isascii():
            raise ValueError("secret_key must be ASCII")
        return value


class PayloadData(BaseModel):
    # Extra keys must hold JSON values; they are copied in canonical form.
    model_config = ConfigDict(frozen=True, extra="allow")

    user_id: StrictStr = Field(alias="userId", min_length=1)
    username: StrictStr = Field(min_length=1)

    @model_validator(mode="after")
    def copy_extras(self) -> PayloadData:
        # Detach from caller-owned lists and dicts so a frozen payload stays frozen.
        extras = self.__pydantic_extra__ or {}
        for key, value in extras.items():
            extras[key] = to_json_value(value, f"$.data.{key}")
        return self

    def to_wire(self) -> dict[str, Any]:
        return {**(self.model_extra or {}), "userId": self.user_id, "username": self.username}


class Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    version: PayloadVersion = LATEST_VERSION
    created_time: StrictStr = Field(alias="createdTime")
    expired_time: Optional[StrictStr] = Field(default=None, alias="expiredTime")
    data: PayloadData

    @field_validator("expired_time", mode="before")
    @classmethod
    def reject_null_expiry(cls, value: Any) -> Any:
        # Absent means "never expires"; an explicit null is a malformed payload.
        if value is None:
            raise ValueError("expiredTime must be a string when present")
        return value

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "version": self.version,
            "createdTime": self.created_time,
            "data": self.data.to_wire(),
        }
        if self.expired_time is not None:
            wire["expiredTime"] = self.expired_time
        return wire


class ParsedToken(BaseModel):
    """A decoded token whose signature and expiry have NOT been checked."""

    model_config = ConfigDict(frozen=True)

    secret_key: str
    payload: Payload
