from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from signtoken.models import LATEST_VERSION, PayloadVersion, Secret


class TokenSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIGNTOKEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    secret_key: str = "default"
    secret_value: SecretStr
    token_ttl_seconds: Optional[int] = Field(default=60 * 60 * 24, gt=0)
    payload_version: PayloadVersion = LATEST_VERSION

    @property
    def ttl(self) -> Optional[timedelta]:
        if self.token_ttl_seconds is None:
            return None
        return timedelta(seconds=self.token_ttl_seconds)

    def secret(self) -> Secret:
        return Secret(secret_key=self.secret_key, secret_value=self.secret_value)


@lru_cache
def get_settings() -> TokenSettings:
    return TokenSettings()
