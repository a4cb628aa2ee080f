"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Values are loaded leniently here; `GatewayConfig` validates them when a
gateway client is built, so a half-configured environment still imports.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 20.0
    write: float = 20.0
    total: float = 30.0


class SnappPaySettings(BaseModel):
    base_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    callback_url: Optional[str] = None
    # "T" (Toman) or "R" (Rial)
    currency: str = "T"


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    snapppay: SnappPaySettings = Field(default_factory=SnappPaySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
