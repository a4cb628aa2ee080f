"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.dtos.payments import GatewayConfig
from application.ports.payment_gateway import PaymentGateway


def get_payment_gateway(
    provider: Optional[str] = None,
    *,
    config: Optional[GatewayConfig] = None,
    http_client: Optional[httpx.Client] = None,
) -> PaymentGateway:
    """Build an authenticated gateway client.

    Each call authenticates a new instance; build one per payment flow.
    """
    name = (provider or "snapppay").lower()
    if name in {"snapppay", "snappay", "snapp"}:
        from .snapppay_client import SnappPayClient
        return SnappPayClient(config, http_client=http_client)
    raise ValueError(f"Unsupported payment provider: {name}")
