"""
SnappPay OAuth password-grant authenticator.
"""
from __future__ import annotations

import base64
from typing import Optional

import httpx
from pydantic import ValidationError

from application.dtos.payments import GatewayConfig, OAuthToken, PROVIDER
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    AUTHENTICATION_FAILED_MESSAGE,
    AuthenticationFailed,
    MalformedResponseError,
)

OAUTH_URL = "/api/online/v1/oauth/token"
OAUTH_SCOPE = "online-merchant"


class SnappPayAuthenticator(BasePaymentClient):
    provider = PROVIDER

    def __init__(
        self,
        config: GatewayConfig,
        *,
        timeouts: Optional[dict[str, float]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(base_url=config.base_url, timeouts=timeouts, http_client=http_client)
        self.config = config

    def _basic_authorization(self) -> str:
        raw = f"{self.config.client_id}:{self.config.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def authenticate(self) -> OAuthToken:
        response = self._send(
            "oauth",
            "POST",
            OAUTH_URL,
            failure=AuthenticationFailed,
            headers={"Authorization": self._basic_authorization()},
            data={
                "grant_type": "password",
                "scope": OAUTH_SCOPE,
                "username": self.config.username,
                "password": self.config.password,
            },
        )
        if response.status_code != 200:
            raise AuthenticationFailed(
                AUTHENTICATION_FAILED_MESSAGE,
                provider=self.provider,
                status_code=response.status_code,
            )

        body = self._decode(response, "oauth")
        try:
            token = OAuthToken.model_validate(body)
        except ValidationError as exc:
            raise MalformedResponseError(
                "OAuth response has no access_token",
                provider=self.provider,
                status_code=response.status_code,
            ) from exc
        self._log("snapppay_authenticated", token_type=token.token_type, expires_in=token.expires_in)
        return token
