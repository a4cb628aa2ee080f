"""
Base payment client implementing shared concerns: http, logging, response
classification and status mapping.

Concrete providers subclass and implement the protocol calls. Requests are
never retried: provider calls such as token creation are not idempotent, so
the caller decides what to do with a failure.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import (
    MalformedResponseError,
    PaymentProviderError,
)
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        timeouts: Optional[dict[str, float]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeouts_cfg = timeouts or {"connect": 5.0, "read": 20.0, "write": 20.0, "total": 30.0}
        # An injected client belongs to the caller and is left open on close()
        self._owns_client = http_client is None
        self._client: Optional[httpx.Client] = http_client

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeouts)
        return self._client

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            try:
                self._client.close()
            finally:
                self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        failure: type[PaymentProviderError],
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request. Non-2xx responses are returned, not raised."""
        self._log("snapppay_request", operation=operation, method=method, path=path)
        started = time.perf_counter()
        try:
            response = self.client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "snapppay_unreachable",
                provider=self.provider,
                operation=operation,
                error=str(exc),
            )
            raise failure(
                f"Payment provider is unreachable: {exc}",
                provider=self.provider,
                details={"operation": operation},
            ) from exc
        self._log(
            "snapppay_response",
            operation=operation,
            status_code=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    def _decode(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        """Decode a JSON object body or raise MalformedResponseError."""
        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "Payment provider returned an undecodable body",
                provider=self.provider,
                status_code=response.status_code,
                details={"operation": operation},
            ) from exc
        if not isinstance(body, dict):
            raise MalformedResponseError(
                "Payment provider returned a non-object body",
                provider=self.provider,
                status_code=response.status_code,
                details={"operation": operation},
            )
        return body

    def _ensure_successful(
        self,
        response: httpx.Response,
        body: dict[str, Any],
        *,
        operation: str,
        failure: type[PaymentProviderError],
        default_message: str,
    ) -> dict[str, Any]:
        """Raise ``failure`` unless the call returned 200 and was not flagged
        unsuccessful; return the ``response`` payload otherwise."""
        if response.status_code != 200 or body.get("successful") is False:
            error_data = body.get("errorData")
            if not isinstance(error_data, dict):
                error_data = {}
            message = error_data.get("message")
            error_code = error_data.get("errorCode")
            logger.warning(
                "snapppay_failed",
                provider=self.provider,
                operation=operation,
                status_code=response.status_code,
                provider_message=message,
            )
            raise failure(
                message or default_message,
                provider=self.provider,
                status_code=response.status_code,
                provider_code=str(error_code) if error_code is not None else None,
                details={"operation": operation},
            )
        payload = body.get("response")
        return payload if isinstance(payload, dict) else {}

    def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        failure: type[PaymentProviderError],
        default_message: str,
        **kwargs: Any,
    ) -> tuple[httpx.Response, dict[str, Any]]:
        """Send, decode and classify one provider call.

        An undecodable body is only a MalformedResponseError on HTTP 200;
        on any other status the call already failed and ``failure`` wins.
        """
        response = self._send(operation, method, path, failure=failure, **kwargs)
        try:
            body = self._decode(response, operation)
        except MalformedResponseError:
            if response.status_code == 200:
                raise
            body = {}
        payload = self._ensure_successful(
            response,
            body,
            operation=operation,
            failure=failure,
            default_message=default_message,
        )
        return response, payload

    # Helpers
    def _map_status(self, provider_status: str) -> str:
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        return mapping.get(provider_status, "unknown")

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
