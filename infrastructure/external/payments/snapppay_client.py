"""
SnappPay installment gateway adapter.

Flow: the client authenticates once on construction, ``purchase`` creates a
payment token and a payment page URL, the payer is redirected with ``pay``,
and ``verify`` confirms the payment when the payer returns. ``settle``,
``revert``, ``status``, ``cancel`` and ``update`` act on the same payment
token afterwards.

All amounts leave this module in Rials; see domain.payment.normalization.
"""
from __future__ import annotations

from typing import Any, Optional, TypeVar

import httpx
from pydantic import ValidationError

from application.dtos.payments import (
    CancelResult,
    GatewayConfig,
    Invoice,
    OAuthToken,
    PaymentSession,
    PaymentStatus,
    PROVIDER,
    Receipt,
    RedirectionForm,
    RevertResult,
    SettlementResult,
    StatusResult,
    UpdateResult,
)
from core.logging_config import get_logger
from core.settings import PaymentSettings, payment_settings
from domain.payment.normalization import (
    normalize_amount,
    normalize_cart_list,
    normalize_phone,
)
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    AUTHENTICATION_FAILED_MESSAGE,
    INVALID_PAYMENT_MESSAGE,
    PURCHASE_FAILED_MESSAGE,
    AuthenticationFailed,
    GatewayConfigError,
    InvalidPayment,
    MalformedResponseError,
    PurchaseFailed,
)
from infrastructure.external.payments.snapppay_auth import SnappPayAuthenticator


logger = get_logger(__name__)

ELIGIBLE_URL = "/api/online/offer/v1/eligible"
# Token creation and verification share one path; only the body differs.
TOKEN_URL = "/api/online/payment/v1/token"
SETTLE_URL = "/api/online/payment/v1/settle"
REVERT_URL = "/api/online/payment/v1/revert"
STATUS_URL = "/api/online/payment/v1/status"
CANCEL_URL = "/api/online/payment/v1/cancel"
UPDATE_URL = "/api/online/payment/v1/update"

PAYMENT_METHOD = "INSTALLMENT"
PHONE_DETAIL_KEYS = ("phone", "cellphone", "mobile")

ResultT = TypeVar("ResultT", SettlementResult, RevertResult, CancelResult, UpdateResult)


def config_from_settings(settings: PaymentSettings = payment_settings) -> GatewayConfig:
    """Build a validated GatewayConfig from environment settings."""
    try:
        return GatewayConfig.model_validate(settings.snapppay.model_dump())
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise GatewayConfigError(
            f"SnappPay is not configured: {', '.join(fields)}",
            provider=PROVIDER,
            details={"fields": fields},
        ) from exc


class SnappPayClient(BasePaymentClient):
    provider = PROVIDER

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        timeouts: Optional[dict[str, float]] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config or config_from_settings()
        super().__init__(
            base_url=self.config.base_url,
            timeouts=timeouts or payment_settings.timeouts.model_dump(),
            http_client=http_client,
        )
        self.session = PaymentSession()
        try:
            self.reauthenticate()
        except Exception:
            self.close()
            raise

    def reauthenticate(self) -> OAuthToken:
        """Acquire a fresh OAuth token and make it the session's token."""
        authenticator = SnappPayAuthenticator(
            self.config,
            timeouts=self._timeouts_cfg,
            http_client=self.client,
        )
        self.session.oauth_token = authenticator.authenticate()
        return self.session.oauth_token

    def get_payment_url(self) -> Optional[str]:
        return self.session.payment_url

    def set_payment_url(self, payment_url: str) -> None:
        self.session.payment_url = payment_url

    def _bearer(self) -> dict[str, str]:
        if self.session.oauth_token is None:
            raise AuthenticationFailed(AUTHENTICATION_FAILED_MESSAGE, provider=self.provider)
        return {"Authorization": self.session.oauth_token.authorization}

    def _amount_fields(self, invoice: Invoice) -> dict[str, Any]:
        unit = self.config.currency
        data: dict[str, Any] = {"amount": normalize_amount(invoice.amount, unit)}

        discount_amount = invoice.get_detail("discountAmount")
        if discount_amount is not None:
            data["discountAmount"] = normalize_amount(discount_amount, unit)

        external_source_amount = invoice.get_detail("externalSourceAmount")
        if external_source_amount is not None:
            data["externalSourceAmount"] = external_source_amount

        cart_list = invoice.get_detail("cartList")
        if cart_list is not None:
            data["cartList"] = normalize_cart_list(cart_list, unit)
        return data

    def _payment_token(self, invoice: Invoice) -> str:
        token = invoice.transaction_id or self.session.payment_token
        if not token:
            raise InvalidPayment(
                '"paymentToken" is required for this method.',
                provider=self.provider,
            )
        return token

    def purchase(self, invoice: Invoice) -> str:
        phone = next(
            (invoice.get_detail(key) for key in PHONE_DETAIL_KEYS if invoice.get_detail(key) is not None),
            None,
        )
        if not phone:
            raise PurchaseFailed('"mobile" is required for this method.', provider=self.provider)
        if invoice.amount is None:
            raise PurchaseFailed('"amount" is required for this method.', provider=self.provider)

        data = {
            **self._amount_fields(invoice),
            "mobile": normalize_phone(str(phone)),
            "paymentMethodTypeDto": PAYMENT_METHOD,
            "transactionId": invoice.uuid,
            "returnURL": self.config.callback_url,
        }

        response, payload = self._call(
            "purchase",
            "POST",
            TOKEN_URL,
            failure=PurchaseFailed,
            default_message=PURCHASE_FAILED_MESSAGE,
            json=data,
            headers=self._bearer(),
        )
        payment_token = payload.get("paymentToken")
        payment_url = payload.get("paymentPageUrl")
        if not payment_token or not payment_url:
            raise PurchaseFailed(
                PURCHASE_FAILED_MESSAGE,
                provider=self.provider,
                status_code=response.status_code,
                details={"operation": "purchase", "reason": "incomplete_response"},
            )

        invoice.transaction_id = str(payment_token)
        self.session.payment_token = invoice.transaction_id
        self.set_payment_url(str(payment_url))
        self._log("snapppay_purchase_created", transaction_id=invoice.uuid)
        return invoice.transaction_id

    def pay(self) -> RedirectionForm:
        payment_url = self.get_payment_url()
        if not payment_url:
            raise PurchaseFailed("No payment URL; purchase has not succeeded yet.", provider=self.provider)
        return RedirectionForm(action=payment_url, inputs={}, method="GET")

    def verify(self, invoice: Invoice) -> Receipt:
        payment_token = self._payment_token(invoice)
        _, payload = self._call(
            "verify",
            "POST",
            TOKEN_URL,
            failure=InvalidPayment,
            default_message=INVALID_PAYMENT_MESSAGE,
            json={"paymentToken": payment_token},
            headers=self._bearer(),
        )
        return Receipt(
            reference_id=str(payload.get("transactionId") or payment_token),
            payment_token=payment_token,
            raw=payload,
        )

    def eligible(self, invoice: Invoice) -> dict[str, Any]:
        if invoice.amount is None:
            raise PurchaseFailed('"amount" is required for this method.', provider=self.provider)

        response = self._send(
            "eligible",
            "GET",
            ELIGIBLE_URL,
            failure=PurchaseFailed,
            headers=self._bearer(),
            params={"amount": normalize_amount(invoice.amount, self.config.currency)},
        )
        if response.status_code != 200:
            try:
                error_data = self._decode(response, "eligible").get("errorData")
            except MalformedResponseError:
                error_data = None
            message = error_data.get("message") if isinstance(error_data, dict) else None
            raise InvalidPayment(
                message or INVALID_PAYMENT_MESSAGE,
                provider=self.provider,
                status_code=response.status_code,
                details={"operation": "eligible"},
            )
        return self._decode(response, "eligible")

    def _token_operation(
        self,
        operation: str,
        path: str,
        invoice: Invoice,
        result_cls: type[ResultT],
        extra: Optional[dict[str, Any]] = None,
    ) -> ResultT:
        payment_token = self._payment_token(invoice)
        _, payload = self._call(
            operation,
            "POST",
            path,
            failure=InvalidPayment,
            default_message=INVALID_PAYMENT_MESSAGE,
            json={**(extra or {}), "paymentToken": payment_token},
            headers=self._bearer(),
        )
        return result_cls(
            reference_id=str(payload.get("transactionId") or payment_token),
            payment_token=payment_token,
            raw=payload,
        )

    def settle(self, invoice: Invoice) -> SettlementResult:
        return self._token_operation("settle", SETTLE_URL, invoice, SettlementResult)

    def revert(self, invoice: Invoice) -> RevertResult:
        return self._token_operation("revert", REVERT_URL, invoice, RevertResult)

    def cancel(self, invoice: Invoice) -> CancelResult:
        return self._token_operation("cancel", CANCEL_URL, invoice, CancelResult)

    def update(self, invoice: Invoice) -> UpdateResult:
        if invoice.amount is None:
            raise InvalidPayment('"amount" is required for this method.', provider=self.provider)
        extra = {**self._amount_fields(invoice), "paymentMethodTypeDto": PAYMENT_METHOD}
        return self._token_operation("update", UPDATE_URL, invoice, UpdateResult, extra)

    def status(self, invoice: Invoice) -> StatusResult:
        payment_token = self._payment_token(invoice)
        response, payload = self._call(
            "status",
            "POST",
            STATUS_URL,
            failure=InvalidPayment,
            default_message=INVALID_PAYMENT_MESSAGE,
            json={"paymentToken": payment_token},
            headers=self._bearer(),
        )
        status = PaymentStatus(payload.get("status") or PaymentStatus.UNKNOWN.value)
        amount = payload.get("amount")
        if amount is not None:
            try:
                amount = int(amount)
            except (TypeError, ValueError) as exc:
                raise MalformedResponseError(
                    "Payment provider returned a non-numeric amount",
                    provider=self.provider,
                    status_code=response.status_code,
                    details={"operation": "status", "amount": str(amount)},
                ) from exc
        return StatusResult(
            reference_id=str(payload.get("transactionId") or payment_token),
            payment_token=payment_token,
            status=status,
            internal_status=self._map_status(status.value),
            amount=amount,
            raw=payload,
        )
