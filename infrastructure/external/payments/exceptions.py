"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode

# Provider-facing default messages (Persian, as shown to payers)
AUTHENTICATION_FAILED_MESSAGE = "خطا در هنگام احراز هویت."
PURCHASE_FAILED_MESSAGE = "خطا در هنگام درخواست برای پرداخت رخ داده است."
INVALID_PAYMENT_MESSAGE = "پرداخت نامعتبر است."


class PaymentProviderError(BusinessException):
    error_type = "PaymentProviderError"
    payment_code = PaymentCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: Optional[int] = None,
        provider_code: str | None = None,
        details: Optional[dict] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        full_details = {"provider": provider, "provider_code": provider_code, "status_code": status_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=self.payment_code,
            message=message,
            error_type=self.error_type,
            details=full_details,
        )


class AuthenticationFailed(PaymentProviderError):
    error_type = "AuthenticationFailed"
    payment_code = PaymentCode.AUTHENTICATION_FAILED


class PurchaseFailed(PaymentProviderError):
    error_type = "PurchaseFailed"
    payment_code = PaymentCode.PURCHASE_FAILED


class InvalidPayment(PaymentProviderError):
    error_type = "InvalidPayment"
    payment_code = PaymentCode.INVALID_PAYMENT


class MalformedResponseError(PaymentProviderError):
    error_type = "MalformedResponse"
    payment_code = PaymentCode.MALFORMED_RESPONSE


class GatewayConfigError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="GatewayConfigError",
            details=full_details,
        )
