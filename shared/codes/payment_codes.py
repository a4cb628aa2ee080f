"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    AUTHENTICATION_FAILED = 60001
    PURCHASE_FAILED = 60002
    INVALID_PAYMENT = 60003
    MALFORMED_RESPONSE = 60004
    CONFIGURATION_ERROR = 60005


# Provider→internal status mapping
PROVIDER_STATUS_TO_INTERNAL = {
    "snapppay": {
        "PENDING": "pending",
        "VERIFY": "verified",
        "SETTLE": "succeeded",
        "REVERT": "refunded",
        "CANCEL": "canceled",
    },
}
