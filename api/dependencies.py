"""
API dependencies: per-request payment service wiring.
"""
from typing import Iterator

from application.services.payment_service import PaymentService
from infrastructure.external.payments import get_payment_gateway


def get_payment_service() -> Iterator[PaymentService]:
    """One authenticated gateway per request; the OAuth token and payment
    session are never shared between payers."""
    service = PaymentService(gateway=get_payment_gateway("snapppay"))
    try:
        yield service
    finally:
        service.close()
