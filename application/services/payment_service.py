"""
Application service orchestrating installment payment use-cases.

This class depends only on the application PaymentGateway port and DTOs.
Gateway implementations are provided by infrastructure and must be injected
from the composition root (API), keeping dependencies one-way.
"""
from __future__ import annotations

from typing import Any

from application.dtos.payments import (
    CancelResult,
    Invoice,
    Receipt,
    RedirectionForm,
    RevertResult,
    SettlementResult,
    StatusResult,
    UpdateResult,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger


logger = get_logger(__name__)


class PaymentService:
    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    def check_eligibility(self, invoice: Invoice) -> dict[str, Any]:
        logger.info("payment_eligibility_request", provider=self.gateway.provider, amount=invoice.amount)
        return self.gateway.eligible(invoice)

    def start_purchase(self, invoice: Invoice) -> tuple[str, RedirectionForm]:
        """Create a payment token and return it with the payer redirect."""
        logger.info(
            "payment_purchase_request",
            provider=self.gateway.provider,
            transaction_id=invoice.uuid,
            amount=invoice.amount,
        )
        payment_token = self.gateway.purchase(invoice)
        redirect = self.gateway.pay()
        logger.info("payment_purchase_created", provider=self.gateway.provider, transaction_id=invoice.uuid)
        return payment_token, redirect

    def verify(self, invoice: Invoice) -> Receipt:
        receipt = self.gateway.verify(invoice)
        logger.info(
            "payment_verified",
            provider=receipt.provider,
            reference_id=receipt.reference_id,
        )
        return receipt

    def settle(self, invoice: Invoice) -> SettlementResult:
        logger.info("payment_settle_request", provider=self.gateway.provider)
        return self.gateway.settle(invoice)

    def revert(self, invoice: Invoice) -> RevertResult:
        logger.info("payment_revert_request", provider=self.gateway.provider)
        return self.gateway.revert(invoice)

    def status(self, invoice: Invoice) -> StatusResult:
        return self.gateway.status(invoice)

    def cancel(self, invoice: Invoice) -> CancelResult:
        logger.info("payment_cancel_request", provider=self.gateway.provider)
        return self.gateway.cancel(invoice)

    def update(self, invoice: Invoice) -> UpdateResult:
        logger.info("payment_update_request", provider=self.gateway.provider, amount=invoice.amount)
        return self.gateway.update(invoice)

    def close(self) -> None:
        self.gateway.close()
