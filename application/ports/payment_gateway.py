"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.payments import (
    CancelResult,
    Invoice,
    PaymentSession,
    Receipt,
    RedirectionForm,
    RevertResult,
    SettlementResult,
    StatusResult,
    UpdateResult,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Installment gateway protocol.

    Implementations are synchronous; every call is one blocking request and
    nothing is retried. ``session`` holds the state produced by ``purchase``.
    """

    provider: str
    session: PaymentSession

    def purchase(self, invoice: Invoice) -> str: ...

    def pay(self) -> RedirectionForm: ...

    def verify(self, invoice: Invoice) -> Receipt: ...

    def eligible(self, invoice: Invoice) -> dict[str, Any]: ...

    def settle(self, invoice: Invoice) -> SettlementResult: ...

    def revert(self, invoice: Invoice) -> RevertResult: ...

    def status(self, invoice: Invoice) -> StatusResult: ...

    def cancel(self, invoice: Invoice) -> CancelResult: ...

    def update(self, invoice: Invoice) -> UpdateResult: ...

    def close(self) -> None: ...
