"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

import uuid as uuid_lib
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from domain.payment.normalization import CurrencyUnit

PROVIDER = "snapppay"


class GatewayConfig(BaseModel):
    """Immutable SnappPay connection settings for one client instance."""

    base_url: str
    client_id: str
    client_secret: str = Field(repr=False)
    username: str
    password: str = Field(repr=False)
    callback_url: str
    currency: CurrencyUnit

    model_config = ConfigDict(frozen=True)

    @field_validator("base_url", "client_id", "client_secret", "username", "password", "callback_url", mode="before")
    @classmethod
    def _require_non_blank(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("must not be empty")
        return v.strip() if isinstance(v, str) else v

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CartItem(_CamelModel):
    amount: int
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    category: Optional[str] = None
    count: int = 1
    commission_type: Optional[int] = None


class Cart(_CamelModel):
    cart_id: Optional[Union[int, str]] = None
    cart_items: list[CartItem] = Field(default_factory=list)
    is_shipment_included: bool = False
    is_tax_included: bool = False
    shipping_amount: Optional[int] = None
    tax_amount: Optional[int] = None
    total_amount: Optional[int] = None


class Invoice(BaseModel):
    """Merchant invoice. The gateway only writes ``transaction_id``."""

    amount: Optional[int] = None
    uuid: str = Field(default_factory=lambda: str(uuid_lib.uuid4()))
    details: dict[str, Any] = Field(default_factory=dict)
    transaction_id: Optional[str] = None

    def get_detail(self, name: str, default: Any = None) -> Any:
        return self.details.get(name, default)

    def detail(self, name: str, value: Any) -> "Invoice":
        self.details[name] = value
        return self


class OAuthToken(BaseModel):
    access_token: str = Field(repr=False)
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"


class PaymentSession(BaseModel):
    """State threaded through one purchase flow."""

    oauth_token: Optional[OAuthToken] = Field(default=None, repr=False)
    payment_token: Optional[str] = None
    payment_url: Optional[str] = None


class RedirectionForm(BaseModel):
    action: str
    inputs: dict[str, str] = Field(default_factory=dict)
    method: str = "GET"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    VERIFY = "VERIFY"
    SETTLE = "SETTLE"
    REVERT = "REVERT"
    CANCEL = "CANCEL"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.upper():
                    return member
        return cls.UNKNOWN


class _OperationResult(BaseModel):
    provider: str = PROVIDER
    reference_id: Optional[str] = None
    payment_token: str
    raw: dict[str, Any] = Field(default_factory=dict)


class Receipt(_OperationResult):
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SettlementResult(_OperationResult):
    pass


class RevertResult(_OperationResult):
    pass


class CancelResult(_OperationResult):
    pass


class UpdateResult(_OperationResult):
    pass


class StatusResult(_OperationResult):
    status: PaymentStatus = PaymentStatus.UNKNOWN
    internal_status: str = "unknown"
    amount: Optional[int] = None


class UpdateRequest(BaseModel):
    """HTTP payload with the amounts of an existing order."""

    amount: int = Field(gt=0)
    discount_amount: Optional[int] = Field(default=None, ge=0)
    external_source_amount: Optional[int] = Field(default=None, ge=0)
    cart_list: Optional[list[Cart]] = None

    def to_invoice(self, transaction_id: Optional[str] = None) -> Invoice:
        invoice = Invoice(amount=self.amount, transaction_id=transaction_id)
        if self.discount_amount is not None:
            invoice.detail("discountAmount", self.discount_amount)
        if self.external_source_amount is not None:
            invoice.detail("externalSourceAmount", self.external_source_amount)
        if self.cart_list is not None:
            invoice.detail("cartList", self.cart_list)
        return invoice


class PurchaseRequest(UpdateRequest):
    """HTTP payload describing an invoice to pay in installments."""

    mobile: str
    uuid: Optional[str] = None

    def to_invoice(self, transaction_id: Optional[str] = None) -> Invoice:
        invoice = super().to_invoice(transaction_id)
        if self.uuid:
            invoice.uuid = self.uuid
        invoice.detail("mobile", self.mobile)
        return invoice
