"""
Amount, cart and phone normalization for the SnappPay protocol.

SnappPay only accepts amounts in Rials. Merchants may price in Tomans, so
every monetary field is converted before it leaves the process. All helpers
here are pure: inputs are never mutated.
"""
from __future__ import annotations

import copy
import re
from enum import Enum
from typing import Any, Iterable, Mapping

from domain.common.exceptions import DomainValidationException


class CurrencyUnit(str, Enum):
    RIAL = "R"
    TOMAN = "T"

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            aliases = {"rial": cls.RIAL, "irr": cls.RIAL, "toman": cls.TOMAN, "irt": cls.TOMAN}
            return aliases.get(value.strip().lower())
        return None


CART_AMOUNT_FIELDS = ("shippingAmount", "taxAmount", "totalAmount")

_TRUNK_PREFIX = re.compile(r"^0")


def normalize_amount(amount: int, unit: CurrencyUnit | str) -> int:
    """Convert an amount in the merchant's unit to Rials."""
    return int(amount) * (10 if CurrencyUnit(unit) is CurrencyUnit.TOMAN else 1)


def normalize_phone(phone: str) -> str:
    """Rewrite a domestic number to the +98 form, e.g. 0901... -> +98901..."""
    return _TRUNK_PREFIX.sub("+98", phone.strip())


def _as_mapping(cart: Any) -> dict[str, Any]:
    # pydantic models are dumped with their wire aliases
    dump = getattr(cart, "model_dump", None)
    if callable(dump):
        return dump(by_alias=True, exclude_none=True)
    if isinstance(cart, Mapping):
        return copy.deepcopy(dict(cart))
    raise DomainValidationException("cartList entries must be objects", field="cartList")


def _canonical_carts(cart_list: Any) -> list[dict[str, Any]]:
    if hasattr(cart_list, "model_dump") or isinstance(cart_list, Mapping):
        single = _as_mapping(cart_list)
        if single.get("shippingAmount") is None:
            raise DomainValidationException(
                "cartList must be a cart with shippingAmount or a list of carts",
                field="cartList",
            )
        return [single]
    if isinstance(cart_list, (str, bytes)) or not isinstance(cart_list, Iterable):
        raise DomainValidationException("cartList must be a list of carts", field="cartList")
    return [_as_mapping(cart) for cart in cart_list]


def normalize_cart_list(cart_list: Any, unit: CurrencyUnit | str) -> list[dict[str, Any]]:
    """Return a new cart list with every monetary field expressed in Rials.

    A single cart object (recognised by its ``shippingAmount``) is wrapped
    into a one-element list first. Cart items must carry ``amount``.
    """
    carts = _canonical_carts(cart_list)
    for cart in carts:
        for name in CART_AMOUNT_FIELDS:
            if cart.get(name) is not None:
                cart[name] = normalize_amount(cart[name], unit)
        for item in cart.get("cartItems") or []:
            item["amount"] = normalize_amount(item["amount"], unit)
    return carts
