import httpx
import pytest

from application.dtos.payments import Invoice, PaymentStatus
from domain.payment.normalization import CurrencyUnit
from infrastructure.external.payments.exceptions import (
    INVALID_PAYMENT_MESSAGE,
    PURCHASE_FAILED_MESSAGE,
    InvalidPayment,
    MalformedResponseError,
    PurchaseFailed,
)
from infrastructure.external.payments.snapppay_client import (
    CANCEL_URL,
    ELIGIBLE_URL,
    REVERT_URL,
    SETTLE_URL,
    STATUS_URL,
    TOKEN_URL,
    UPDATE_URL,
)


PAYMENT_PAGE = "https://pay.snapppay.test/checkout/abc"


def _invoice(**details) -> Invoice:
    invoice = Invoice(amount=100_000, uuid="order-42")
    invoice.detail("mobile", "09011234567")
    for key, value in details.items():
        invoice.detail(key, value)
    return invoice


def _token_created(provider):
    provider.on(
        "POST",
        TOKEN_URL,
        json={"successful": True, "response": {"paymentToken": "pt-1", "paymentPageUrl": PAYMENT_PAGE}},
    )


def test_purchase_stores_token_and_payment_url(provider, make_client):
    _token_created(provider)
    client = make_client()
    invoice = _invoice()

    transaction_id = client.purchase(invoice)

    assert transaction_id == "pt-1"
    assert invoice.transaction_id == "pt-1"
    assert client.session.payment_token == "pt-1"
    assert client.get_payment_url() == PAYMENT_PAGE


def test_purchase_request_body(provider, make_client):
    _token_created(provider)
    client = make_client()
    invoice = _invoice(
        discountAmount=5_000,
        externalSourceAmount=1_000,
        cartList={"shippingAmount": 2_000, "cartItems": [{"amount": 98_000}]},
    )

    client.purchase(invoice)

    request = provider.last(TOKEN_URL)
    assert request.headers["Authorization"] == "Bearer oauth-token"
    assert provider.json_body(request) == {
        "amount": 1_000_000,
        "mobile": "+989011234567",
        "paymentMethodTypeDto": "INSTALLMENT",
        "transactionId": "order-42",
        "returnURL": "https://shop.test/payments/callback",
        "discountAmount": 50_000,
        "externalSourceAmount": 1_000,
        "cartList": [{"shippingAmount": 20_000, "cartItems": [{"amount": 980_000}]}],
    }
    # caller's cart is not rewritten
    assert invoice.get_detail("cartList")["shippingAmount"] == 2_000


def test_purchase_in_rial_sends_amounts_unchanged(provider, make_client):
    _token_created(provider)
    client = make_client(currency=CurrencyUnit.RIAL)

    client.purchase(_invoice(discountAmount=5_000))

    body = provider.json_body(provider.last(TOKEN_URL))
    assert body["amount"] == 100_000
    assert body["discountAmount"] == 5_000


@pytest.mark.parametrize("key", ["phone", "cellphone", "mobile"])
def test_purchase_resolves_phone_from_any_detail(provider, make_client, key):
    _token_created(provider)
    client = make_client()
    invoice = Invoice(amount=10, details={key: "09121112233"})

    client.purchase(invoice)

    assert provider.json_body(provider.last(TOKEN_URL))["mobile"] == "+989121112233"


def test_purchase_without_phone_fails_before_request(provider, make_client):
    client = make_client()
    sent = len(provider.requests)

    with pytest.raises(PurchaseFailed):
        client.purchase(Invoice(amount=10))

    assert len(provider.requests) == sent


def test_purchase_surfaces_provider_message(provider, make_client):
    provider.on(
        "POST",
        TOKEN_URL,
        json={"successful": False, "errorData": {"errorCode": 1013, "message": "مبلغ نامعتبر است"}},
    )
    client = make_client()

    with pytest.raises(PurchaseFailed) as exc_info:
        client.purchase(_invoice())

    assert exc_info.value.message == "مبلغ نامعتبر است"
    assert exc_info.value.details["provider_code"] == "1013"


def test_purchase_without_error_data_uses_default_message(provider, make_client):
    provider.on("POST", TOKEN_URL, json={"successful": False})
    client = make_client()

    with pytest.raises(PurchaseFailed) as exc_info:
        client.purchase(_invoice())

    assert exc_info.value.message == PURCHASE_FAILED_MESSAGE


def test_purchase_non_200_with_html_body_is_purchase_failed(provider, make_client):
    provider.on("POST", TOKEN_URL, status=502, content=b"<html>bad gateway</html>")
    client = make_client()

    with pytest.raises(PurchaseFailed) as exc_info:
        client.purchase(_invoice())

    assert exc_info.value.status_code == 502


def test_purchase_undecodable_200_is_malformed(provider, make_client):
    provider.on("POST", TOKEN_URL, content=b"not json")
    client = make_client()

    with pytest.raises(MalformedResponseError):
        client.purchase(_invoice())


def test_purchase_incomplete_response_is_purchase_failed(provider, make_client):
    provider.on("POST", TOKEN_URL, json={"successful": True, "response": {"paymentToken": "pt-1"}})
    client = make_client()
    invoice = _invoice()

    with pytest.raises(PurchaseFailed):
        client.purchase(invoice)

    assert invoice.transaction_id is None
    assert client.get_payment_url() is None


def test_purchase_transport_error_is_purchase_failed(provider, make_client):
    client = make_client()
    provider.raise_on("POST", TOKEN_URL, httpx.ReadTimeout("timed out"))

    with pytest.raises(PurchaseFailed):
        client.purchase(_invoice())


def test_pay_redirects_with_get(provider, make_client):
    _token_created(provider)
    client = make_client()
    client.purchase(_invoice())

    form = client.pay()

    assert form.action == PAYMENT_PAGE
    assert form.method == "GET"
    assert form.inputs == {}


def test_pay_before_purchase_fails(make_client):
    with pytest.raises(PurchaseFailed):
        make_client().pay()


def test_verify_returns_receipt(provider, make_client):
    provider.on("POST", TOKEN_URL, json={"successful": True, "response": {"transactionId": "TRX-9"}})
    client = make_client()

    receipt = client.verify(Invoice(transaction_id="pt-1"))

    assert receipt.reference_id == "TRX-9"
    assert receipt.payment_token == "pt-1"
    assert receipt.provider == "snapppay"
    request = provider.last(TOKEN_URL)
    assert provider.json_body(request) == {"paymentToken": "pt-1"}
    assert request.headers["Authorization"] == "Bearer oauth-token"


def test_verify_rejected_raises_invalid_payment(provider, make_client):
    provider.on("POST", TOKEN_URL, status=400, json={"successful": False, "errorData": {"message": "expired"}})
    client = make_client()

    with pytest.raises(InvalidPayment) as exc_info:
        client.verify(Invoice(transaction_id="pt-1"))

    assert exc_info.value.message == "expired"
    assert exc_info.value.status_code == 400


def test_verify_uses_session_token_after_purchase(provider, make_client):
    _token_created(provider)
    client = make_client()
    client.purchase(_invoice())
    provider.on("POST", TOKEN_URL, json={"successful": True, "response": {"transactionId": "TRX-1"}})

    receipt = client.verify(Invoice())

    assert receipt.payment_token == "pt-1"


def test_verify_without_token_fails_before_request(provider, make_client):
    client = make_client()
    sent = len(provider.requests)

    with pytest.raises(InvalidPayment):
        client.verify(Invoice())

    assert len(provider.requests) == sent


def test_eligible_returns_body_verbatim(provider, make_client):
    offer = {
        "successful": True,
        "response": {"eligible": True, "title_message": "اقساط", "description": "۴ قسط"},
    }
    provider.on("GET", ELIGIBLE_URL, json=offer)
    client = make_client()

    assert client.eligible(Invoice(amount=250_000)) == offer
    request = provider.last(ELIGIBLE_URL)
    assert request.url.params["amount"] == "2500000"
    assert request.headers["Authorization"] == "Bearer oauth-token"


def test_eligible_without_amount_fails_before_request(provider, make_client):
    client = make_client()
    sent = len(provider.requests)

    with pytest.raises(PurchaseFailed):
        client.eligible(Invoice())

    assert len(provider.requests) == sent


def test_eligible_non_200_carries_status(provider, make_client):
    provider.on("GET", ELIGIBLE_URL, status=403, content=b"")
    client = make_client()

    with pytest.raises(InvalidPayment) as exc_info:
        client.eligible(Invoice(amount=1))

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == INVALID_PAYMENT_MESSAGE


@pytest.mark.parametrize(
    "operation, path",
    [("settle", SETTLE_URL), ("revert", REVERT_URL), ("cancel", CANCEL_URL)],
)
def test_token_operations(provider, make_client, operation, path):
    provider.on("POST", path, json={"successful": True, "response": {"transactionId": "TRX-5"}})
    client = make_client()

    result = getattr(client, operation)(Invoice(transaction_id="pt-1"))

    assert result.reference_id == "TRX-5"
    assert result.payment_token == "pt-1"
    assert provider.json_body(provider.last(path)) == {"paymentToken": "pt-1"}


@pytest.mark.parametrize(
    "operation, path",
    [("settle", SETTLE_URL), ("revert", REVERT_URL), ("cancel", CANCEL_URL), ("status", STATUS_URL)],
)
def test_token_operations_surface_failures(provider, make_client, operation, path):
    provider.on("POST", path, json={"successful": False, "errorData": {"message": "already settled"}})
    client = make_client()

    with pytest.raises(InvalidPayment) as exc_info:
        getattr(client, operation)(Invoice(transaction_id="pt-1"))

    assert exc_info.value.message == "already settled"


def test_status_maps_provider_state(provider, make_client):
    provider.on(
        "POST",
        STATUS_URL,
        json={"successful": True, "response": {"transactionId": "TRX-7", "status": "SETTLE", "amount": 1000}},
    )
    client = make_client()

    result = client.status(Invoice(transaction_id="pt-1"))

    assert result.status is PaymentStatus.SETTLE
    assert result.internal_status == "succeeded"
    assert result.amount == 1000


def test_status_unknown_state(provider, make_client):
    provider.on("POST", STATUS_URL, json={"successful": True, "response": {"status": "SOMETHING_NEW"}})
    client = make_client()

    result = client.status(Invoice(transaction_id="pt-1"))

    assert result.status is PaymentStatus.UNKNOWN
    assert result.internal_status == "unknown"


@pytest.mark.parametrize("amount", ["n/a", [1000], {"value": 1}])
def test_status_with_non_numeric_amount_is_malformed(provider, make_client, amount):
    provider.on(
        "POST",
        STATUS_URL,
        json={"successful": True, "response": {"status": "SETTLE", "amount": amount}},
    )
    client = make_client()

    with pytest.raises(MalformedResponseError) as exc_info:
        client.status(Invoice(transaction_id="pt-1"))

    assert exc_info.value.status_code == 200
    assert exc_info.value.details["operation"] == "status"


def test_update_sends_normalized_amounts(provider, make_client):
    provider.on("POST", UPDATE_URL, json={"successful": True, "response": {"transactionId": "TRX-8"}})
    client = make_client()
    invoice = Invoice(amount=90_000, transaction_id="pt-1")
    invoice.detail("cartList", [{"shippingAmount": 0, "cartItems": [{"amount": 90_000}]}])

    result = client.update(invoice)

    assert result.reference_id == "TRX-8"
    assert provider.json_body(provider.last(UPDATE_URL)) == {
        "amount": 900_000,
        "cartList": [{"shippingAmount": 0, "cartItems": [{"amount": 900_000}]}],
        "paymentMethodTypeDto": "INSTALLMENT",
        "paymentToken": "pt-1",
    }


def test_close_leaves_injected_transport_open(provider, config):
    from infrastructure.external.payments.snapppay_client import SnappPayClient

    http_client = provider.http_client()
    with SnappPayClient(config, http_client=http_client):
        pass

    assert not http_client.is_closed
    http_client.close()
