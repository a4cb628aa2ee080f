"""
SnappPay payment routes.

Thin layer over PaymentService: build an invoice from the request, call the
gateway, wrap the result in the unified envelope. Provider details stay in
infrastructure.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from starlette import status as http_status

from api.dependencies import get_payment_service
from application.dtos.payments import Invoice, PurchaseRequest, UpdateRequest
from application.services.payment_service import PaymentService
from core.response import success_response


router = APIRouter(prefix="/payments/snapppay", tags=["Payments"])


@router.get("/eligible", summary="Check installment eligibility")
def check_eligibility(
    amount: int = Query(gt=0),
    service: PaymentService = Depends(get_payment_service),
):
    offer = service.check_eligibility(Invoice(amount=amount))
    return success_response(data=offer, message="Eligibility checked")


@router.post("/purchase", summary="Create payment token")
def purchase(payload: PurchaseRequest, service: PaymentService = Depends(get_payment_service)):
    invoice = payload.to_invoice()
    payment_token, redirect = service.start_purchase(invoice)
    return success_response(
        data={
            "transaction_id": invoice.uuid,
            "payment_token": payment_token,
            "payment_url": redirect.action,
        },
        message="Payment token created",
    )


@router.post("/purchase/redirect", summary="Create payment token and redirect the payer")
def purchase_and_redirect(payload: PurchaseRequest, service: PaymentService = Depends(get_payment_service)):
    _, redirect = service.start_purchase(payload.to_invoice())
    # 303 so the browser follows with GET, as the hosted payment page expects
    return RedirectResponse(url=redirect.action, status_code=http_status.HTTP_303_SEE_OTHER)


@router.post("/{payment_token}/verify", summary="Verify payment")
def verify(payment_token: str, service: PaymentService = Depends(get_payment_service)):
    receipt = service.verify(Invoice(transaction_id=payment_token))
    return success_response(data=receipt.model_dump(mode="json"), message="Payment verified")


@router.post("/{payment_token}/settle", summary="Settle payment")
def settle(payment_token: str, service: PaymentService = Depends(get_payment_service)):
    result = service.settle(Invoice(transaction_id=payment_token))
    return success_response(data=result.model_dump(mode="json"), message="Payment settled")


@router.post("/{payment_token}/revert", summary="Revert payment")
def revert(payment_token: str, service: PaymentService = Depends(get_payment_service)):
    result = service.revert(Invoice(transaction_id=payment_token))
    return success_response(data=result.model_dump(mode="json"), message="Payment reverted")


@router.post("/{payment_token}/status", summary="Payment status")
def payment_status(payment_token: str, service: PaymentService = Depends(get_payment_service)):
    result = service.status(Invoice(transaction_id=payment_token))
    return success_response(data=result.model_dump(mode="json"), message="Payment status")


@router.post("/{payment_token}/cancel", summary="Cancel payment")
def cancel(payment_token: str, service: PaymentService = Depends(get_payment_service)):
    result = service.cancel(Invoice(transaction_id=payment_token))
    return success_response(data=result.model_dump(mode="json"), message="Payment canceled")


@router.post("/{payment_token}/update", summary="Update order amounts")
def update(payment_token: str, payload: UpdateRequest, service: PaymentService = Depends(get_payment_service)):
    result = service.update(payload.to_invoice(transaction_id=payment_token))
    return success_response(data=result.model_dump(mode="json"), message="Order updated")
