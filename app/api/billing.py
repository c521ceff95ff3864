"""
Billing Routes
Stripe Checkout for account credits, payment history and the Stripe webhook.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from app.api.deps import get_billing, get_current_user_id
from app.schemas.billing import BalanceResponse, CheckoutRequest, CheckoutResponse, PaymentResponse
from app.schemas.model import ApiResult
from app.services.billing import BillingService
from app.services.users import format_cents, to_cents

router = APIRouter()


@router.post("/checkout", response_model=ApiResult)
async def create_checkout(
    request: CheckoutRequest,
    http_request: Request,
    user_id: str = Depends(get_current_user_id),
    billing: BillingService = Depends(get_billing),
):
    """Open a Checkout session; the client redirects to the returned URL."""
    user = billing.users.require(user_id)
    origin = http_request.headers.get("origin")
    payment, url = billing.create_checkout(user, to_cents(request.amount), origin=origin)
    return ApiResult(data=CheckoutResponse(session_id=payment.stripe_session_id, url=url))


@router.get("/payments", response_model=ApiResult)
async def list_payments(
    user_id: str = Depends(get_current_user_id),
    billing: BillingService = Depends(get_billing),
):
    payments = billing.list_payments(user_id)
    return ApiResult(data=[PaymentResponse.model_validate(p) for p in payments])


@router.get("/balance", response_model=ApiResult)
async def get_balance(
    user_id: str = Depends(get_current_user_id),
    billing: BillingService = Depends(get_billing),
):
    user = billing.users.require(user_id)
    return ApiResult(data=BalanceResponse(
        balance_cents=user.balance,
        balance=format_cents(user.balance),
        currency=billing.currency,
    ))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    billing: BillingService = Depends(get_billing),
):
    """Stripe event receiver. The raw body is needed for signature checks."""
    payload = await request.body()
    billing.handle_webhook(payload, stripe_signature)
    return {"received": True}
