"""
Billing Schemas
Credit checkout, payment history and balance.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    """Amount of credit to buy, in major currency units (e.g. 10.50)."""
    amount: Decimal = Field(..., gt=0, le=10000, decimal_places=2)


class CheckoutResponse(BaseModel):
    session_id: str
    url: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    amount: int = Field(..., description="Amount in cents")
    currency: str
    status: str
    description: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    balance_cents: int
    balance: str = Field(..., description="Formatted balance, e.g. '12.50'")
    currency: str
