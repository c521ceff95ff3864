"""
Payment Model
Credit purchases made through Stripe Checkout.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey

from app.core.database import Base


class PaymentStatus(str, Enum):
    """Checkout payment states."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """One checkout session. ``amount`` is in cents."""

    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    stripe_session_id = Column(String, nullable=True, unique=True, index=True)
    stripe_payment_intent_id = Column(String, nullable=True)

    amount = Column(Integer, nullable=False)
    currency = Column(String, default="eur", nullable=False)
    status = Column(String, default=PaymentStatus.PENDING.value, nullable=False)
    description = Column(String, nullable=True)
    receipt_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Payment {self.id} {self.amount} {self.status}>"
