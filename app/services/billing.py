"""
Billing Service
Credit purchases through Stripe Checkout.

Flow:
1. ``create_checkout`` opens a Checkout session and records a pending payment
2. Stripe calls the webhook with ``checkout.session.completed``
3. ``handle_webhook`` verifies the signature, marks the payment completed and
   credits the user's balance in one transaction

The pending -> completed update is conditional, so a redelivered event never
credits the balance twice.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional, Tuple

import stripe
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AppError, PaymentProviderError, ValidationError
from app.models.payment import Payment, PaymentStatus
from app.models.user import User
from app.services.users import UserService, format_cents

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PURCHASE_TYPE = "credit_purchase"


class BillingService:

    def __init__(
        self,
        db: Session,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.db = db
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.currency = (currency or settings.BILLING_CURRENCY).lower()
        self.users = UserService(db)

    # --- Checkout ---

    def create_checkout(self, user: User, amount_cents: int, origin: Optional[str] = None) -> Tuple[Payment, str]:
        """
        Open a Checkout session for ``amount_cents`` of credit.

        Returns:
            (pending payment, Checkout URL to redirect the user to)
        """
        if amount_cents <= 0:
            raise ValidationError("Invalid amount")
        if not self.api_key:
            logger.error("[Billing] STRIPE_SECRET_KEY is not configured")
            raise PaymentProviderError("Payments are not configured")

        origin = (origin or settings.FRONTEND_URL).rstrip("/")
        display_amount = format_cents(amount_cents)

        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {
                            "name": "Account Credits",
                            "description": f"Add {display_amount} {self.currency.upper()} to your DiffusionLab account",
                        },
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }],
                mode="payment",
                success_url=f"{origin}/billing/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{origin}/billing?canceled=true",
                customer_email=user.email,
                invoice_creation={"enabled": True},
                metadata={
                    "user_id": user.id,
                    "amount_cents": str(amount_cents),
                    "type": PURCHASE_TYPE,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"[Billing] Checkout session creation failed for user {user.id}: {e}")
            raise PaymentProviderError("Failed to create checkout session", http_status=e.http_status)

        payment = Payment(
            user_id=user.id,
            stripe_session_id=session.id,
            amount=amount_cents,
            currency=self.currency,
            status=PaymentStatus.PENDING.value,
            description=f"Account credit purchase - {display_amount} {self.currency.upper()}",
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        logger.info(f"[Billing] Checkout session {session.id} opened for user {user.id} ({amount_cents} cents)")
        return payment, session.url

    # --- Webhook ---

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        """Verify the Stripe-Signature header and parse the event body."""
        if not self.webhook_secret:
            logger.error("[Billing] STRIPE_WEBHOOK_SECRET is not configured")
            raise AppError("Payment webhook not configured")
        if not signature:
            raise ValidationError("No signature")

        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                text, signature, self.webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning(f"[Billing] Webhook signature verification failed: {e}")
            raise ValidationError("Invalid signature")

        try:
            event = json.loads(text)
        except ValueError:
            raise ValidationError("Invalid payload")
        if not isinstance(event, dict):
            raise ValidationError("Invalid payload")
        return event

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[Payment]:
        """
        Process a Stripe event. Only completed checkouts change state; other
        event types are acknowledged and ignored.
        """
        event = self.construct_event(payload, signature)
        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED:
            logger.info(f"[Billing] Ignoring Stripe event {event_type}")
            return None

        session = (event.get("data") or {}).get("object") or {}
        return self.complete_checkout(session)

    def complete_checkout(self, session: dict) -> Payment:
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        try:
            amount_cents = int(metadata.get("amount_cents"))
        except (TypeError, ValueError):
            amount_cents = None
        session_id = session.get("id")

        if not user_id or not amount_cents or amount_cents <= 0 or not session_id:
            logger.error(f"[Billing] Completed checkout {session_id} is missing metadata")
            raise ValidationError("Missing metadata")

        self.users.require(user_id)

        payment = self.db.query(Payment).filter(Payment.stripe_session_id == session_id).first()
        if payment and payment.status == PaymentStatus.COMPLETED.value:
            logger.info(f"[Billing] Checkout {session_id} already processed")
            return payment

        fields = {
            "status": PaymentStatus.COMPLETED.value,
            "paid_at": datetime.utcnow(),
            "stripe_payment_intent_id": session.get("payment_intent"),
            "receipt_url": self._receipt_url(session.get("invoice")),
        }

        if payment:
            result = self.db.execute(
                update(Payment)
                .where(Payment.id == payment.id, Payment.status != PaymentStatus.COMPLETED.value)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Another delivery of the same event got there first
                self.db.rollback()
                logger.info(f"[Billing] Checkout {session_id} already processed")
                self.db.refresh(payment)
                return payment
        else:
            logger.warning(f"[Billing] No pending payment for checkout {session_id}; recording it now")
            payment = Payment(
                user_id=user_id,
                stripe_session_id=session_id,
                amount=amount_cents,
                currency=(session.get("currency") or self.currency).lower(),
                description=f"Account credit purchase - {format_cents(amount_cents)} {self.currency.upper()}",
                **fields,
            )
            self.db.add(payment)
            self.db.flush()

        balance = self.users.add_credit(user_id, amount_cents, commit=False)
        self.db.commit()
        self.db.refresh(payment)

        logger.info(f"[Billing] Checkout {session_id} completed: +{amount_cents} cents for user {user_id} (balance {balance})")
        return payment

    def _receipt_url(self, invoice_id: Optional[str]) -> Optional[str]:
        """Hosted invoice page for the receipt, when Stripe created one."""
        if not invoice_id or not self.api_key:
            return None
        try:
            invoice = stripe.Invoice.retrieve(invoice_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.warning(f"[Billing] Could not retrieve invoice {invoice_id}: {e}")
            return None
        return getattr(invoice, "hosted_invoice_url", None)

    # --- Queries ---

    def list_payments(self, user_id: str) -> List[Payment]:
        return self.db.query(Payment).filter(
            Payment.user_id == user_id
        ).order_by(Payment.created_at.desc()).all()
