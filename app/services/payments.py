"""
Stripe Checkout + webhook handling for the one-off "unlimited" purchase.

Creating a checkout session never grants access. has_paid flips only when a
signature-verified webhook reports a paid session.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import BadRequestError, InfrastructureError
from app.models.payment import Payment
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

METADATA_KEY = "identity_key"
SIGNATURE_TOLERANCE = 300  # seconds, Stripe's default

PAID_STATUSES = ("paid", "no_payment_required")


@dataclass
class CheckoutSession:
    id: str
    url: str
    amount_total: Optional[int] = None
    currency: Optional[str] = None


class StripeGateway:
    """Thin wrapper over the Stripe SDK, holding its own keys instead of module globals."""

    def __init__(self, secret_key: str, webhook_secret: str, settings: Settings):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.settings = settings

    def create_checkout_session(self, identity_key: str, origin: str) -> CheckoutSession:
        if not self.secret_key:
            raise InfrastructureError("Stripe secret key not configured", reason="PaymentsNotConfigured")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.settings.CHECKOUT_CURRENCY,
                            "product_data": {"name": self.settings.CHECKOUT_PRODUCT_NAME},
                            "unit_amount": self.settings.CHECKOUT_PRICE_CENTS,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=f"{origin}/success",
                cancel_url=f"{origin}/cancel",
                client_reference_id=identity_key,
                metadata={METADATA_KEY: identity_key},
            )
        except stripe.StripeError as e:
            logger.error("[Stripe] Error creating checkout session for %s: %s", identity_key, e)
            raise InfrastructureError("Failed to create Stripe session", reason="CheckoutFailed") from e

        return CheckoutSession(
            id=session.id,
            url=session.url,
            amount_total=session.amount_total,
            currency=session.currency,
        )

    def verify_webhook(self, payload: bytes, signature_header: Optional[str]) -> dict:
        """
        Verify the Stripe-Signature header and return the event as a plain dict.
        """
        if not self.webhook_secret:
            raise InfrastructureError("Stripe webhook secret not configured", reason="PaymentsNotConfigured")
        if not signature_header:
            raise BadRequestError("Webhook signature verification failed", reason="InvalidSignature")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise BadRequestError("Invalid webhook payload", reason="InvalidPayload") from e

        try:
            stripe.WebhookSignature.verify_header(
                body, signature_header, self.webhook_secret, SIGNATURE_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("[Stripe webhook] Signature verification failed: %s", e)
            raise BadRequestError("Webhook signature verification failed", reason="InvalidSignature") from e

        try:
            event = json.loads(body)
        except json.JSONDecodeError as e:
            logger.warning("[Stripe webhook] Signed payload is not valid JSON: %s", e)
            raise BadRequestError("Invalid webhook payload", reason="InvalidPayload") from e

        if not isinstance(event, dict) or "type" not in event:
            raise BadRequestError("Invalid webhook payload", reason="InvalidPayload")
        return event


class PaymentService:
    def __init__(self, db: Session, store: UserStore, gateway: StripeGateway):
        self.db = db
        self.store = store
        self.gateway = gateway

    def start_checkout(self, identity_key: str, origin: str) -> CheckoutSession:
        """Create a hosted checkout session. Entitlement is left untouched."""
        session = self.gateway.create_checkout_session(identity_key, origin)
        self._upsert_payment(
            session.id,
            identity_key,
            status="open",
            amount_total=session.amount_total,
            currency=session.currency,
        )
        logger.info("[Stripe] Created checkout session %s for %s", session.id, identity_key)
        return session

    def handle_webhook(self, payload: bytes, signature_header: Optional[str]) -> None:
        event = self.gateway.verify_webhook(payload, signature_header)
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        logger.info("[Stripe webhook] type=%s id=%s", event_type, event.get("id"))

        if event_type == "checkout.session.completed":
            payment_status = (obj.get("payment_status") or "").lower()
            if payment_status in PAID_STATUSES:
                self._handle_paid(obj)
            else:
                # Delayed payment methods confirm later via async_payment_succeeded
                self._record_status(obj, "unpaid")
        elif event_type == "checkout.session.async_payment_succeeded":
            self._handle_paid(obj)
        elif event_type == "checkout.session.async_payment_failed":
            self._record_status(obj, "failed")
        elif event_type == "checkout.session.expired":
            self._record_status(obj, "expired")

    def _identity_key(self, obj: dict) -> Optional[str]:
        metadata = obj.get("metadata") or {}
        return metadata.get(METADATA_KEY) or obj.get("client_reference_id")

    def _handle_paid(self, obj: dict) -> None:
        identity_key = self._identity_key(obj)
        if not identity_key:
            logger.warning("[Stripe webhook] Paid session %s has no identity key, skipping", obj.get("id"))
            return

        self._upsert_payment(
            obj.get("id"),
            identity_key,
            status="paid",
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
            paid_at=datetime.utcnow(),
        )
        # Payment is authoritative even if the user never registered
        self.store.create_if_absent(identity_key)
        self.store.set_paid(identity_key, True)
        logger.info("[Stripe webhook] Unlimited access granted to %s", identity_key)

    def _record_status(self, obj: dict, status: str) -> None:
        identity_key = self._identity_key(obj)
        if not identity_key:
            logger.warning("[Stripe webhook] Session %s has no identity key, skipping", obj.get("id"))
            return
        self._upsert_payment(
            obj.get("id"),
            identity_key,
            status=status,
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
        )

    def _upsert_payment(
        self,
        session_id: Optional[str],
        identity_key: str,
        status: str,
        amount_total: Optional[int] = None,
        currency: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> Optional[Payment]:
        if not session_id:
            return None
        try:
            payment = (
                self.db.query(Payment)
                .filter(Payment.checkout_session_id == session_id)
                .first()
            )
            if payment:
                # A paid row stays paid when older events arrive late
                if payment.status != "paid":
                    payment.status = status
                payment.amount_total = amount_total if amount_total is not None else payment.amount_total
                payment.currency = currency or payment.currency
                payment.paid_at = payment.paid_at or paid_at
            else:
                payment = Payment(
                    identity_key=identity_key,
                    checkout_session_id=session_id,
                    status=status,
                    amount_total=amount_total,
                    currency=currency,
                    paid_at=paid_at,
                )
                self.db.add(payment)
            self.db.commit()
            return payment
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("[Stripe] Error saving payment %s for %s: %s", session_id, identity_key, e)
            raise InfrastructureError() from e
