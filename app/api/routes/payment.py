"""
Stripe Checkout Session routes.
The webhook is the only place that grants unlimited access.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.dependencies.auth import get_identity_key
from app.dependencies.services import get_payment_service
from app.schemas.payment import CheckoutSessionResponse, WebhookAck
from app.services.payments import PaymentService

router = APIRouter()


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def create_checkout_session(
    request: Request,
    identity_key: str = Depends(get_identity_key),
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Create a Stripe Checkout Session and return the URL to redirect to.
    """
    origin = (request.headers.get("origin") or settings.FRONTEND_URL).rstrip("/")
    session = payments.start_checkout(identity_key, origin)
    return CheckoutSessionResponse(url=session.url, session_id=session.id)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Stripe webhook. Register this URL in the Stripe dashboard:
    https://your-backend.com/api/payment/webhook
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    # Verification and DB writes are blocking; keep them off the event loop
    await run_in_threadpool(payments.handle_webhook, payload, sig_header)
    return WebhookAck(received=True)
