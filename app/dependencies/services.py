"""
Service factories wired as FastAPI dependencies.

Tests replace any of these through ``app.dependency_overrides``.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.identity_webhooks import IdentityWebhookHandler
from app.services.payments import PaymentService, StripeGateway
from app.services.transcription import Transcriber, build_transcriber
from app.services.upload_handler import UploadHandler
from app.services.user_store import UserStore


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_transcriber() -> Transcriber:
    return build_transcriber(settings)


def get_payment_gateway() -> StripeGateway:
    return StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET, settings)


def get_upload_handler(
    store: UserStore = Depends(get_user_store),
    transcriber: Transcriber = Depends(get_transcriber),
) -> UploadHandler:
    return UploadHandler(store, transcriber, settings)


def get_payment_service(
    db: Session = Depends(get_db),
    store: UserStore = Depends(get_user_store),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> PaymentService:
    return PaymentService(db, store, gateway)


def get_identity_webhook_handler(store: UserStore = Depends(get_user_store)) -> IdentityWebhookHandler:
    return IdentityWebhookHandler(store, settings.IDENTITY_WEBHOOK_SECRET)
