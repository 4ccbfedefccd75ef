"""
Webhooks from the identity provider (Clerk via Svix).
"""
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.dependencies.services import get_identity_webhook_handler
from app.schemas.payment import WebhookAck
from app.services.identity_webhooks import IdentityWebhookHandler

router = APIRouter()


@router.post("/identity-provider", response_model=WebhookAck)
async def identity_provider_webhook(
    request: Request,
    handler: IdentityWebhookHandler = Depends(get_identity_webhook_handler),
):
    payload = await request.body()
    await run_in_threadpool(
        handler.handle,
        payload,
        signature_header=request.headers.get("svix-signature"),
        webhook_id=request.headers.get("svix-id"),
        webhook_timestamp=request.headers.get("svix-timestamp"),
    )
    return WebhookAck(received=True)
