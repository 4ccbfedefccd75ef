"""
Webhooks from the identity provider (Clerk, delivered through Svix).

Only ``user.created`` matters here: it creates the user record eagerly.
Records are never deleted, so ``user.deleted`` is logged and ignored.
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Optional

from app.core.errors import BadRequestError
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

TIMESTAMP_TOLERANCE = 5 * 60  # seconds


def verify_standard_webhook(
    secret: str,
    payload: bytes,
    signature_header: Optional[str],
    webhook_id: Optional[str],
    webhook_timestamp: Optional[str],
    now: Optional[float] = None,
) -> bool:
    """
    Verify a Standard Webhooks (Svix) signature.

    Signed payload format:
        f"{webhook_id}.{webhook_timestamp}.{raw_body}"

    The HMAC-SHA256 digest is sent base64-encoded in the signature header as
    one or more space-separated "v1,<signature>" entries.
    """
    if not secret or not signature_header or not webhook_id or not webhook_timestamp:
        return False

    try:
        ts = int(webhook_timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if abs(current - ts) > TIMESTAMP_TOLERANCE:
        return False

    # Standard Webhooks secrets are base64-encoded and prefixed with "whsec_".
    try:
        if secret.startswith("whsec_"):
            key_bytes = base64.b64decode(secret.split("_", 1)[1])
        else:
            key_bytes = secret.encode()
        body = payload.decode()
    except (ValueError, UnicodeDecodeError):
        return False

    signed_payload = f"{webhook_id}.{webhook_timestamp}.{body}".encode()
    expected = base64.b64encode(hmac.new(key_bytes, signed_payload, hashlib.sha256).digest()).decode()

    for entry in signature_header.split():
        version, _, sig = entry.partition(",")
        if version == "v1" and hmac.compare_digest(sig.strip(), expected):
            return True
    return False


class IdentityWebhookHandler:
    def __init__(self, store: UserStore, secret: str = ""):
        self.store = store
        self.secret = secret

    def handle(
        self,
        payload: bytes,
        signature_header: Optional[str] = None,
        webhook_id: Optional[str] = None,
        webhook_timestamp: Optional[str] = None,
    ) -> None:
        if self.secret and not verify_standard_webhook(
            self.secret, payload, signature_header, webhook_id, webhook_timestamp
        ):
            raise BadRequestError("Invalid webhook signature", reason="InvalidSignature")

        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            raise BadRequestError("Invalid JSON", reason="InvalidPayload")
        if not isinstance(event, dict):
            raise BadRequestError("Invalid JSON", reason="InvalidPayload")

        event_type = event.get("type")
        data = event.get("data") or {}
        identity_key = data.get("id") if isinstance(data, dict) else None

        logger.info("[Identity webhook] type=%s user=%s", event_type, identity_key)

        if event_type == "user.created":
            if not identity_key:
                raise BadRequestError("Event is missing data.id", reason="MissingIdentityKey")
            self.store.create_if_absent(identity_key)
        elif event_type == "user.deleted":
            logger.info("[Identity webhook] Ignoring deletion of %s; records are retained", identity_key)
