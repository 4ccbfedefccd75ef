from fastapi import Request

from app.core.config import settings
from app.core.errors import UnauthorizedError

# Values some clients send when the identity provider has no session yet
_INVALID_KEYS = {"null", "undefined", "none"}


def get_identity_key(request: Request) -> str:
    """
    FastAPI dependency returning the identity-provider user id for this request.

    Sign-in is handled entirely by the identity provider; the front end
    forwards the signed-in user's id in the identity header.
    """
    identity_key = (request.headers.get(settings.IDENTITY_HEADER) or "").strip()
    if not identity_key or identity_key.lower() in _INVALID_KEYS:
        raise UnauthorizedError()
    return identity_key
