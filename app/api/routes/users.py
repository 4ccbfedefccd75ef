from typing import Optional

from fastapi import APIRouter, Body, Depends, Response, status

from app.core.errors import BadRequestError, NotFoundError
from app.core.plan_limits import remaining_free_uploads
from app.dependencies.auth import get_identity_key
from app.dependencies.services import get_user_store
from app.schemas.users import (
    UploadEntryResponse,
    UserCreateRequest,
    UserCreateResponse,
    UserResponse,
    UserStatusResponse,
)
from app.services.user_store import UserStore

router = APIRouter()


@router.post("/create", response_model=UserCreateResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    response: Response,
    payload: Optional[UserCreateRequest] = Body(None),
    store: UserStore = Depends(get_user_store),
):
    """
    Register the signed-in user. Called by the front end right after sign-in,
    so it must be safe to call repeatedly: an existing user returns 200.
    """
    identity_key = (payload.identity_key or "").strip() if payload else ""
    if not identity_key:
        raise BadRequestError("identityKey is required", reason="MissingIdentityKey")

    user, created = store.create_if_absent(identity_key)
    if not created:
        response.status_code = status.HTTP_200_OK

    return UserCreateResponse(user=UserResponse.model_validate(user), created=created)


@router.get("/me", response_model=UserStatusResponse)
def get_current_user(
    identity_key: str = Depends(get_identity_key),
    store: UserStore = Depends(get_user_store),
):
    """Entitlement status and upload history of the current user"""
    user = store.find_by_identity(identity_key)
    if not user:
        raise NotFoundError()

    uploads = [UploadEntryResponse.model_validate(u) for u in user.uploads]
    return UserStatusResponse(
        identity_key=user.identity_key,
        has_paid=user.has_paid,
        upload_count=len(uploads),
        remaining_free_uploads=remaining_free_uploads(user.has_paid, len(uploads)),
        uploads=uploads,
    )
