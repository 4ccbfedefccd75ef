from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserCreateRequest(BaseModel):
    # Older front ends send clerkUserId
    identity_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("identityKey", "clerkUserId"),
    )


class UploadEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    file_name: str = Field(alias="fileName")
    transcription: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    identity_key: str = Field(alias="identityKey")
    has_paid: bool = Field(alias="hasPaid")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class UserCreateResponse(BaseModel):
    user: UserResponse
    created: bool


class UserStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    identity_key: str = Field(alias="identityKey")
    has_paid: bool = Field(alias="hasPaid")
    upload_count: int = Field(alias="uploadCount")
    remaining_free_uploads: Optional[int] = Field(default=None, alias="remainingFreeUploads")
    uploads: List[UploadEntryResponse] = []
