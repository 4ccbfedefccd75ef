"""
Voice upload + transcription route.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from app.dependencies.auth import get_identity_key
from app.dependencies.services import get_upload_handler
from app.schemas.voice import TranscriptionResponse
from app.services.upload_handler import UploadHandler

router = APIRouter()


@router.post("/transcribe", response_model=TranscriptionResponse)
def transcribe(
    file: Optional[UploadFile] = File(None),
    identity_key: str = Depends(get_identity_key),
    handler: UploadHandler = Depends(get_upload_handler),
):
    """
    Upload one audio file and get its transcription back.
    Free users get two uploads; paid users are unlimited.
    """
    transcription = handler.handle(identity_key, file)
    return {"transcription": transcription}
