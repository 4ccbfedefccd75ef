"""
Upload flow for /api/voice/transcribe.

resolve user -> entitlement gate -> stage file -> transcribe -> append entry.
The staged copy of the audio is always removed, whether transcription
succeeds or not.
"""
import logging
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import UploadFile

from app.core.config import Settings
from app.core.errors import BadRequestError, ForbiddenError, NotFoundError
from app.core.plan_limits import check_upload_allowed, get_plan_limit
from app.models.user import User
from app.services.transcription import Transcriber
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Staging suffix only; the stored file name keeps whatever the client sent
_SAFE_SUFFIX = re.compile(r"\.[A-Za-z0-9]{1,15}")


def get_uploads_dir(settings: Settings) -> Path:
    """Return the uploads staging directory, creating it if needed."""
    # Prefer env so deployment can point staging at a scratch volume
    if settings.UPLOADS_DIR:
        d = Path(settings.UPLOADS_DIR)
    else:
        d = Path(__file__).resolve().parent.parent.parent / "uploads"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _too_large(max_bytes: int) -> BadRequestError:
    mb = max_bytes / (1024 * 1024)
    return BadRequestError(f"File size exceeds the maximum limit of {mb:g}MB.", reason="FileTooLarge")


@contextmanager
def staged_upload(file: UploadFile, uploads_dir: Path, max_bytes: int) -> Iterator[Path]:
    """
    Copy the request file to a temp path under ``uploads_dir``.

    Enforces ``max_bytes`` while streaming (the declared size can be absent
    or wrong) and deletes the temp file on exit.
    """
    suffix = Path(file.filename or "").suffix
    if not _SAFE_SUFFIX.fullmatch(suffix):
        suffix = ""
    fd, name = tempfile.mkstemp(prefix="upload_", suffix=suffix, dir=str(uploads_dir))
    path = Path(name)
    try:
        written = 0
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise _too_large(max_bytes)
                out.write(chunk)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class UploadHandler:
    def __init__(self, store: UserStore, transcriber: Transcriber, settings: Settings):
        self.store = store
        self.transcriber = transcriber
        self.settings = settings

    def resolve_user(self, identity_key: str) -> User:
        if self.settings.AUTO_CREATE_USERS:
            user, _ = self.store.create_if_absent(identity_key)
            return user
        user = self.store.find_by_identity(identity_key)
        if not user:
            raise NotFoundError()
        return user

    def handle(self, identity_key: str, file: Optional[UploadFile]) -> str:
        """Run the full upload flow and return the transcription text."""
        user = self.resolve_user(identity_key)
        limit = get_plan_limit("free", "max_uploads")

        decision = check_upload_allowed(user.has_paid, self.store.count_uploads(identity_key), limit)
        if not decision.allowed:
            logger.info("[Upload] Denied upload for %s: %s", identity_key, decision.reason)
            raise ForbiddenError(reason=decision.reason)

        if file is None or not file.filename:
            raise BadRequestError("No file uploaded", reason="NoFile")

        max_bytes = self.settings.MAX_UPLOAD_BYTES
        if file.size is not None and file.size > max_bytes:
            raise _too_large(max_bytes)

        file_name = file.filename
        with staged_upload(file, get_uploads_dir(self.settings), max_bytes) as audio_path:
            transcription = self.transcriber.transcribe(audio_path, file_name)

        self.store.append_upload(identity_key, file_name, transcription, limit=limit)
        logger.info("[Upload] Stored transcription of %s for %s", file_name, identity_key)
        return transcription
