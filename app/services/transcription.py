"""
Speech-to-text backends.

Anything with ``transcribe(audio_path, file_name) -> str`` can be plugged in;
the upload flow does not care which backend produced the text.
"""
import logging
from pathlib import Path
from typing import Protocol

import requests

from app.core.config import Settings
from app.core.errors import InfrastructureError

logger = logging.getLogger(__name__)

OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"


class Transcriber(Protocol):
    def transcribe(self, audio_path: Path, file_name: str) -> str:
        ...


class MockTranscriber:
    """Deterministic placeholder used when no speech-to-text provider is configured."""

    def transcribe(self, audio_path: Path, file_name: str) -> str:
        return f"Mock transcription for file: {file_name}"


class WhisperTranscriber:
    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        url: str = OPENAI_TRANSCRIPTIONS_URL,
        timeout: int = 60,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def transcribe(self, audio_path: Path, file_name: str) -> str:
        try:
            with open(audio_path, "rb") as fh:
                r = self.session.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data={"model": self.model},
                    files={"file": (file_name, fh)},
                    timeout=self.timeout,
                )
            r.raise_for_status()
            return (r.json().get("text") or "").strip()
        except requests.exceptions.Timeout as e:
            logger.error("[STT] Whisper request timed out for %s: %s", file_name, e)
            raise InfrastructureError("Failed to process transcription") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("[STT] Whisper request failed for %s: %s", file_name, e)
            raise InfrastructureError("Failed to process transcription") from e


def build_transcriber(settings: Settings) -> Transcriber:
    backend = (settings.TRANSCRIPTION_BACKEND or "auto").lower()
    if backend == "mock":
        return MockTranscriber()
    if backend == "whisper" and not settings.OPENAI_API_KEY:
        logger.warning("[STT] TRANSCRIPTION_BACKEND=whisper but OPENAI_API_KEY is not set; using mock")
        return MockTranscriber()
    if settings.OPENAI_API_KEY:
        return WhisperTranscriber(settings.OPENAI_API_KEY)
    return MockTranscriber()
