"""Client for the application's /api/transcribe endpoint."""

import asyncio
import time
import logging
from datetime import datetime
from typing import Optional

import aiohttp

from .base import AbstractTranscriptionBackend, TranscriptionError
from ..models.audio import AudioBlob
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class TranscribeApiBackend(AbstractTranscriptionBackend):
    """Posts base64 audio to the transcription endpoint and reads back ``{"text": ...}``."""

    service_name = "Mirror Play Transcribe API"

    def __init__(self, url: str, timeout_seconds: Optional[float] = 30.0, auth_token: Optional[str] = None):
        """Initialize the backend.

        Args:
            url: Full URL of the transcription endpoint
            timeout_seconds: Total request timeout; None waits indefinitely
            auth_token: Bearer token sent with every request, if set
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.auth_token = auth_token

    @classmethod
    def from_config(cls, config) -> "TranscribeApiBackend":
        return cls(
            url=config.get_transcription_url(),
            timeout_seconds=config.get('transcription.timeout_seconds', 30.0),
            auth_token=config.get('transcription.auth_token'),
        )

    def initialize(self) -> bool:
        if not self.url or not self.url.startswith(("http://", "https://")):
            logger.error(f"Invalid transcription URL: {self.url!r}")
            return False
        logger.info(f"Transcription endpoint: {self.url} (timeout={self.timeout_seconds}s)")
        return True

    async def transcribe(self, blob: AudioBlob) -> TranscriptionResult:
        start_time = time.time()
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        data = {"audioBase64": blob.to_base64()}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        logger.debug(f"Submitting {blob.size} bytes of {blob.mime_type} for transcription")
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, headers=headers, json=data) as response:
                    if response.status < 200 or response.status >= 300:
                        error_text = await response.text()
                        raise TranscriptionError(f"Transcription API error: {response.status} - {error_text}")
                    result = await response.json()
        except asyncio.TimeoutError as e:
            raise TranscriptionError(f"Transcription request timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e
        except ValueError as e:
            raise TranscriptionError(f"Invalid transcription response: {e}") from e

        text = result.get("text") if isinstance(result, dict) else None
        processing_time = time.time() - start_time
        logger.info(f"Transcription finished in {processing_time:.2f}s ({len(text or '')} chars)")

        return TranscriptionResult(
            text=text if isinstance(text, str) else "",
            processing_time=processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
        )
