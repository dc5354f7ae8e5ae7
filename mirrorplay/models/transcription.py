"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TranscriptionResult:
    """Result of a transcription request."""
    text: str
    processing_time: float
    timestamp: datetime
    service: str

    @property
    def has_speech(self) -> bool:
        return bool(self.text and self.text.strip())
