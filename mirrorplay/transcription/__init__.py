"""Transcription module for Mirror Play."""

from .base import AbstractTranscriptionBackend, TranscriptionError
from .http_backend import TranscribeApiBackend
from ..models.transcription import TranscriptionResult

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionError",
    "TranscribeApiBackend",
    "TranscriptionResult",
]
