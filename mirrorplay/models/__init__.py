"""Data models for the Mirror Play voice input."""

from .audio import AudioStats, AudioBlob
from .events import AudioEvent, PhaseChangeEvent, AudioLevelEvent
from .session import RecordingPhase, MicPermission, RecordingSession
from .transcription import TranscriptionResult
from .ui import Notification, VoiceInputOptions, STATUS_TEXT

__all__ = [
    "AudioStats",
    "AudioBlob",
    "AudioEvent",
    "PhaseChangeEvent",
    "AudioLevelEvent",
    "RecordingPhase",
    "MicPermission",
    "RecordingSession",
    "TranscriptionResult",
    "Notification",
    "VoiceInputOptions",
    "STATUS_TEXT",
]
