"""Audio capture and analysis module."""

from .capture import AudioCapture, RecorderError
from .permission import PermissionGate, MicrophoneUnavailableError
from .silence import AudioAnalyser, SilenceDetector
from .audio_pub import AudioLevelPublisher

__all__ = [
    'AudioCapture',
    'RecorderError',
    'PermissionGate',
    'MicrophoneUnavailableError',
    'AudioAnalyser',
    'SilenceDetector',
    'AudioLevelPublisher',
]
