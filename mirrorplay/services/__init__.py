"""Services layer for the Mirror Play voice input."""

from .voice_input import VoiceInputController, VoiceEvent
from .notifier import Notifier
from .publisher import SessionPublisher

__all__ = [
    "VoiceInputController",
    "VoiceEvent",
    "Notifier",
    "SessionPublisher",
]
