"""User-facing notifications for the voice input."""

import logging
from typing import List
from pubsub import pub

from ..models.ui import Notification

logger = logging.getLogger(__name__)


class Notifier:
    """Publishes toast-style notifications and keeps a history of them."""

    def __init__(self, topic: str = "voice.notification"):
        self.topic = topic
        self.history: List[Notification] = []

    def notify(self, title: str, description: str, variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self.history.append(notification)
        if notification.is_error:
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")
        pub.sendMessage(self.topic, notification=notification)
        return notification

    def microphone_required(self) -> Notification:
        return self.notify(
            "Microphone access required",
            "Please allow microphone access to use voice input.",
            variant="destructive",
        )

    def no_speech(self) -> Notification:
        return self.notify(
            "No speech detected",
            "We couldn't hear anything. Please try again.",
        )

    def transcription_failed(self) -> Notification:
        return self.notify(
            "Transcription failed",
            "Could not convert your speech to text. Please try again.",
            variant="destructive",
        )

    def recording_failed(self) -> Notification:
        return self.notify(
            "Recording failed",
            "Your microphone could not be started. Try again or type your answer.",
            variant="destructive",
        )
