"""Session publisher for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.events import PhaseChangeEvent

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes phase changes and submitted answers using pubsub.pub."""

    def __init__(self, phase_topic: str = "voice.phase", submitted_topic: str = "voice.submitted"):
        """Initialize session publisher.

        Args:
            phase_topic: Pub/sub topic name for phase changes
            submitted_topic: Pub/sub topic name for submitted text
        """
        self.phase_topic = phase_topic
        self.submitted_topic = submitted_topic

    def publish_phase_change(self, event: PhaseChangeEvent) -> None:
        pub.sendMessage(self.phase_topic, event=event)
        logger.debug(f"Published phase change: {event.previous.value} -> {event.current.value} ({event.trigger})")

    def publish_submitted(self, text: str) -> None:
        pub.sendMessage(self.submitted_topic, text=text)
        logger.debug(f"Published submitted text ({len(text)} chars)")
