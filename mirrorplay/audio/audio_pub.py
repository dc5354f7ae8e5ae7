"""Audio level publisher for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.events import AudioLevelEvent

logger = logging.getLogger(__name__)


class AudioLevelPublisher:
    """Publishes analyser readings using pubsub.pub so front ends can draw a meter."""

    def __init__(self, topic: str = "voice.level"):
        """Initialize audio level publisher.

        Args:
            topic: Pub/sub topic name for level events
        """
        self.topic = topic
        logger.info(f"AudioLevelPublisher initialized with topic: {topic}")

    def publish_level(self, level_event: AudioLevelEvent) -> None:
        """Publish a level reading to the pub/sub topic.

        Args:
            level_event: AudioLevelEvent to publish
        """
        pub.sendMessage(self.topic, event=level_event)
