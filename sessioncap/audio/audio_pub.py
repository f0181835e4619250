"""Pub/sub publishing of captured audio chunks."""

import logging

from pubsub import pub

from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

AUDIO_TOPIC = "audio.frame"


class AudioPublisher:
    """Publishes AudioEvents on a pubsub topic from the capture thread.

    A listener that raises is logged and does not interrupt capture; the
    final event of a stream is always delivered.
    """

    def __init__(self, topic: str = AUDIO_TOPIC):
        self.topic = topic
        self.published = 0
        self.listener_errors = 0

    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        try:
            pub.sendMessage(self.topic, event=audio_event)
        except Exception as e:
            self.listener_errors += 1
            logger.error(f"[{audio_event.session_id}] Audio listener failed on "
                         f"{audio_event.chunk_id}: {e}", exc_info=True)
            return
        self.published += 1
