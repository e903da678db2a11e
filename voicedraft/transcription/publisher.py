"""Transcript publisher module for pub/sub presentation updates."""

import logging
from pubsub import pub

from ..models.session import RecordingSession
from ..models.transcription import LiveBuffer

logger = logging.getLogger(__name__)

STATE_TOPIC = "recording_state"
LIVE_TOPIC = "transcript_live"
HISTORY_TOPIC = "transcript_history"


class TranscriptPublisher:
    """Publishes lifecycle and transcript snapshots using pubsub.pub.

    The lifecycle controller is the only publisher; screens subscribe to the
    topics and never reach into the controller's state directly.
    """

    def __init__(self, prefix: str = ""):
        """Initialize transcript publisher.

        Args:
            prefix: Optional topic prefix, e.g. to isolate controllers in tests
        """
        self.state_topic = f"{prefix}{STATE_TOPIC}"
        self.live_topic = f"{prefix}{LIVE_TOPIC}"
        self.history_topic = f"{prefix}{HISTORY_TOPIC}"
        logger.info(f"TranscriptPublisher initialized with topics: "
                    f"{self.state_topic}, {self.live_topic}, {self.history_topic}")

    def publish_state(self, session: RecordingSession) -> None:
        pub.sendMessage(self.state_topic, session=session)
        logger.debug(f"Published state: {session.state.value}")

    def publish_live(self, buffer: LiveBuffer, draft: str = "") -> None:
        pub.sendMessage(self.live_topic, buffer=buffer, draft=draft)

    def publish_history(self, text: str, block_count: int) -> None:
        pub.sendMessage(self.history_topic, text=text, block_count=block_count)
        logger.debug(f"Published history: {block_count} blocks")
