"""Abstract base class for transcript channels."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union
import logging

from ..models.events import TranscriptEvent, ConnectionStatus, CONNECTION_OK, CONNECTION_ERROR

logger = logging.getLogger(__name__)

ChannelEvent = Union[TranscriptEvent, ConnectionStatus]
ChannelListener = Callable[[ChannelEvent], None]


class AbstractTranscriptChannel(ABC):
    """Bidirectional relay to a remote recognition service.

    Outbound: encoded audio chunks. Inbound: transcript fragments and
    connection status, delivered to a single listener from whatever thread
    the implementation reads on.
    """

    def __init__(self, sample_rate: int = 16000):
        self.sample_rate = sample_rate
        self.language: Optional[str] = None
        self._listener: Optional[ChannelListener] = None

    def subscribe(self, listener: ChannelListener) -> None:
        """Register the single listener for inbound events."""
        if self._listener is not None and self._listener is not listener:
            raise RuntimeError(f"{type(self).__name__} already has a listener")
        self._listener = listener

    @abstractmethod
    def open(self, language: str) -> None:
        """Open the channel, announcing the recognition language.

        Readiness is reported asynchronously with a ConnectionStatus "ok".

        Raises:
            TransportConnectionError: If the channel cannot be opened
        """
        pass

    @abstractmethod
    def send_chunk(self, data: bytes) -> None:
        """Queue one encoded audio chunk for transmission.

        Raises:
            SendError: If the chunk cannot be transmitted
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the channel and release its resources. Idempotent."""
        pass

    def _emit(self, event: ChannelEvent) -> None:
        if self._listener is None:
            logger.debug(f"No listener for channel event: {event}")
            return
        try:
            self._listener(event)
        except Exception as e:
            logger.error(f"Channel listener raised: {e}", exc_info=True)

    def _emit_transcript(self, text: str, is_final: bool) -> None:
        self._emit(TranscriptEvent(text=text, is_final=is_final))

    def _emit_ready(self, message: str = "connected") -> None:
        self._emit(ConnectionStatus(status=CONNECTION_OK, message=message))

    def _emit_error(self, message: str) -> None:
        self._emit(ConnectionStatus(status=CONNECTION_ERROR, message=message))
