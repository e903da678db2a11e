"""Recording lifecycle controller coordinating capture, transport and reconciliation."""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from ..audio.capture import AudioCapturePipeline
from ..config import SUPPORTED_LANGUAGES
from ..exceptions import (
    VoiceDraftError,
    ConfigurationError,
    EmptyDraftError,
    InvalidTransitionError,
    SendError,
    TransportConnectionError,
)
from ..models.audio import AudioChunk
from ..models.events import ConnectionStatus, TranscriptEvent
from ..models.session import RecordingSession, RecordingState
from ..models.transcription import LiveBuffer, TranscriptHistory
from ..storage.transcript_exporter import TranscriptExporter
from ..transcription.base import AbstractTranscriptChannel
from ..transcription.publisher import TranscriptPublisher
from ..transcription.reconciler import TranscriptReconciler
from .elapsed_timer import ElapsedTimer

logger = logging.getLogger(__name__)


@dataclass
class _ChunkRoute:
    """Where chunks from one capture pipeline go."""
    capture: AudioCapturePipeline
    channel: AbstractTranscriptChannel
    forwarding: bool = False
    pending: List[AudioChunk] = field(default_factory=list)


class RecordingLifecycleController:
    """State machine owning the capture pipeline, channel and transcript state.

    States run idle -> connecting -> recording -> editing -> idle, with error
    reachable from connecting and recording. Every mutating handler (user
    actions, channel events, capture failures, timer ticks) runs under one
    re-entrant lock. Blocking releases happen after the lock is dropped and
    after the session has been flagged inactive, so a channel thread waiting
    on the lock can never hold up stop().
    """

    def __init__(self,
                 channel_factory: Callable[[], AbstractTranscriptChannel],
                 capture_factory: Callable[[], AudioCapturePipeline],
                 language: str = "en-US",
                 exporter: Optional[TranscriptExporter] = None,
                 publisher: Optional[TranscriptPublisher] = None,
                 timer_factory: Callable[[Callable[[], None]], ElapsedTimer] = ElapsedTimer,
                 supported_languages: Sequence[str] = SUPPORTED_LANGUAGES):
        """Initialize the controller.

        Args:
            channel_factory: Creates a fresh transcript channel per session
            capture_factory: Creates a fresh capture pipeline per session
            language: Initial recognition language
            exporter: Writes the transcript history to disk
            publisher: Receives state, live buffer and history snapshots
            timer_factory: Builds the elapsed-time ticker from a tick callback
            supported_languages: Enumerated set of selectable language tags
        """
        self._channel_factory = channel_factory
        self._capture_factory = capture_factory
        self._exporter = exporter
        self._publisher = publisher
        self._timer_factory = timer_factory
        self._supported_languages = tuple(supported_languages)
        if language not in self._supported_languages:
            raise ConfigurationError(f"Unsupported language: {language}")

        self._lock = threading.RLock()
        self._chunk_lock = threading.Lock()

        self._reconciler = TranscriptReconciler()
        self._history = TranscriptHistory()
        self._session = RecordingSession(language=language)
        self._draft = ""
        self._last_error: Optional[VoiceDraftError] = None

        # Session resources, owned exclusively here
        self._channel: Optional[AbstractTranscriptChannel] = None
        self._capture: Optional[AudioCapturePipeline] = None
        self._timer: Optional[ElapsedTimer] = None
        self._route: Optional[_ChunkRoute] = None
        self._transport_ready = False
        self._capture_open = False

        self.chunks_sent = 0
        self.send_failures = 0

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def start(self) -> RecordingState:
        """Open the channel and the microphone for a new session."""
        resources = None
        with self._lock:
            state = self._session.state
            if state.is_active:
                logger.warning(f"Start ignored, session already {state.value}")
                return state
            if state is RecordingState.EDITING:
                raise InvalidTransitionError("start", state.value)

            self._begin_session()
            try:
                self._open_channel()
                if self._session.state is RecordingState.CONNECTING:
                    self._open_capture()
            except Exception as e:
                resources = self._enter_error(self._as_voicedraft_error(e))
            else:
                self._maybe_begin_recording()
            state = self._session.state

        if resources:
            self._release(*resources)
        return state

    def stop(self) -> RecordingState:
        """Stop recording (freezing the draft) or cancel a pending connection.

        Safe to call repeatedly; calls outside connecting/recording do nothing.
        """
        with self._lock:
            state = self._session.state
            if state is RecordingState.RECORDING:
                # Flag inactive first so late events are dropped from here on
                self._reconciler.deactivate()
                self._draft = self._reconciler.snapshot().text
                self._session.state = RecordingState.EDITING
                logger.info(f"Recording stopped after {self._session.elapsed_seconds}s, "
                            f"draft has {len(self._draft)} characters")
            elif state is RecordingState.CONNECTING:
                self._reconciler.deactivate()
                self._session.state = RecordingState.IDLE
                logger.info("Connection attempt cancelled")
            else:
                logger.debug(f"Stop ignored in state {state.value}")
                return state

            resources = self._detach_resources()
            self._publish_state()
            self._publish_live()
            state = self._session.state

        self._release(*resources)
        return state

    def finalize(self) -> RecordingState:
        """Commit the draft to the history as one block.

        Raises:
            EmptyDraftError: If the draft holds only whitespace; state is unchanged
            InvalidTransitionError: If there is no draft to finalize
        """
        with self._lock:
            state = self._session.state
            if state is not RecordingState.EDITING:
                raise InvalidTransitionError("finalize", state.value)

            block = self._draft.strip()
            if not block:
                logger.info("Finalize rejected: no speech detected")
                raise EmptyDraftError()

            self._history.append(block)
            self._draft = ""
            self._reconciler.reset()
            self._session = RecordingSession(language=self._session.language)
            logger.info(f"Finalized block #{len(self._history)} ({len(block)} characters)")

            self._publish_history()
            self._publish_state()
            self._publish_live()
            return self._session.state

    def edit_draft(self, text: str) -> None:
        """Replace the draft with the user's edited text."""
        with self._lock:
            state = self._session.state
            if state is not RecordingState.EDITING:
                raise InvalidTransitionError("edit the draft", state.value)
            self._draft = text
            self._publish_live()

    def clear_all(self) -> RecordingState:
        """Wipe history, draft and live buffer. Not allowed while recording.

        A pending connection is abandoned first, as stop() would.
        """
        resources = None
        with self._lock:
            state = self._session.state
            if state is RecordingState.RECORDING:
                raise InvalidTransitionError("clear all", state.value)
            if state is RecordingState.CONNECTING:
                self._reconciler.deactivate()
                resources = self._detach_resources()
                logger.info("Connection attempt abandoned by clear all")

            self._history.clear()
            self._draft = ""
            self._reconciler.reset()
            self._last_error = None
            self._session = RecordingSession(language=self._session.language)
            logger.info("Transcript history cleared")

            self._publish_history()
            self._publish_state()
            self._publish_live()
            state = self._session.state

        if resources:
            self._release(*resources)
        return state

    def acknowledge_error(self) -> RecordingState:
        """Return from the error state to idle."""
        with self._lock:
            if self._session.state is RecordingState.ERROR:
                self._session = RecordingSession(language=self._session.language)
                self._publish_state()
            return self._session.state

    def set_language(self, language: str) -> None:
        with self._lock:
            if language not in self._supported_languages:
                raise ConfigurationError(
                    f"Unsupported language '{language}', expected one of: {', '.join(self._supported_languages)}")
            if self._session.state.is_active:
                raise InvalidTransitionError("change language", self._session.state.value)
            self._session.language = language
            logger.info(f"Recognition language set to {language}")
            self._publish_state()

    def export_history(self, export_dir: Optional[str] = None) -> str:
        """Write the history to a transcript file and return its path.

        Raises:
            SaveError: If writing fails; the history stays in memory
        """
        with self._lock:
            text = self._history.text
        exporter = TranscriptExporter(export_dir) if export_dir else self._exporter
        if exporter is None:
            exporter = TranscriptExporter()
        return exporter.export(text)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecordingState:
        return self._session.state

    @property
    def session(self) -> RecordingSession:
        with self._lock:
            return replace(self._session)

    @property
    def live_buffer(self) -> LiveBuffer:
        with self._lock:
            return self._reconciler.snapshot()

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def history_text(self) -> str:
        with self._lock:
            return self._history.text

    @property
    def history_blocks(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._history.blocks)

    @property
    def last_error(self) -> Optional[VoiceDraftError]:
        return self._last_error

    # ------------------------------------------------------------------
    # Collaborator callbacks
    # ------------------------------------------------------------------

    def _on_channel_event(self, channel: AbstractTranscriptChannel, event) -> None:
        resources = None
        with self._lock:
            if channel is not self._channel:
                logger.debug(f"Dropping event from inactive channel: {event}")
                return

            if isinstance(event, ConnectionStatus):
                if event.is_error:
                    if self._session.state.is_active:
                        resources = self._enter_error(TransportConnectionError(event.message))
                else:
                    logger.info(f"Transport ready: {event.message}")
                    self._transport_ready = True
                    self._maybe_begin_recording()
            elif isinstance(event, TranscriptEvent):
                if self._session.state.is_active:
                    self._reconciler.on_event(event)
                    self._publish_live()
            else:
                logger.debug(f"Ignoring unknown channel event: {event!r}")

        if resources:
            self._release(*resources)

    def _on_capture_error(self, capture: AudioCapturePipeline, error: VoiceDraftError) -> None:
        resources = None
        with self._lock:
            if capture is not self._capture or not self._session.state.is_active:
                return
            resources = self._enter_error(error)
        self._release(*resources)

    def _on_chunk(self, capture: AudioCapturePipeline, chunk: AudioChunk) -> None:
        with self._chunk_lock:
            route = self._route
            if route is None or route.capture is not capture:
                logger.debug(f"Dropping chunk {chunk.sequence_number} from inactive capture")
                return
            if not route.forwarding:
                route.pending.append(chunk)
                return
            self._send_chunk(route.channel, chunk)

    def _on_tick(self) -> None:
        with self._lock:
            if self._session.state is RecordingState.RECORDING:
                self._session.elapsed_seconds += 1
                self._publish_state()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin_session(self) -> None:
        self._reconciler.reset()
        self._draft = ""
        self._last_error = None
        self._transport_ready = False
        self._capture_open = False
        self._session = RecordingSession(
            state=RecordingState.CONNECTING,
            started_at=datetime.now(),
            language=self._session.language,
        )
        logger.info(f"Starting session (language={self._session.language})")
        self._publish_state()
        self._publish_live()

    def _open_channel(self) -> None:
        channel = self._channel_factory()
        self._channel = channel
        channel.subscribe(lambda event, source=channel: self._on_channel_event(source, event))
        channel.open(self._session.language)

    def _open_capture(self) -> None:
        capture = self._capture_factory()
        self._capture = capture
        with self._chunk_lock:
            self._route = _ChunkRoute(capture=capture, channel=self._channel)
        capture.on_chunk(
            lambda chunk, source=capture: self._on_chunk(source, chunk),
            on_error=lambda error, source=capture: self._on_capture_error(source, error),
        )
        capture.open()
        self._capture_open = True

    def _maybe_begin_recording(self) -> None:
        if self._session.state is not RecordingState.CONNECTING:
            return
        if not (self._transport_ready and self._capture_open):
            return

        with self._chunk_lock:
            route = self._route
            if route is not None:
                pending, route.pending = route.pending, []
                route.forwarding = True
                for chunk in pending:
                    self._send_chunk(route.channel, chunk)

        self._session.state = RecordingState.RECORDING
        self._timer = self._timer_factory(self._on_tick)
        self._timer.start()
        logger.info("Recording started")
        self._publish_state()

    def _send_chunk(self, channel: AbstractTranscriptChannel, chunk: AudioChunk) -> None:
        try:
            channel.send_chunk(chunk.data)
            self.chunks_sent += 1
        except SendError as e:
            self.send_failures += 1
            logger.warning(f"Chunk {chunk.sequence_number} not sent: {e.detail}")

    def _enter_error(self, error: VoiceDraftError):
        self._reconciler.deactivate()
        self._last_error = error
        self._session.state = RecordingState.ERROR
        self._session.error = error.detail
        logger.error(f"Recording session failed ({error.code}): {error.detail}")
        resources = self._detach_resources()
        self._publish_state()
        return resources

    def _detach_resources(self):
        capture, channel, timer = self._capture, self._channel, self._timer
        self._capture = None
        self._channel = None
        self._timer = None
        self._transport_ready = False
        self._capture_open = False
        return capture, channel, timer

    def _release(self, capture, channel, timer) -> None:
        """Close session resources; must be called without holding the lock."""
        if timer is not None:
            timer.stop()
        if capture is not None:
            try:
                capture.close()
            except Exception as e:
                logger.error(f"Error closing capture: {e}", exc_info=True)
            with self._chunk_lock:
                if self._route is not None and self._route.capture is capture:
                    self._route = None
        if channel is not None:
            try:
                channel.close()
            except Exception as e:
                logger.error(f"Error closing channel: {e}", exc_info=True)

    @staticmethod
    def _as_voicedraft_error(error: Exception) -> VoiceDraftError:
        if isinstance(error, VoiceDraftError):
            return error
        logger.error(f"Unexpected error while starting session: {error}", exc_info=True)
        return VoiceDraftError(str(error))

    def _publish_state(self) -> None:
        if self._publisher:
            self._publisher.publish_state(replace(self._session))

    def _publish_live(self) -> None:
        if self._publisher:
            self._publisher.publish_live(self._reconciler.snapshot(), self._draft)

    def _publish_history(self) -> None:
        if self._publisher:
            self._publisher.publish_history(self._history.text, len(self._history))
