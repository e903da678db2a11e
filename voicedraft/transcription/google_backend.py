"""Google Speech-to-Text streaming transcript channel."""

import queue
import logging
from threading import Thread, Event, current_thread
from typing import Optional, Dict, Any, Iterator

from .base import AbstractTranscriptChannel
from ..exceptions import ConfigurationError, TransportConnectionError, SendError

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleStreamingChannel(AbstractTranscriptChannel):
    """Relays audio to Google streaming recognition with interim results."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 model: str = "latest_long"):
        """Initialize Google streaming channel.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the PCM16 chunks that will be sent
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            model: Recognition model name
        """
        super().__init__(sample_rate)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ConfigurationError("Google credentials path is required - cannot stream without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.model = model
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self.streaming_config = None

        self.audio_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.response_thread: Optional[Thread] = None
        self.is_open = False
        self._closing = Event()

    def _initialize_client(self) -> None:
        """Create the Speech client from the service account file."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

    def open(self, language: str) -> None:
        if self.is_open:
            logger.warning("Google streaming channel already open")
            return

        self.language = language
        try:
            if self.client is None:
                self._initialize_client()
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Failed to initialize Google Speech client: {e}")
            raise TransportConnectionError(f"Failed to initialize Google Speech client: {e}") from e

        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=self.sample_rate,
                language_code=language,
                use_enhanced=self.use_enhanced,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
                model=self.model,
            ),
            interim_results=True,
        )

        self._closing.clear()
        self.audio_queue = queue.Queue()
        self.response_thread = Thread(target=self._relay_responses, daemon=True)
        self.response_thread.name = "GoogleSpeechRelay"
        self.is_open = True
        self.response_thread.start()
        logger.info(f"Google streaming channel opened (language={language}, model={self.model})")

    def send_chunk(self, data: bytes) -> None:
        if not self.is_open or self._closing.is_set():
            raise SendError("Google streaming channel is not open")
        self.audio_queue.put(data)

    def close(self) -> None:
        if not self.is_open:
            return
        logger.info("Closing Google streaming channel")
        self.is_open = False
        self._closing.set()
        self.audio_queue.put(None)

        if self.response_thread and self.response_thread is not current_thread():
            self.response_thread.join(timeout=5.0)
            if self.response_thread.is_alive():
                logger.warning("Google response relay did not stop cleanly")

    def _request_stream(self) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            data = self.audio_queue.get()
            if data is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=data)

    def _relay_responses(self) -> None:
        """Internal method: read streaming responses in background thread."""
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._request_stream(),
            )
            self._emit_ready(f"streaming to {self.service_name}")
            for response in responses:
                if response.error.code:
                    self._emit_error(f"Google Speech error {response.error.code}: {response.error.message}")
                    return
                for result in response.results:
                    if not result.alternatives:
                        continue
                    transcript = result.alternatives[0].transcript
                    if transcript:
                        logger.debug(f"Google {'final' if result.is_final else 'interim'}: '{transcript}'")
                        self._emit_transcript(transcript, result.is_final)
        except gax_exceptions.GoogleAPICallError as e:
            if self._closing.is_set():
                logger.debug(f"Google stream ended during close: {e}")
                return
            logger.error(f"Google STT streaming call failed: {e}")
            self._emit_error(f"Google Speech stream failed: {e}")
            return
        except Exception as e:
            logger.error(f"Unexpected error in Google response relay: {e}", exc_info=True)
            if not self._closing.is_set():
                self._emit_error(f"Google Speech stream failed: {e}")
            return

        if not self._closing.is_set():
            self._emit_error("Google Speech stream ended unexpectedly")

    def get_stats(self) -> Dict[str, Any]:
        """Get Google-specific statistics."""
        return {
            "service": self.service_name,
            "language": self.language,
            "model": self.model,
            "use_enhanced": self.use_enhanced,
            "enable_punctuation": self.enable_automatic_punctuation,
            "pending_chunks": self.audio_queue.qsize(),
        }
