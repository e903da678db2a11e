"""Microphone capture pipeline that emits fixed-duration PCM16 chunks."""

import errno
import queue
import time
import logging
from threading import Thread, Event, Lock, current_thread
from typing import Optional, Callable
from datetime import datetime

import pyaudio

from ..exceptions import VoiceDraftError, PermissionDeniedError, DeviceUnavailableError
from ..models.audio import AudioStats, AudioChunk
from .chunker import ChunkAssembler
from .encoding import float32_from_bytes


logger = logging.getLogger(__name__)

PERMISSION_ERROR_CODES = (pyaudio.paUnanticipatedHostError,)
PERMISSION_ERRNOS = (errno.EACCES, errno.EPERM)


def classify_open_error(error: OSError) -> VoiceDraftError:
    """Map a PortAudio/OS error raised while opening the device to a capture error."""
    code = error.args[1] if len(error.args) > 1 else None
    message = str(error.args[0]) if error.args else str(error)
    lowered = message.lower()
    if (code in PERMISSION_ERROR_CODES or error.errno in PERMISSION_ERRNOS
            or "permission" in lowered or "denied" in lowered):
        return PermissionDeniedError(f"Microphone access denied: {message}")
    return DeviceUnavailableError(f"Could not open input device: {message}")


class AudioCapturePipeline:
    """Captures microphone audio and delivers encoded chunks in order.

    A reader thread owns the device stream and turns reads into chunks; a
    dispatcher thread hands the chunks to the subscriber. The two are joined
    by an unbounded FIFO queue so a slow subscriber never stalls the device
    and no chunk is dropped or reordered.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_duration_ms: int = 100,
        channels: int = 1,
        frame_duration_ms: int = 20,
        device_index: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        drain_timeout: float = 5.0,
    ):
        """Initialize capture pipeline with specified parameters.

        Args:
            sample_rate: Capture sample rate (16kHz matches the transports)
            chunk_duration_ms: Nominal duration of each emitted chunk
            channels: Device channels; anything above 1 is downmixed to mono
            frame_duration_ms: Size of a single device read
            device_index: PyAudio input device, None for the default device
            clock: Monotonic clock used for chunk boundaries
            drain_timeout: Seconds close() waits for queued chunks to reach the subscriber
        """
        self.sample_rate = sample_rate
        self.chunk_duration_ms = chunk_duration_ms
        self.channels = channels
        self.device_index = device_index
        self.drain_timeout = drain_timeout
        self.frames_per_buffer = max(1, int(sample_rate * frame_duration_ms / 1000))
        self.assembler = ChunkAssembler(sample_rate, chunk_duration_ms, clock)

        # Thread management
        self.reader_thread: Optional[Thread] = None
        self.dispatcher_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.chunk_queue: "queue.Queue" = queue.Queue()
        self.is_recording = False
        self._closed = False
        self._close_lock = Lock()
        self._device_lock = Lock()

        # Single subscriber
        self._chunk_callback: Optional[Callable[[AudioChunk], None]] = None
        self._error_callback: Optional[Callable[[VoiceDraftError], None]] = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        # PyAudio resources
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def on_chunk(self,
                 callback: Callable[[AudioChunk], None],
                 on_error: Optional[Callable[[VoiceDraftError], None]] = None) -> None:
        """Register the single subscriber for chunks and capture failures."""
        if self._chunk_callback is not None and self._chunk_callback is not callback:
            raise RuntimeError("AudioCapturePipeline already has a subscriber")
        self._chunk_callback = callback
        self._error_callback = on_error

    def open(self) -> None:
        """Acquire the input device and start capturing.

        Raises:
            PermissionDeniedError: If the device refuses access
            DeviceUnavailableError: If no usable input device exists
        """
        if self.is_recording:
            logger.warning("Capture already in progress")
            return
        if self._closed:
            raise RuntimeError("AudioCapturePipeline cannot be reopened after close()")

        logger.info("Opening audio capture")
        self.__open_audio_stream()

        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0

        self.dispatcher_thread = Thread(target=self._dispatch_chunks, daemon=True)
        self.dispatcher_thread.name = "AudioDispatchThread"
        self.dispatcher_thread.start()

        self.reader_thread = Thread(target=self._read_continuously, daemon=True)
        self.reader_thread.name = "AudioCaptureThread"
        self.reader_thread.start()
        self.is_recording = True

    def close(self) -> None:
        """Flush buffered samples as a final chunk and release the device."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        if not self.is_recording:
            self._release_device()
            return

        logger.info("Closing audio capture")
        self.stop_event.set()

        if self.reader_thread and self.reader_thread.is_alive():
            self.reader_thread.join(timeout=2.0)
            if self.reader_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        # Sentinel goes in after the flushed chunk so everything drains first
        self.chunk_queue.put(None)
        if self.dispatcher_thread and self.dispatcher_thread is not current_thread():
            self.dispatcher_thread.join(timeout=self.drain_timeout)
            if self.dispatcher_thread.is_alive():
                stats = self.get_recording_stats()
                logger.warning(f"Chunk dispatcher did not drain cleanly, "
                               f"{max(stats.pending_chunks - 1, 0)} chunks undelivered of {stats.total_chunks}")

        self.is_recording = False
        logger.info(f"Capture closed. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self) -> None:
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            if self.device_index is None:
                self.pyaudio_instance.get_default_input_device_info()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=None
            )
        except OSError as e:
            self._release_device()
            raise classify_open_error(e) from e
        except BaseException:
            self._release_device()
            raise
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.frames_per_buffer} samples/read, {self.chunk_duration_ms}ms chunks")

    def _release_device(self) -> None:
        with self._device_lock:
            stream, self.stream = self.stream, None
            instance, self.pyaudio_instance = self.pyaudio_instance, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
        if instance is not None:
            instance.terminate()
            logger.debug("Audio device released")

    def _enqueue(self, chunk: AudioChunk) -> None:
        self.total_chunks += 1
        self.chunk_queue.put(chunk)

    def _read_continuously(self) -> None:
        """Internal method: device read loop in background thread."""
        failure: Optional[VoiceDraftError] = None
        try:
            while not self.stop_event.is_set():
                raw = self.stream.read(self.frames_per_buffer, exception_on_overflow=False)
                chunk = self.assembler.add_frame(float32_from_bytes(raw, self.channels))
                if chunk is not None:
                    self._enqueue(chunk)
        except Exception as e:
            logger.error(f"Audio input failed: {e}", exc_info=True)
            failure = DeviceUnavailableError(f"Audio input failed: {e}")
        finally:
            chunk = self.assembler.flush()
            if chunk is not None:
                self._enqueue(chunk)
            self._release_device()
            if failure is not None:
                self.chunk_queue.put(failure)

    def _dispatch_chunks(self) -> None:
        """Internal method: deliver queued chunks to the subscriber in order."""
        while True:
            item = self.chunk_queue.get()
            if item is None:
                break
            try:
                if isinstance(item, VoiceDraftError):
                    if self._error_callback:
                        self._error_callback(item)
                elif self._chunk_callback:
                    self._chunk_callback(item)
            except Exception as e:
                logger.error(f"Chunk subscriber raised: {e}", exc_info=True)

    def get_recording_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_duration_ms=self.chunk_duration_ms,
            total_chunks=self.total_chunks,
            pending_chunks=self.chunk_queue.qsize(),
        )

    def __enter__(self) -> "AudioCapturePipeline":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self):
        """Ensure the device is released on deletion."""
        if self.is_recording:
            self.close()
