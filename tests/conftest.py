"""Pytest configuration and fixtures for VoiceDraft tests."""

import itertools
import pytest
import tempfile
import time
import logging
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np

from voicedraft.exceptions import SendError
from voicedraft.models.audio import AudioChunk
from voicedraft.services.recording_controller import RecordingLifecycleController
from voicedraft.transcription.base import AbstractTranscriptChannel


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FRAME_SAMPLES = 320  # 20ms at 16kHz


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without threads or hardware")
    config.addinivalue_line("markers", "integration: tests wiring real components together")
    config.addinivalue_line("markers", "slow: tests that take more than a second")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sine_frame():
    """One 20ms float32 frame of a 440Hz sine wave."""
    t = np.arange(FRAME_SAMPLES) / 16000
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def mock_pyaudio(sine_frame):
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Reads block briefly like a real device would
        def read(frames, exception_on_overflow=True):
            time.sleep(0.01)
            return sine_frame.tobytes()

        mock_stream.read.side_effect = read
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"index": 0, "name": "Mock Mic"}

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def frame_clock():
    """Clock advancing just over 20ms per call, one call per captured frame."""
    ticks = itertools.count()
    return lambda: next(ticks) * 0.0201


class FakeChannel(AbstractTranscriptChannel):
    """In-memory transcript channel driven by the test."""

    def __init__(self, open_error=None, send_error=False, auto_ready=False, script=()):
        super().__init__()
        self.open_error = open_error
        self.send_error = send_error
        self.auto_ready = auto_ready
        self.script = list(script)
        self.sent: List[bytes] = []
        self.open_calls = 0
        self.close_calls = 0
        self.is_open = False

    def open(self, language: str) -> None:
        self.open_calls += 1
        self.language = language
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True
        if self.auto_ready:
            self.emit_ready()
            for text, is_final in self.script:
                self.emit_transcript(text, is_final)

    def send_chunk(self, data: bytes) -> None:
        if self.send_error:
            raise SendError("channel refused chunk")
        self.sent.append(data)

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False

    def emit_ready(self) -> None:
        self._emit_ready("fake ready")

    def emit_transcript(self, text: str, is_final: bool) -> None:
        self._emit_transcript(text, is_final)

    def emit_error(self, message: str) -> None:
        self._emit_error(message)


class FakeCapture:
    """Stand-in for AudioCapturePipeline with manual chunk delivery."""

    def __init__(self, open_error=None):
        self.open_error = open_error
        self.chunk_callback = None
        self.error_callback = None
        self.opened = False
        self.close_calls = 0
        self.sequence_number = 0

    def on_chunk(self, callback, on_error=None) -> None:
        self.chunk_callback = callback
        self.error_callback = on_error

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def close(self) -> None:
        self.close_calls += 1

    def push(self, data: bytes = b"\x01\x00" * 1600) -> AudioChunk:
        chunk = AudioChunk(sequence_number=self.sequence_number, data=data,
                           timestamp=time.monotonic(), duration_ms=100)
        self.sequence_number += 1
        self.chunk_callback(chunk)
        return chunk

    def fail(self, error) -> None:
        self.error_callback(error)


class ManualTimer:
    """Elapsed timer that only ticks when the test says so."""

    def __init__(self, callback):
        self.callback = callback
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def tick(self) -> None:
        self.callback()


class ControllerHarness:
    """Controller wired to fakes, remembering every fake it handed out."""

    def __init__(self, channel_kwargs=None, capture_kwargs=None, **controller_kwargs):
        self.channel_kwargs = channel_kwargs or {}
        self.capture_kwargs = capture_kwargs or {}
        self.channels: List[FakeChannel] = []
        self.captures: List[FakeCapture] = []
        self.timers: List[ManualTimer] = []
        self.controller = RecordingLifecycleController(
            channel_factory=self._make_channel,
            capture_factory=self._make_capture,
            timer_factory=self._make_timer,
            **controller_kwargs,
        )

    def _make_channel(self) -> FakeChannel:
        channel = FakeChannel(**self.channel_kwargs)
        self.channels.append(channel)
        return channel

    def _make_capture(self) -> FakeCapture:
        capture = FakeCapture(**self.capture_kwargs)
        self.captures.append(capture)
        return capture

    def _make_timer(self, callback) -> ManualTimer:
        timer = ManualTimer(callback)
        self.timers.append(timer)
        return timer

    @property
    def channel(self) -> Optional[FakeChannel]:
        return self.channels[-1] if self.channels else None

    @property
    def capture(self) -> Optional[FakeCapture]:
        return self.captures[-1] if self.captures else None

    @property
    def timer(self) -> Optional[ManualTimer]:
        return self.timers[-1] if self.timers else None

    def start_recording(self):
        """Start and confirm the transport so the controller is recording."""
        self.controller.start()
        self.channel.emit_ready()
        return self.controller.state


@pytest.fixture
def harness():
    return ControllerHarness()


@pytest.fixture
def make_harness():
    return ControllerHarness


@pytest.fixture
def write_config(temp_data_dir):
    """Write a YAML config into the temp dir and return its path."""
    from pathlib import Path

    def _write(content: str, name: str = "voicedraft.yaml") -> str:
        path = Path(temp_data_dir) / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
