"""Integration tests: controller driving the real capture pipeline."""

import time

import pytest

from voicedraft.audio.capture import AudioCapturePipeline
from voicedraft.audio.encoding import decode_pcm16
from voicedraft.models.session import RecordingState
from voicedraft.services.recording_controller import RecordingLifecycleController
from voicedraft.services.elapsed_timer import ElapsedTimer

from conftest import FakeChannel


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def session_parts(mock_pyaudio):
    channels, captures = [], []

    def make_channel():
        channel = FakeChannel()
        channels.append(channel)
        return channel

    def make_capture():
        capture = AudioCapturePipeline(sample_rate=16000, chunk_duration_ms=100)
        captures.append(capture)
        return capture

    controller = RecordingLifecycleController(
        channel_factory=make_channel,
        capture_factory=make_capture,
        timer_factory=lambda callback: ElapsedTimer(callback, interval=0.05),
    )
    yield controller, channels, captures
    controller.stop()


@pytest.mark.integration
class TestRecordingSession:
    """End-to-end recording with mocked audio hardware."""

    def test_audio_reaches_channel_and_draft_is_frozen(self, session_parts, mock_pyaudio):
        controller, channels, captures = session_parts

        assert controller.start() is RecordingState.CONNECTING
        channel = channels[0]
        channel.emit_ready()
        assert controller.state is RecordingState.RECORDING

        assert wait_for(lambda: len(channel.sent) >= 2)
        channel.emit_transcript("hel", False)
        channel.emit_transcript("hello", False)
        channel.emit_transcript("hello world", True)

        assert controller.stop() is RecordingState.EDITING
        assert controller.draft == "hello world"
        assert captures[0].is_recording is False
        mock_pyaudio['instance'].terminate.assert_called_once()

        # Every chunk is valid PCM16 at the captured level
        samples = decode_pcm16(b"".join(channel.sent))
        assert len(samples) > 0
        assert abs(samples).max() <= 0.51

    def test_chunks_sent_in_capture_order(self, session_parts):
        controller, channels, captures = session_parts
        sequence = []
        controller.start()
        capture = captures[0]

        original_on_chunk = controller._on_chunk

        def spy(source, chunk):
            sequence.append(chunk.sequence_number)
            original_on_chunk(source, chunk)

        controller._on_chunk = spy
        channels[0].emit_ready()
        assert wait_for(lambda: len(sequence) >= 3)
        controller.stop()

        assert sequence == sorted(sequence)
        assert capture.total_chunks >= len(sequence)

    def test_elapsed_time_advances_while_recording(self, session_parts):
        controller, channels, _ = session_parts
        controller.start()
        channels[0].emit_ready()

        assert wait_for(lambda: controller.session.elapsed_seconds >= 2)
        controller.stop()
        frozen = controller.session.elapsed_seconds
        time.sleep(0.15)

        assert controller.session.elapsed_seconds == frozen

    def test_finalize_then_second_session(self, session_parts):
        controller, channels, captures = session_parts

        controller.start()
        channels[0].emit_ready()
        channels[0].emit_transcript("first take", True)
        controller.stop()
        controller.finalize()

        controller.start()
        channels[1].emit_ready()
        channels[1].emit_transcript("second take", True)
        controller.stop()
        controller.finalize()

        assert controller.history_text == "first take\n\nsecond take"
        assert len(captures) == 2
        assert all(not capture.is_recording for capture in captures)
        assert channels[0].close_calls == 1
