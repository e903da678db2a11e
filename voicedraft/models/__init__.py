"""Data models for the VoiceDraft application."""

from .audio import AudioStats, AudioFrame, AudioChunk
from .events import TranscriptEvent, ConnectionStatus, CONNECTION_OK, CONNECTION_ERROR
from .session import RecordingState, RecordingSession
from .transcription import LiveBuffer, ReconcilerStats, TranscriptHistory

__all__ = [
    "AudioStats",
    "AudioFrame",
    "AudioChunk",
    "TranscriptEvent",
    "ConnectionStatus",
    "CONNECTION_OK",
    "CONNECTION_ERROR",
    "RecordingState",
    "RecordingSession",
    "LiveBuffer",
    "ReconcilerStats",
    "TranscriptHistory",
]
