"""Transcript channels and reconciliation for VoiceDraft."""

from .base import AbstractTranscriptChannel
from .reconciler import TranscriptReconciler
from .publisher import TranscriptPublisher
from .google_backend import GoogleStreamingChannel
from .deepgram_channel import DeepgramChannel, parse_deepgram_message

__all__ = [
    "AbstractTranscriptChannel",
    "TranscriptReconciler",
    "TranscriptPublisher",
    "GoogleStreamingChannel",
    "DeepgramChannel",
    "parse_deepgram_message",
]
