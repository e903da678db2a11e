"""Transcript storage for VoiceDraft."""

from .transcript_exporter import TranscriptExporter, transcript_filename

__all__ = [
    "TranscriptExporter",
    "transcript_filename",
]
