"""VoiceDraft - live dictation into an editable, exportable transcript."""

__version__ = "0.1.0"
