"""Terminal front end for VoiceDraft."""

from .console_screen import ConsoleScreen

__all__ = ["ConsoleScreen"]
