"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RecordingState(Enum):
    """Lifecycle states of a recording session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    RECORDING = "recording"
    EDITING = "editing"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """True while audio resources may be held."""
        return self in (RecordingState.CONNECTING, RecordingState.RECORDING)


@dataclass
class RecordingSession:
    """One start-to-finalize (or start-to-clear) cycle."""
    state: RecordingState = RecordingState.IDLE
    started_at: Optional[datetime] = None
    elapsed_seconds: int = 0
    language: str = "en-US"
    error: Optional[str] = None  # Cause recorded on entering the error state
