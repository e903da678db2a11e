"""VoiceDraft exception hierarchy.

All application-specific exceptions inherit from VoiceDraftError so the
lifecycle controller and the console front end can recover from them in one
place. Capture and transport failures never escape the controller; they are
recorded as the session's error cause instead.
"""

from datetime import datetime


class VoiceDraftError(Exception):
    """Base exception for all VoiceDraft errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "VOICEDRAFT_ERROR"):
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now().isoformat()
        super().__init__(detail)


class ConfigurationError(VoiceDraftError):
    """Raised when the YAML configuration is missing or invalid."""

    def __init__(self, detail: str = "Invalid configuration"):
        super().__init__(detail=detail, code="CONFIGURATION_ERROR")


class PermissionDeniedError(VoiceDraftError):
    """Raised when access to the microphone is refused."""

    def __init__(self, detail: str = "Microphone access was denied"):
        super().__init__(detail=detail, code="PERMISSION_DENIED")


class DeviceUnavailableError(VoiceDraftError):
    """Raised when no usable input device exists or it disappears mid-session."""

    def __init__(self, detail: str = "No audio input device available"):
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE")


class TransportConnectionError(VoiceDraftError):
    """Raised when the transcript channel fails to open or closes unexpectedly."""

    def __init__(self, detail: str = "Connection to the recognition service failed"):
        super().__init__(detail=detail, code="CONNECTION_ERROR")


class SendError(VoiceDraftError):
    """Raised when a single audio chunk cannot be transmitted."""

    def __init__(self, detail: str = "Failed to send audio chunk"):
        super().__init__(detail=detail, code="SEND_ERROR")


class EmptyDraftError(VoiceDraftError):
    """Raised when finalize is attempted on a draft with no content."""

    def __init__(self, detail: str = "No speech detected"):
        super().__init__(detail=detail, code="EMPTY_DRAFT")


class SaveError(VoiceDraftError):
    """Raised when the transcript cannot be exported."""

    def __init__(self, detail: str = "Failed to save transcript"):
        super().__init__(detail=detail, code="SAVE_ERROR")


class InvalidTransitionError(VoiceDraftError):
    """Raised when a lifecycle action is not allowed in the current state."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(
            detail=f"Cannot {action} while {state}",
            code="INVALID_TRANSITION",
        )
