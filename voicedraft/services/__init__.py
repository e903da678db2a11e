"""Services layer for VoiceDraft application logic."""

from .recording_controller import RecordingLifecycleController
from .elapsed_timer import ElapsedTimer
from .factories import build_controller, build_channel_factory, build_capture_factory

__all__ = [
    "RecordingLifecycleController",
    "ElapsedTimer",
    "build_controller",
    "build_channel_factory",
    "build_capture_factory",
]
