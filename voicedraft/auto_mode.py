"""Auto mode: record for a fixed duration, finalize and export without prompts."""

import time
import logging
from datetime import datetime
from typing import Optional

from .exceptions import EmptyDraftError, TransportConnectionError
from .models.session import RecordingState
from .services.recording_controller import RecordingLifecycleController

logger = logging.getLogger(__name__)


def run_auto_mode(controller: RecordingLifecycleController,
                  duration_seconds: int = 10,
                  export_dir: Optional[str] = None) -> Optional[str]:
    """Run one unattended recording session.

    This mode:
    1. Starts recording
    2. Records for the specified duration, showing progress
    3. Stops and finalizes the draft
    4. Exports the transcript history and returns the file path

    Returns None when the session failed or nothing was heard.

    Raises:
        TransportConnectionError: If the transport never became ready
    """
    logger.info(f"🤖 Starting auto mode: {duration_seconds}s recording")
    print("🎙️  Starting automated recording...")
    print(f"   Started at: {datetime.now().strftime('%H:%M:%S')}")
    print(f"   Duration: {duration_seconds} seconds")
    print()

    try:
        state = controller.start()
        if state is RecordingState.ERROR:
            _report_failure(controller)
            return None

        _wait_with_progress(controller, duration_seconds)
        if controller.state is RecordingState.ERROR:
            _report_failure(controller)
            return None

        print("⏹️  Stopping recording...")
        state = controller.stop()
        if state is RecordingState.ERROR:
            _report_failure(controller)
            return None
        if state is RecordingState.IDLE:
            logger.error(f"Auto mode aborted: no connection after {duration_seconds}s")
            raise TransportConnectionError(
                f"Connection never became ready within {duration_seconds} seconds")
        print(f"📝 Draft: {controller.draft or '(empty)'}")

        try:
            controller.finalize()
        except EmptyDraftError:
            print("⚠️  No speech detected, nothing to export")
            logger.info("Auto mode finished with an empty draft")
            return None

        path = controller.export_history(export_dir)
        print(f"✅ Transcript saved to {path}")
        logger.info(f"Auto mode completed: {path}")
        return path

    finally:
        controller.stop()


def _wait_with_progress(controller: RecordingLifecycleController, duration_seconds: int) -> None:
    print("🔴 Recording in progress...")
    for elapsed in range(1, duration_seconds + 1):
        time.sleep(1)
        if controller.state is RecordingState.ERROR:
            break
        remaining = duration_seconds - elapsed
        progress_bar = "█" * elapsed + "░" * remaining
        print(f"   [{progress_bar}] {elapsed:2d}/{duration_seconds}s - "
              f"{controller.state.value}", end="\r")
    print()
    print()


def _report_failure(controller: RecordingLifecycleController) -> None:
    error = controller.last_error
    detail = error.detail if error else "unknown error"
    print(f"❌ Recording failed: {detail}")
    logger.error(f"Auto mode aborted: {detail}")
