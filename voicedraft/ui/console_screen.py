"""Rich console front end for the recording lifecycle."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..exceptions import VoiceDraftError, EmptyDraftError
from ..models.session import RecordingSession, RecordingState
from ..models.transcription import LiveBuffer
from ..services.recording_controller import RecordingLifecycleController
from ..transcription.publisher import STATE_TOPIC, LIVE_TOPIC, HISTORY_TOPIC

logger = logging.getLogger(__name__)

DARK_STYLES = {
    "header": "bold cyan",
    "committed": "white",
    "interim": "dim italic",
    "history": "green",
    "error": "bold red",
    "info": "yellow",
}
LIGHT_STYLES = {
    "header": "bold blue",
    "committed": "black",
    "interim": "italic grey50",
    "history": "dark_green",
    "error": "bold red3",
    "info": "dark_orange3",
}
STATE_LABELS = {
    RecordingState.IDLE: "⏹️  IDLE",
    RecordingState.CONNECTING: "🔌 CONNECTING",
    RecordingState.RECORDING: "🔴 RECORDING",
    RecordingState.EDITING: "✏️  EDITING",
    RecordingState.ERROR: "❌ ERROR",
}
COMMANDS = (
    ("s", "Start recording"),
    ("x", "Stop recording"),
    ("e", "Edit draft"),
    ("f", "Finalize draft"),
    ("w", "Write transcript file"),
    ("c", "Clear everything"),
    ("a", "Acknowledge error"),
    ("q", "Quit"),
)


class ConsoleScreen:
    """Line-based terminal interface driven by published snapshots."""

    def __init__(self,
                 controller: RecordingLifecycleController,
                 dark_theme: bool = True,
                 console: Optional[Console] = None,
                 export_dir: Optional[str] = None):
        self.controller = controller
        self.console = console or Console()
        self.styles = DARK_STYLES if dark_theme else LIGHT_STYLES
        self.export_dir = export_dir

        self.session: RecordingSession = controller.session
        self.buffer: LiveBuffer = controller.live_buffer
        self.draft = controller.draft
        self.history = controller.history_text
        self.message: Optional[Text] = None

        pub.subscribe(self._on_state, STATE_TOPIC)
        pub.subscribe(self._on_live, LIVE_TOPIC)
        pub.subscribe(self._on_history, HISTORY_TOPIC)

    def _on_state(self, session: RecordingSession) -> None:
        self.session = session

    def _on_live(self, buffer: LiveBuffer, draft: str) -> None:
        self.buffer = buffer
        self.draft = draft

    def _on_history(self, text: str, block_count: int) -> None:
        self.history = text

    def show_status(self) -> None:
        self.console.clear()
        self.console.print("🎙️  VoiceDraft", style=self.styles["header"])
        self.console.print("=" * 50)

        state = self.session.state
        self.console.print(f"{STATE_LABELS[state]}   ⏱️  {self.session.elapsed_seconds}s   🌐 {self.session.language}")
        if state is RecordingState.ERROR and self.session.error:
            self.console.print(f"Cause: {self.session.error}", style=self.styles["error"])

        if state in (RecordingState.CONNECTING, RecordingState.RECORDING):
            live = Text(self.buffer.committed_text, style=self.styles["committed"])
            if self.buffer.interim:
                live.append((" " if self.buffer.committed_finals else "") + self.buffer.interim,
                            style=self.styles["interim"])
            self.console.print(Panel(live, title="Live"))
        elif state is RecordingState.EDITING:
            self.console.print(Panel(Text(self.draft, style=self.styles["committed"]), title="Draft"))

        if self.history:
            self.console.print(Panel(Text(self.history, style=self.styles["history"]), title="Transcript"))

        if self.message is not None:
            self.console.print(self.message)
            self.message = None

        self.console.print("\n" + "=" * 50)
        for key, label in COMMANDS:
            self.console.print(f"  [bold]{key}[/bold] - {label}")
        self.console.print("=" * 50)

    def handle_command(self, command: str) -> bool:
        """Run one command; return False when the user asked to quit."""
        command = command.strip().lower()
        logger.debug(f"Console command: '{command}'")
        try:
            if command == "s":
                self.controller.start()
            elif command == "x":
                self.controller.stop()
            elif command == "e":
                edited = self.console.input("Edited draft (blank keeps current): ")
                if edited.strip():
                    self.controller.edit_draft(edited)
            elif command == "f":
                self.controller.finalize()
                self._notify("Draft added to transcript", "info")
            elif command == "w":
                path = self.controller.export_history(self.export_dir)
                self._notify(f"Saved {path}", "info")
            elif command == "c":
                self.controller.clear_all()
            elif command == "a":
                self.controller.acknowledge_error()
            elif command == "q":
                return False
            elif command:
                self._notify(f"Unknown command: {command}", "error")
        except EmptyDraftError as e:
            self._notify(f"ℹ️  {e.detail}", "info")
        except VoiceDraftError as e:
            logger.warning(f"Command '{command}' failed: {e.detail}")
            self._notify(f"❌ {e.detail}", "error")
        return True

    def _notify(self, message: str, style: str) -> None:
        self.message = Text(message, style=self.styles[style])

    def run(self) -> None:
        """Interactive loop until the user quits."""
        try:
            while True:
                self.show_status()
                command = self.console.input("> ")
                if not self.handle_command(command):
                    break
        finally:
            self.close()

    def close(self) -> None:
        self.controller.stop()
        pub.unsubscribe(self._on_state, STATE_TOPIC)
        pub.unsubscribe(self._on_live, LIVE_TOPIC)
        pub.unsubscribe(self._on_history, HISTORY_TOPIC)
