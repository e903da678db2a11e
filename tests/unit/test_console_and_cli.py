"""Unit tests for the console screen, auto mode and command line entry point."""

import io
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from voicedraft.auto_mode import run_auto_mode
from voicedraft.exceptions import TransportConnectionError
from voicedraft.main import build_parser, main
from voicedraft.models.session import RecordingState
from voicedraft.transcription.publisher import TranscriptPublisher
from voicedraft.ui.console_screen import ConsoleScreen


@pytest.fixture
def screen_setup(make_harness, temp_data_dir):
    harness = make_harness(publisher=TranscriptPublisher())
    output = io.StringIO()
    console = Console(file=output, width=100, force_terminal=False)
    screen = ConsoleScreen(harness.controller, console=console, export_dir=temp_data_dir)
    yield harness, screen, output
    screen.close()


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestConsoleScreen:
    """Test cases for ConsoleScreen commands and rendering."""

    def test_screen_follows_published_state(self, screen_setup):
        harness, screen, _ = screen_setup

        screen.handle_command("s")
        assert screen.session.state is RecordingState.CONNECTING

        harness.channel.emit_ready()
        harness.channel.emit_transcript("hello", True)
        harness.channel.emit_transcript("wor", False)

        assert screen.session.state is RecordingState.RECORDING
        assert screen.buffer.committed_finals == ("hello",)
        assert screen.buffer.interim == "wor"

    def test_full_command_sequence(self, screen_setup, temp_data_dir):
        harness, screen, _ = screen_setup

        screen.handle_command("s")
        harness.channel.emit_ready()
        harness.channel.emit_transcript("helo", True)
        screen.handle_command("x")
        assert screen.draft == "helo"

        with patch.object(screen.console, "input", return_value="hello"):
            screen.handle_command("e")
        assert harness.controller.draft == "hello"

        screen.handle_command("f")
        assert screen.history == "hello"

        screen.handle_command("w")
        exported = Path(temp_data_dir).glob("transcript-*.txt")
        assert [p.read_text(encoding="utf-8") for p in exported] == ["hello"]

        screen.handle_command("c")
        assert screen.history == ""

    def test_blank_edit_keeps_draft(self, screen_setup):
        harness, screen, _ = screen_setup
        screen.handle_command("s")
        harness.channel.emit_ready()
        harness.channel.emit_transcript("keep", True)
        screen.handle_command("x")

        with patch.object(screen.console, "input", return_value="   "):
            screen.handle_command("e")

        assert harness.controller.draft == "keep"

    def test_rejected_action_shows_message(self, screen_setup):
        _, screen, output = screen_setup

        assert screen.handle_command("f") is True
        screen.show_status()

        assert "Cannot finalize while idle" in output.getvalue()

    def test_empty_draft_shows_no_speech(self, screen_setup):
        harness, screen, output = screen_setup
        screen.handle_command("s")
        harness.channel.emit_ready()
        screen.handle_command("x")

        screen.handle_command("f")
        screen.show_status()

        assert "No speech detected" in output.getvalue()
        assert harness.controller.state is RecordingState.EDITING

    def test_error_state_rendering_and_acknowledge(self, screen_setup):
        harness, screen, output = screen_setup
        screen.handle_command("s")
        harness.channel.emit_error("network down")

        screen.show_status()
        assert "ERROR" in output.getvalue()
        assert "network down" in output.getvalue()

        screen.handle_command("a")
        assert screen.session.state is RecordingState.IDLE

    def test_unknown_and_quit_commands(self, screen_setup):
        _, screen, output = screen_setup

        assert screen.handle_command("z") is True
        assert screen.handle_command("") is True
        assert screen.handle_command("Q") is False

    def test_run_stops_recording_on_quit(self, screen_setup):
        harness, screen, _ = screen_setup

        with patch.object(screen.console, "input", side_effect=["s", "q"]):
            screen.run()

        assert harness.controller.state is RecordingState.IDLE
        assert harness.channel.close_calls == 1

    def test_light_theme(self, make_harness):
        harness = make_harness()
        screen = ConsoleScreen(harness.controller, dark_theme=False,
                               console=Console(file=io.StringIO()))
        try:
            assert screen.styles["header"] == "bold blue"
        finally:
            screen.close()


@pytest.mark.unit
class TestAutoMode:
    """Test cases for run_auto_mode."""

    def test_records_finalizes_and_exports(self, make_harness, temp_data_dir):
        harness = make_harness(channel_kwargs={
            "auto_ready": True,
            "script": [("hello", False), ("hello world", True)],
        })

        with patch("voicedraft.auto_mode.time.sleep"):
            path = run_auto_mode(harness.controller, duration_seconds=3, export_dir=temp_data_dir)

        assert Path(path).read_text(encoding="utf-8") == "hello world"
        assert harness.controller.state is RecordingState.IDLE

    def test_no_speech(self, make_harness, temp_data_dir):
        harness = make_harness(channel_kwargs={"auto_ready": True})

        with patch("voicedraft.auto_mode.time.sleep"):
            assert run_auto_mode(harness.controller, 1, temp_data_dir) is None

        assert list(Path(temp_data_dir).iterdir()) == []

    def test_connection_failure(self, make_harness, temp_data_dir, capsys):
        harness = make_harness(channel_kwargs={"open_error": TransportConnectionError("refused")})

        with patch("voicedraft.auto_mode.time.sleep"):
            assert run_auto_mode(harness.controller, 1, temp_data_dir) is None

        assert "refused" in capsys.readouterr().out

    def test_transport_never_ready(self, make_harness, temp_data_dir):
        harness = make_harness()

        with patch("voicedraft.auto_mode.time.sleep"):
            with pytest.raises(TransportConnectionError, match="never became ready within 2 seconds"):
                run_auto_mode(harness.controller, 2, temp_data_dir)

        assert harness.controller.state is RecordingState.IDLE
        assert harness.channel.close_calls == 1
        assert list(Path(temp_data_dir).iterdir()) == []


@pytest.mark.unit
class TestCommandLine:
    """Test cases for argument parsing and main()."""

    def test_parser_defaults(self):
        args = build_parser().parse_args([])

        assert args.auto is False
        assert args.duration == 10
        assert args.language is None
        assert args.log_level is None

    def test_parser_rejects_unknown_language(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--language", "xx-XX"])

    def test_missing_config_exits(self, temp_data_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(Path(temp_data_dir) / "missing.yaml")])

        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().out

    def test_auto_mode_from_command_line(self, make_harness, write_config, temp_data_dir, restore_root_logging):
        config_path = write_config("logging:\n  file_path: logs/test.log\n  console_output: false\n")
        harness = make_harness()

        with patch("voicedraft.main.build_controller", return_value=harness.controller) as build, \
             patch("voicedraft.main.run_auto_mode", return_value="/tmp/out.txt") as auto:
            main(["--config", config_path, "--auto", "--duration", "2",
                  "--language", "es-ES", "--log-level", "DEBUG"])

        assert build.call_args.kwargs["language"] == "es-ES"
        auto.assert_called_once_with(harness.controller, 2, None)
        assert (Path(temp_data_dir) / "logs" / "test.log").exists()

    def test_auto_mode_failure_exits_nonzero(self, make_harness, write_config, capsys, restore_root_logging):
        config_path = write_config("logging:\n  file_path: logs/test.log\n  console_output: false\n")
        harness = make_harness()
        never_ready = TransportConnectionError("Connection never became ready within 1 seconds")

        with patch("voicedraft.main.build_controller", return_value=harness.controller), \
             patch("voicedraft.main.run_auto_mode", side_effect=never_ready):
            with pytest.raises(SystemExit) as exc_info:
                main(["--config", config_path, "--auto", "--duration", "1"])

        assert exc_info.value.code == 1
        assert "Recording failed: Connection never became ready" in capsys.readouterr().out
