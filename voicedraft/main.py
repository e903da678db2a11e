"""Main application entry point for VoiceDraft."""

import sys
import argparse
import logging
from pathlib import Path

from . import __version__
from .auto_mode import run_auto_mode
from .config import VoiceDraftConfig, SUPPORTED_LANGUAGES
from .exceptions import ConfigurationError, VoiceDraftError
from .services.factories import build_controller
from .ui.console_screen import ConsoleScreen

logger = logging.getLogger(__name__)


def setup_logging(config: VoiceDraftConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voicedraft.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Keep the screen readable
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"VoiceDraft {__version__} starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="VoiceDraft - live dictation into an editable transcript",
        epilog="Commands: s=Start, x=Stop, e=Edit draft, f=Finalize, w=Write file, c=Clear, a=Acknowledge error, q=Quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for voicedraft.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--auto",
        action="store_true",
        help="Run in automatic mode: record for the given duration, finalize, export and exit"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Duration in seconds for auto mode recording (default: 10)"
    )

    parser.add_argument(
        "--language",
        type=str,
        choices=SUPPORTED_LANGUAGES,
        help="Recognition language (overrides config)"
    )

    parser.add_argument(
        "--export-dir",
        type=str,
        help="Directory for exported transcripts (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VoiceDraft v{__version__}"
    )
    return parser


def main(argv=None) -> None:
    """Main entry point for VoiceDraft."""
    args = build_parser().parse_args(argv)

    try:
        config = VoiceDraftConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
        controller = build_controller(config, language=args.language, export_dir=args.export_dir)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e.detail}")
        sys.exit(1)

    try:
        if args.auto:
            path = run_auto_mode(controller, args.duration, args.export_dir)
            if path is None and controller.last_error is not None:
                sys.exit(1)
        else:
            screen = ConsoleScreen(controller, dark_theme=config.is_dark_theme(), export_dir=args.export_dir)
            screen.run()
        print("👋 Goodbye!")
    except KeyboardInterrupt:
        controller.stop()
        print("\n👋 Goodbye!")
    except VoiceDraftError as e:
        print(f"❌ Recording failed: {e.detail}")
        logger.error(f"Session failed ({e.code}): {e.detail}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
