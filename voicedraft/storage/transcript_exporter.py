"""Plain-text export of the finalized transcript history."""

import logging
from pathlib import Path
from datetime import date
from typing import Optional

from ..exceptions import SaveError

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "transcript-"
FILENAME_SUFFIX = ".txt"


def transcript_filename(export_date: date) -> str:
    """File name for a transcript exported on the given day."""
    return f"{FILENAME_PREFIX}{export_date.isoformat()}{FILENAME_SUFFIX}"


class TranscriptExporter:
    """Writes transcript history as UTF-8 text files."""

    def __init__(self, export_dir: str = "./transcripts"):
        """Initialize exporter with its target directory.

        Args:
            export_dir: Directory the transcript files are written to
        """
        self.export_dir = Path(export_dir)
        logger.info(f"TranscriptExporter initialized with export_dir: {self.export_dir}")

    def export(self, text: str, export_date: Optional[date] = None) -> str:
        """Write the transcript text and return the file path.

        An export made on the same day replaces the earlier file; the
        history it contains is cumulative.

        Raises:
            SaveError: If the directory or file cannot be written
        """
        export_date = export_date or date.today()
        file_path = self.export_dir / transcript_filename(export_date)

        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Error saving transcript to {file_path}: {e}")
            raise SaveError(f"Could not write {file_path}: {e}") from e

        logger.info(f"Transcript saved: {file_path} ({len(text)} characters)")
        return str(file_path)
