"""Folds interim and final transcript events into a live buffer.

Providers stream two kinds of fragments: interim guesses that are replaced
wholesale by the next event, and finals that are appended to the committed
text. Some providers restate text they already finalized, either as an exact
retransmission or as a trailing echo of the committed text, so finals pass a
three-step guard before they are appended:

1. empty text is ignored;
2. text already committed as a final is ignored;
3. text that the joined committed finals already end with is ignored.

The guard is a heuristic. It misses a final that restates only the middle of
earlier text, and it rejects a legitimately repeated short phrase such as a
second "okay".
"""

import logging
from typing import List, Set

from ..models.events import TranscriptEvent
from ..models.transcription import LiveBuffer, ReconcilerStats

logger = logging.getLogger(__name__)


class TranscriptReconciler:
    """Keeps committed finals and the current interim for one recording."""

    def __init__(self):
        self.committed_finals: List[str] = []
        self.interim = ""
        self.seen_finals: Set[str] = set()
        self.stats = ReconcilerStats()
        self.is_active = True

    def on_event(self, event: TranscriptEvent) -> None:
        """Apply one event in arrival order. Never raises."""
        if not self.is_active:
            self.stats.dropped_inactive += 1
            logger.debug("Reconciler inactive, dropping event")
            return

        text = getattr(event, "text", None)
        if not isinstance(text, str):
            logger.debug(f"Ignoring malformed transcript event: {event!r}")
            return

        if not getattr(event, "is_final", False):
            self.interim = text.strip()
            self.stats.interim_updates += 1
            return

        self.interim = ""
        self._commit_final(text.strip())

    def _commit_final(self, text: str) -> None:
        if not text:
            self.stats.empty_finals += 1
            return

        if text in self.seen_finals:
            self.stats.duplicate_finals += 1
            logger.debug(f"Ignoring retransmitted final: '{text}'")
            return

        if " ".join(self.committed_finals).endswith(text):
            self.stats.suffix_echoes += 1
            logger.debug(f"Ignoring final echoing committed text: '{text}'")
            return

        self.committed_finals.append(text)
        self.seen_finals.add(text)
        self.stats.accepted_finals += 1
        logger.debug(f"Committed final #{len(self.committed_finals)}: '{text}'")

    def snapshot(self) -> LiveBuffer:
        return LiveBuffer(committed_finals=tuple(self.committed_finals), interim=self.interim)

    def deactivate(self) -> None:
        """Stop accepting events; later events are dropped silently."""
        self.is_active = False

    def reset(self) -> None:
        """Clear finals, interim and the seen-set and accept events again."""
        self.committed_finals.clear()
        self.interim = ""
        self.seen_finals.clear()
        self.stats = ReconcilerStats()
        self.is_active = True
