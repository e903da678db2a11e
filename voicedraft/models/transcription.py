"""Transcript-related data models."""

from dataclasses import dataclass, field
from typing import List, Tuple


BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class LiveBuffer:
    """In-progress speech of the active recording."""
    committed_finals: Tuple[str, ...] = ()
    interim: str = ""

    @property
    def committed_text(self) -> str:
        return " ".join(self.committed_finals)

    @property
    def text(self) -> str:
        """Committed finals followed by the current interim guess."""
        parts = list(self.committed_finals)
        if self.interim:
            parts.append(self.interim)
        return " ".join(parts)


@dataclass
class ReconcilerStats:
    """Counters kept by the reconciler for logging."""
    accepted_finals: int = 0
    duplicate_finals: int = 0
    suffix_echoes: int = 0
    empty_finals: int = 0
    interim_updates: int = 0
    dropped_inactive: int = 0


@dataclass
class TranscriptHistory:
    """Finalized transcript blocks, one per completed recording."""
    blocks: List[str] = field(default_factory=list)

    def append(self, block: str) -> None:
        self.blocks.append(block)

    def clear(self) -> None:
        self.blocks.clear()

    @property
    def text(self) -> str:
        return BLOCK_SEPARATOR.join(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)
