"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_duration_ms: int
    total_chunks: int
    pending_chunks: int


@dataclass
class AudioFrame:
    """Raw float32 mono samples as read from the input device."""
    samples: np.ndarray
    timestamp: float  # Monotonic time when this frame was read
    frame_number: int


@dataclass(frozen=True)
class AudioChunk:
    """Encoded PCM16 slice of audio, immutable once produced."""
    sequence_number: int
    data: bytes
    timestamp: float  # Monotonic time of the first frame in the chunk
    duration_ms: int
    sample_rate: int = 16000
    final: bool = False  # True for the flush emitted by close()

    @property
    def sample_count(self) -> int:
        return len(self.data) // 2
