"""Time-based chunk assembly for captured audio frames."""

import time
import logging
from collections import deque
from typing import Callable, Optional

import numpy as np

from ..models.audio import AudioChunk, AudioFrame
from .encoding import encode_pcm16, duration_ms_for

logger = logging.getLogger(__name__)

MIN_CHUNK_DURATION_MS = 100
MAX_CHUNK_DURATION_MS = 250


class ChunkAssembler:
    """Accumulates captured frames until a chunk boundary, then encodes them.

    Boundaries are decided by elapsed clock time rather than by sample
    count so that irregular device reads still produce chunks at a steady
    nominal interval. A chunk starts when the audio of its first frame
    started, i.e. the read time minus that frame's duration.
    """

    def __init__(self,
                 sample_rate: int = 16000,
                 chunk_duration_ms: int = 100,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize chunk assembler.

        Args:
            sample_rate: Sample rate of the incoming mono frames
            chunk_duration_ms: Nominal chunk length (100-250 ms)
            clock: Monotonic clock, injectable for tests
        """
        if not MIN_CHUNK_DURATION_MS <= chunk_duration_ms <= MAX_CHUNK_DURATION_MS:
            raise ValueError(
                f"chunk_duration_ms must be between {MIN_CHUNK_DURATION_MS} and "
                f"{MAX_CHUNK_DURATION_MS}, got {chunk_duration_ms}")
        self.sample_rate = sample_rate
        self.chunk_duration_ms = chunk_duration_ms
        self.clock = clock

        self.frames = deque()
        self.chunk_started_at: Optional[float] = None
        self.frame_counter = 0
        self.sequence_number = 0

    def add_frame(self, samples: np.ndarray) -> Optional[AudioChunk]:
        """Add one device read; return a chunk if a boundary was reached."""
        if samples is None or len(samples) == 0:
            return None

        now = self.clock()
        if self.chunk_started_at is None:
            self.chunk_started_at = now - len(samples) / self.sample_rate

        self.frames.append(AudioFrame(samples=samples, timestamp=now, frame_number=self.frame_counter))
        self.frame_counter += 1

        elapsed_ms = (now - self.chunk_started_at) * 1000.0
        if elapsed_ms >= self.chunk_duration_ms:
            return self._emit(final=False)
        return None

    def flush(self) -> Optional[AudioChunk]:
        """Emit whatever is buffered as a final, possibly short, chunk."""
        if not self.frames:
            return None
        return self._emit(final=True)

    def _emit(self, final: bool) -> AudioChunk:
        samples = np.concatenate([frame.samples for frame in self.frames])
        chunk = AudioChunk(
            sequence_number=self.sequence_number,
            data=encode_pcm16(samples),
            timestamp=self.chunk_started_at,
            duration_ms=duration_ms_for(len(samples), self.sample_rate),
            sample_rate=self.sample_rate,
            final=final,
        )
        logger.debug(f"Assembled chunk {chunk.sequence_number}: {len(self.frames)} frames, "
                     f"{chunk.duration_ms}ms, final={final}")
        self.sequence_number += 1
        self.frames.clear()
        self.chunk_started_at = None
        return chunk
