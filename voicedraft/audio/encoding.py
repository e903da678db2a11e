"""PCM16 chunk encoding for the recognition transports."""

import logging

import numpy as np

logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2
NEGATIVE_SCALE = 32768.0  # -1.0 maps to -32768
POSITIVE_SCALE = 32767.0  # 1.0 maps to 32767


def encode_pcm16(samples) -> bytes:
    """Encode float samples in [-1, 1] as signed 16-bit little-endian PCM.

    Samples are clamped before scaling so out-of-range input saturates
    instead of wrapping around. The float-to-int conversion truncates
    toward zero.

    Args:
        samples: Sequence or array of float samples (mono)

    Returns:
        Encoded bytes, two per sample
    """
    values = np.nan_to_num(np.asarray(samples, dtype=np.float64))
    clamped = np.clip(values, -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * NEGATIVE_SCALE, clamped * POSITIVE_SCALE)
    return scaled.astype("<i2").tobytes()


def decode_pcm16(data: bytes) -> np.ndarray:
    """Decode signed 16-bit little-endian PCM back to float samples."""
    ints = np.frombuffer(data, dtype="<i2").astype(np.float64)
    return np.where(ints < 0, ints / NEGATIVE_SCALE, ints / POSITIVE_SCALE)


def float32_from_bytes(raw: bytes, channels: int = 1) -> np.ndarray:
    """Interpret a paFloat32 device buffer, downmixing to mono."""
    samples = np.frombuffer(raw, dtype=np.float32)
    if channels > 1:
        usable = len(samples) - len(samples) % channels
        samples = samples[:usable].reshape(-1, channels).mean(axis=1)
    return samples


def duration_ms_for(sample_count: int, sample_rate: int) -> int:
    """Duration in whole milliseconds of a mono sample count."""
    if sample_rate <= 0:
        return 0
    return int(sample_count * 1000 / sample_rate)
