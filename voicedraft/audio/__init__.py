"""Audio capture and chunk encoding module."""

from .capture import AudioCapturePipeline
from .chunker import ChunkAssembler
from .encoding import encode_pcm16, decode_pcm16

__all__ = [
    'AudioCapturePipeline',
    'ChunkAssembler',
    'encode_pcm16',
    'decode_pcm16',
]
