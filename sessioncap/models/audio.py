"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    channels: int
    chunk_size: int
    total_chunks: int
    bytes_written: int = 0
    peak_level: float = 0.0
    stream_failed: bool = False
