"""Upload result models."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TransferResult:
    """Outcome of one transfer to the collector."""
    name: str  # "image" or "audio"
    attempted: bool = False
    succeeded: bool = False
    status: Optional[int] = None
    file_count: int = 0
    error: Optional[str] = None


@dataclass
class UploadReport:
    """Outcome of the single delivery attempt of a session."""
    session_id: str
    images: TransferResult = field(default_factory=lambda: TransferResult(name="image"))
    audio: TransferResult = field(default_factory=lambda: TransferResult(name="audio"))

    @property
    def succeeded(self) -> bool:
        audio_ok = self.audio.succeeded or not self.audio.attempted
        return self.images.succeeded and audio_ok
