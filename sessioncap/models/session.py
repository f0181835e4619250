"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .audio import AudioStats
from .snapshot import SnapshotStats
from .upload import UploadReport

SESSION_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as YYYYMMDD_HHMMSS."""
    return moment.strftime(SESSION_TIMESTAMP_FORMAT)


class SessionState(Enum):
    """Lifecycle state of a capture session."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    UPLOADING = "uploading"
    STOPPED = "stopped"


@dataclass
class Session:
    """One bounded recording run, identified by its creation timestamp."""
    session_id: str
    bot_id: str
    max_speakers: int
    selected_sources: List[int]  # zero-based source indices
    storage_root: Path
    created_at: datetime
    state: SessionState = SessionState.IDLE
    stopped_at: Optional[datetime] = None
    snapshot_stats: Optional[SnapshotStats] = None
    audio_stats: Optional[AudioStats] = None
    upload_report: Optional[UploadReport] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def timestamp(self) -> str:
        """Creation timestamp as sent to the collector."""
        return format_timestamp(self.created_at)

    @property
    def duration_seconds(self) -> float:
        end = self.stopped_at or datetime.now()
        return (end - self.created_at).total_seconds()
