"""Data models for the Sessioncap application."""

from .session import Session, SessionState, format_timestamp
from .snapshot import SourceInfo, RawFrame, SnapshotArtifact, SnapshotStats
from .audio import AudioStats
from .upload import TransferResult, UploadReport
from .events import AudioEvent, SessionEvent
from .control import StartSessionRequest

__all__ = [
    "Session",
    "SessionState",
    "format_timestamp",
    "SourceInfo",
    "RawFrame",
    "SnapshotArtifact",
    "SnapshotStats",
    "AudioStats",
    "TransferResult",
    "UploadReport",
    "AudioEvent",
    "SessionEvent",
    "StartSessionRequest",
]
