"""Snapshot-related data models."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


@dataclass(frozen=True)
class SourceInfo:
    """One capturable visual source as enumerated by a capture adapter."""
    id: int
    display_name: str
    width: int
    height: int


@dataclass(frozen=True)
class RawFrame:
    """Uncompressed pixels captured from a source."""
    data: bytes
    width: int
    height: int
    mode: str = "RGB"


@dataclass(frozen=True)
class SnapshotArtifact:
    """An encoded snapshot written to the session store."""
    source_index: int  # zero-based
    timestamp: str
    path: Path
    size_bytes: int


@dataclass
class SnapshotStats:
    """Snapshot producer statistics."""
    ticks: int = 0
    skipped_ticks: int = 0
    snapshots_written: int = 0
    unavailable: int = 0
    capture_failures: int = 0
    encode_failures: int = 0
    write_failures: int = 0
    per_source: Dict[int, int] = field(default_factory=dict)
