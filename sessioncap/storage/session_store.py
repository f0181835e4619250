"""Per-session artifact storage on the local filesystem."""

import logging
import threading
import wave
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List, Union

from ..errors import SessionStoreError
from ..models.session import format_timestamp
from ..models.snapshot import SnapshotArtifact


logger = logging.getLogger(__name__)

SESSION_DIR_PREFIX = "session_"
SNAPSHOT_SUFFIX = ".jpg"
AUDIO_SUFFIX = ".wav"
WAV_HEADER_BYTES = 44


class SessionStore:
    """Append-only directory holding the artifacts of one session.

    Layout::

        session_<session_id>/
            screenshot_monitor_<n>_<timestamp>.jpg   (one per tick per source)
            audio_<session_id>.wav                   (one, append-only)

    Snapshots are created exclusively and never rewritten. Once ``seal()``
    has been called no further artifact may be written.
    """

    def __init__(self, path: Path, session_id: str):
        """Wrap an existing session directory.

        Args:
            path: Session directory
            session_id: Session identifier encoded in the directory name
        """
        self.path = Path(path)
        self.session_id = session_id
        self.audio_path = self.path / f"audio_{session_id}{AUDIO_SUFFIX}"

        self._lock = threading.Lock()
        self._sealed = False
        self._audio_opened = False

    @classmethod
    def create(cls, root_dir: Union[str, Path], created_at: datetime) -> "SessionStore":
        """Create a new session directory named after the creation timestamp.

        A second session created within the same second gets a numeric
        suffix (``_2``, ``_3`` ...) so every call yields a distinct directory.

        Args:
            root_dir: Directory that holds session folders
            created_at: Session creation time

        Returns:
            SessionStore for the new directory

        Raises:
            SessionStoreError: If the directory cannot be created
        """
        root = Path(root_dir)
        base_id = format_timestamp(created_at)
        session_id = base_id
        attempt = 1

        try:
            root.mkdir(parents=True, exist_ok=True)
            while True:
                session_path = root / f"{SESSION_DIR_PREFIX}{session_id}"
                try:
                    session_path.mkdir()
                    break
                except FileExistsError:
                    attempt += 1
                    session_id = f"{base_id}_{attempt}"
        except OSError as e:
            logger.error(f"Failed to create session directory under {root}: {e}")
            raise SessionStoreError(f"Cannot create session directory under {root}: {e}") from e

        logger.info(f"Created session folder: {session_path}")
        return cls(session_path, session_id)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Refuse all further writes; called before the store is handed to upload."""
        with self._lock:
            if not self._sealed:
                self._sealed = True
                logger.debug(f"Session store sealed: {self.path}")

    def write_snapshot(self, source_index: int, timestamp: str, data: bytes) -> SnapshotArtifact:
        """Write one encoded snapshot.

        Args:
            source_index: Zero-based source index (file name uses 1-based numbering)
            timestamp: Tick timestamp in YYYYMMDD_HHMMSS format
            data: Encoded image bytes

        Returns:
            SnapshotArtifact describing the written file

        Raises:
            SessionStoreError: If the store is sealed or the write fails
        """
        stem = f"screenshot_monitor_{source_index + 1}_{timestamp}"

        with self._lock:
            if self._sealed:
                raise SessionStoreError(f"Session store {self.path} is sealed; snapshot dropped")

            candidate = self.path / f"{stem}{SNAPSHOT_SUFFIX}"
            counter = 0
            while True:
                try:
                    f = open(candidate, 'xb')
                    break
                except FileExistsError:
                    counter += 1
                    candidate = self.path / f"{stem}_{counter}{SNAPSHOT_SUFFIX}"
                except OSError as e:
                    raise SessionStoreError(f"Failed to write {candidate}: {e}") from e

            try:
                with f:
                    f.write(data)
            except OSError as e:
                # A truncated file would be picked up by snapshot_paths()
                candidate.unlink(missing_ok=True)
                raise SessionStoreError(f"Failed to write {candidate}: {e}") from e

        logger.debug(f"Screenshot saved: {candidate} ({len(data)} bytes)")
        return SnapshotArtifact(
            source_index=source_index,
            timestamp=timestamp,
            path=candidate,
            size_bytes=len(data),
        )

    def open_audio(self, sample_rate: int, channels: int, sample_width: int = 2) -> wave.Wave_write:
        """Open the session audio artifact for appending PCM frames.

        The artifact can be opened only once per session; after the returned
        handle is closed the file is never reopened for writing.

        Raises:
            SessionStoreError: If the store is sealed, the audio artifact was
                already opened, or the file cannot be created
        """
        with self._lock:
            if self._sealed:
                raise SessionStoreError(f"Session store {self.path} is sealed")
            if self._audio_opened:
                raise SessionStoreError(f"Audio artifact already opened: {self.audio_path}")
            self._audio_opened = True

            try:
                wf = wave.open(str(self.audio_path), 'wb')
                wf.setnchannels(channels)
                wf.setsampwidth(sample_width)
                wf.setframerate(sample_rate)
            except OSError as e:
                raise SessionStoreError(f"Failed to open {self.audio_path}: {e}") from e

        logger.info(f"Audio artifact opened: {self.audio_path}")
        return wf

    def snapshot_paths(self) -> List[Path]:
        """List snapshot artifacts sorted by name."""
        return sorted(p for p in self.path.glob(f"screenshot_monitor_*{SNAPSHOT_SUFFIX}") if p.is_file())

    def has_audio(self) -> bool:
        """True when the audio artifact holds at least one sample beyond the WAV header."""
        return self.audio_path.exists() and self.audio_path.stat().st_size > WAV_HEADER_BYTES


def list_sessions(root_dir: Union[str, Path]) -> List[Dict[str, Any]]:
    """List session directories under a storage root.

    Args:
        root_dir: Directory that holds session folders

    Returns:
        One dictionary per session, sorted chronologically
    """
    root = Path(root_dir)
    if not root.is_dir():
        return []

    sessions = []
    for session_path in sorted(root.glob(f"{SESSION_DIR_PREFIX}*")):
        if not session_path.is_dir():
            continue

        snapshots = 0
        audio_bytes = 0
        total_size = 0
        for file_path in session_path.iterdir():
            if not file_path.is_file():
                continue
            size = file_path.stat().st_size
            total_size += size
            if file_path.suffix == SNAPSHOT_SUFFIX:
                snapshots += 1
            elif file_path.suffix == AUDIO_SUFFIX:
                audio_bytes += size

        sessions.append({
            "session_id": session_path.name[len(SESSION_DIR_PREFIX):],
            "path": str(session_path),
            "snapshots": snapshots,
            "audio_bytes": audio_bytes,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
        })

    logger.debug(f"Found {len(sessions)} sessions in {root}")
    return sessions
