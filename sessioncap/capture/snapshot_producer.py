"""Timer-driven producer that captures one snapshot per source per tick."""

import time
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from ..errors import (
    CaptureFailureError,
    EncodeFailureError,
    SessionStoreError,
    SourceUnavailableError,
)
from ..models.session import format_timestamp
from ..models.snapshot import SnapshotArtifact, SnapshotStats, SourceInfo
from ..storage.session_store import SessionStore
from .base import AbstractCaptureSource, AbstractFrameEncoder

logger = logging.getLogger(__name__)


class SnapshotProducer:
    """Periodically capture, encode and store one frame per selected source.

    Ticks fire on a fixed-rate schedule starting one interval after
    ``start()``. A tick runs on the producer thread; when a tick overruns
    one or more slots those slots are skipped, never run concurrently.
    ``run_tick()`` may also be called directly and is guarded by the same
    non-blocking tick lock, so two ticks never overlap.
    """

    def __init__(self,
                 capture_source: AbstractCaptureSource,
                 encoder: AbstractFrameEncoder,
                 store: SessionStore,
                 source_indices: List[int],
                 interval_ms: int = 10000,
                 max_dimension: int = 800,
                 quality: int = 80,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize snapshot producer.

        Args:
            capture_source: Adapter enumerating and capturing sources
            encoder: Adapter compressing raw frames
            store: Session store receiving the snapshots
            source_indices: Zero-based indices of the sources to capture
            interval_ms: Tick interval in milliseconds
            max_dimension: Maximum encoded width/height
            quality: JPEG quality
            clock: Wall clock used for tick timestamps
        """
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")

        self.capture_source = capture_source
        self.encoder = encoder
        self.store = store
        self.source_indices = list(source_indices)
        self.interval_ms = interval_ms
        self.max_dimension = max_dimension
        self.quality = quality
        self.clock = clock

        self.stats = SnapshotStats()

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._cancel_lock = threading.Lock()
        self._cancelled = False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the tick thread."""
        if self._thread is not None:
            logger.warning("Snapshot producer already started")
            return

        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.name = "SnapshotProducerThread"
        self._thread.start()
        logger.info(f"[{self.store.session_id}] Snapshot capture started: sources="
                    f"{[i + 1 for i in self.source_indices]}, interval={self.interval_ms}ms")

    def cancel(self, timeout: Optional[float] = None) -> None:
        """Stop the timer and wait for an in-flight tick to finish.

        Safe to call more than once; only the first call has an effect.

        Args:
            timeout: Maximum seconds to wait for the tick thread (None waits indefinitely)
        """
        with self._cancel_lock:
            if self._cancelled:
                logger.debug(f"[{self.store.session_id}] Snapshot producer already cancelled")
                return
            self._cancelled = True

        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"[{self.store.session_id}] Snapshot thread did not stop cleanly")

        # A tick started through run_tick() from another thread may still hold the lock
        with self._tick_lock:
            pass

        logger.info(f"[{self.store.session_id}] Stopped screenshot capture: "
                    f"{self.stats.ticks} ticks, {self.stats.snapshots_written} snapshots, "
                    f"{self.stats.skipped_ticks} skipped")

    def _run(self) -> None:
        """Internal method: fixed-rate tick loop."""
        interval = self.interval_ms / 1000.0
        next_deadline = time.monotonic() + interval

        while not self._stop_event.wait(max(0.0, next_deadline - time.monotonic())):
            self.run_tick()

            next_deadline += interval
            now = time.monotonic()
            if now > next_deadline:
                missed = int((now - next_deadline) // interval) + 1
                self.stats.skipped_ticks += missed
                next_deadline += missed * interval
                logger.warning(f"[{self.store.session_id}] Tick overran the interval; "
                               f"skipped {missed} tick(s)")

    def run_tick(self) -> List[SnapshotArtifact]:
        """Capture every selected source once.

        Returns:
            Artifacts written during this tick (empty when the tick was skipped)
        """
        if self._cancelled and threading.current_thread() is not self._thread:
            return []

        if not self._tick_lock.acquire(blocking=False):
            self.stats.skipped_ticks += 1
            logger.warning(f"[{self.store.session_id}] Previous tick still in progress; skipping")
            return []

        try:
            return self._capture_all()
        finally:
            self._tick_lock.release()

    def _capture_all(self) -> List[SnapshotArtifact]:
        self.stats.ticks += 1
        timestamp = format_timestamp(self.clock())

        try:
            sources = self.capture_source.list_sources()
        except Exception as e:
            self.stats.capture_failures += 1
            logger.error(f"[{self.store.session_id}] Failed to enumerate capture sources: {e}",
                         exc_info=True)
            return []

        artifacts = []
        for index in self.source_indices:
            if index < 0 or index >= len(sources):
                self.stats.unavailable += 1
                error = SourceUnavailableError(index, len(sources))
                logger.warning(f"[{self.store.session_id}] SourceUnavailable: {error}")
                continue

            artifact = self._capture_source(index, sources[index], timestamp)
            if artifact is not None:
                artifacts.append(artifact)

        return artifacts

    def _capture_source(self, index: int, source: SourceInfo, timestamp: str) -> Optional[SnapshotArtifact]:
        session_id = self.store.session_id
        number = index + 1

        try:
            frame = self.capture_source.capture_frame(source.id)
        except SourceUnavailableError as e:
            self.stats.unavailable += 1
            logger.warning(f"[{session_id}] SourceUnavailable: {e}")
            return None
        except CaptureFailureError as e:
            self.stats.capture_failures += 1
            logger.error(f"[{session_id}] CaptureFailure on monitor {number}: {e}")
            return None
        except Exception as e:
            self.stats.capture_failures += 1
            logger.error(f"[{session_id}] CaptureFailure on monitor {number}: {e}", exc_info=True)
            return None

        try:
            encoded = self.encoder.encode(frame, self.max_dimension, self.quality)
        except EncodeFailureError as e:
            self.stats.encode_failures += 1
            logger.error(f"[{session_id}] EncodeFailure on monitor {number}: {e}")
            return None
        except Exception as e:
            self.stats.encode_failures += 1
            logger.error(f"[{session_id}] EncodeFailure on monitor {number}: {e}", exc_info=True)
            return None

        try:
            artifact = self.store.write_snapshot(index, timestamp, encoded)
        except SessionStoreError as e:
            self.stats.write_failures += 1
            logger.error(f"[{session_id}] Snapshot for monitor {number} not written: {e}")
            return None

        self.stats.snapshots_written += 1
        self.stats.per_source[index] = self.stats.per_source.get(index, 0) + 1
        logger.info(f"Screenshot saved: {artifact.path}")
        return artifact
