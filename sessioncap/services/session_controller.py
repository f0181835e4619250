"""Session controller owning the capture session lifecycle."""

import uuid
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Any, List, Optional

from pubsub import pub

from ..audio.base import AbstractAudioSource
from ..audio.recorder import AudioRecorder
from ..capture.base import AbstractCaptureSource, AbstractFrameEncoder
from ..capture.snapshot_producer import SnapshotProducer
from ..config import SessionCapConfig
from ..errors import AlreadyRunningError, NotRunningError, SessionStoreError
from ..models.events import SessionEvent
from ..models.session import Session, SessionState
from ..models.snapshot import SourceInfo
from ..storage.session_store import SessionStore
from ..upload.coordinator import UploadCoordinator

logger = logging.getLogger(__name__)

SESSION_TOPIC = "session.lifecycle"

ACTIVE_STATES = (SessionState.RUNNING, SessionState.STOPPING, SessionState.UPLOADING)


class SessionController:
    """State machine for capture sessions: IDLE -> RUNNING -> STOPPING -> UPLOADING -> STOPPED.

    At most one session is live at a time. ``start`` and ``stop`` are
    serialized by a command lock; ``stop`` commits STOPPING under the lock
    and performs the shutdown and upload outside it, so a concurrent
    ``start`` during shutdown is rejected instead of waiting.

    The collaborators default to the real adapters (mss, Pillow, PyAudio
    and the aiohttp collector client) built from the configuration.
    """

    def __init__(self,
                 config: SessionCapConfig,
                 capture_source: Optional[AbstractCaptureSource] = None,
                 encoder: Optional[AbstractFrameEncoder] = None,
                 audio_source: Optional[AbstractAudioSource] = None,
                 uploader: Optional[UploadCoordinator] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """Initialize session controller.

        Args:
            config: Application configuration
            capture_source: Capture source adapter (default: mss)
            encoder: Frame encoder adapter (default: Pillow JPEG)
            audio_source: Audio source adapter (default: PyAudio)
            uploader: Upload coordinator (default: aiohttp collector client)
            clock: Wall clock used for session ids
        """
        self.config = config
        self.clock = clock

        if capture_source is None:
            from ..capture.mss_source import MssCaptureSource
            capture_source = MssCaptureSource()
        if encoder is None:
            from ..capture.encoder import JpegFrameEncoder
            encoder = JpegFrameEncoder()
        if audio_source is None:
            from ..audio.pyaudio_source import PyAudioSource
            audio_source = PyAudioSource()
        if uploader is None:
            from ..upload.collector_client import CollectorClient
            uploader = UploadCoordinator(CollectorClient(
                config.get_collector_url(),
                timeout_seconds=float(config.get('collector.timeout_seconds', 60)),
            ))

        self.capture_source = capture_source
        self.encoder = encoder
        self.audio_source = audio_source
        self.uploader = uploader

        self._command_lock = threading.Lock()
        self._session: Optional[Session] = None
        self._store: Optional[SessionStore] = None
        self._producer: Optional[SnapshotProducer] = None
        self._recorder: Optional[AudioRecorder] = None

        logger.info("SessionController initialized")

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session else SessionState.IDLE

    @property
    def session(self) -> Optional[Session]:
        """The current session, or the last one once it reached STOPPED."""
        return self._session

    @property
    def store(self) -> Optional[SessionStore]:
        return self._store

    def list_sources(self) -> List[SourceInfo]:
        """Enumerate capture sources; enumeration failures yield an empty list."""
        try:
            return self.capture_source.list_sources()
        except Exception as e:
            logger.error(f"Failed to enumerate capture sources: {e}", exc_info=True)
            return []

    def start(self, sources: List[int], max_speakers: int, bot_id: str) -> Session:
        """Start a new session.

        Args:
            sources: Zero-based indices of the sources to capture
            max_speakers: Speaker count passed through to the collector
            bot_id: Caller-supplied identifier

        Returns:
            The running Session

        Raises:
            AlreadyRunningError: If a session is running, stopping or uploading
            SessionStoreError: If the session directory cannot be created
            ValueError: If ``max_speakers`` is not positive
        """
        with self._command_lock:
            if self.state in ACTIVE_STATES:
                raise AlreadyRunningError(
                    f"Session {self._session.session_id} is {self.state.value}; stop it first")
            if max_speakers < 1:
                raise ValueError(f"max_speakers must be >= 1, got {max_speakers}")

            selected = list(dict.fromkeys(sources))
            available = self.list_sources()
            warnings = []
            for index in selected:
                if index < 0 or index >= len(available):
                    message = f"Monitor {index + 1} is not available ({len(available)} sources enumerated)"
                    warnings.append(message)
                    logger.warning(f"SourceUnavailable at session start: {message}")
            if not selected:
                message = "No capture sources selected; recording audio only"
                warnings.append(message)
                logger.warning(f"SourceUnavailable at session start: {message}")

            created_at = self.clock()
            store = SessionStore.create(self.config.get_storage_root(), created_at)

            session = Session(
                session_id=store.session_id,
                bot_id=bot_id,
                max_speakers=max_speakers,
                selected_sources=selected,
                storage_root=store.path,
                created_at=created_at,
                warnings=warnings,
            )

            producer = SnapshotProducer(
                capture_source=self.capture_source,
                encoder=self.encoder,
                store=store,
                source_indices=selected,
                interval_ms=self.config.get_snapshot_interval_ms(),
                max_dimension=int(self.config.get('capture.max_dimension', 800)),
                quality=int(self.config.get('capture.jpeg_quality', 80)),
            )
            recorder = AudioRecorder(
                source=self.audio_source,
                store=store,
                sample_rate=int(self.config.get('audio.sample_rate', 44100)),
                channels=int(self.config.get('audio.channels', 1)),
                chunk_size=int(self.config.get('audio.chunk_size', 1024)),
            )

            self._session = session
            self._store = store
            self._producer = producer
            self._recorder = recorder
            session.state = SessionState.RUNNING

            try:
                recorder.start()
            except SessionStoreError as e:
                logger.error(f"[{session.session_id}] AudioStreamFailure: cannot open audio artifact: {e}")
            producer.start()

            logger.info(f"[{session.session_id}] Session started: bot_id={bot_id}, "
                        f"max_speakers={max_speakers}, monitors={[i + 1 for i in selected]}, "
                        f"folder={store.path}")

        self._publish(session, "started")
        return session

    def stop(self) -> Session:
        """Stop the running session, upload its artifacts and reach STOPPED.

        Returns only after the upload attempt has finished. Upload failures
        are recorded on ``session.upload_report`` and do not raise.

        Returns:
            The stopped Session

        Raises:
            NotRunningError: If no session is running
        """
        with self._command_lock:
            if self.state != SessionState.RUNNING:
                raise NotRunningError(f"No running session (state: {self.state.value})")
            session = self._session
            store = self._store
            producer = self._producer
            recorder = self._recorder
            session.state = SessionState.STOPPING

        logger.info(f"[{session.session_id}] Stopping session")
        self._publish(session, "stopping")

        try:
            producer.cancel()
            recorder.stop()
            store.seal()

            session.snapshot_stats = producer.stats
            session.audio_stats = recorder.get_recording_stats()

            with self._command_lock:
                session.state = SessionState.UPLOADING
            self._publish(session, "uploading")

            session.upload_report = self.uploader.upload_session(session, store)
        finally:
            with self._command_lock:
                session.stopped_at = self.clock()
                session.state = SessionState.STOPPED
                self._producer = None
                self._recorder = None

        logger.info(f"[{session.session_id}] Session stopped after {session.duration_seconds:.1f}s")
        self._publish(session, "stopped")
        return session

    def shutdown(self) -> Optional[Session]:
        """Stop the running session if there is one; used by termination hooks."""
        if self.state != SessionState.RUNNING:
            logger.debug(f"Shutdown requested with no running session (state: {self.state.value})")
            return None
        try:
            return self.stop()
        except NotRunningError:
            return None

    def get_status(self) -> Dict[str, Any]:
        """Get a snapshot of the controller and current session status."""
        session = self._session
        status: Dict[str, Any] = {"state": self.state.value}
        if session is None:
            return status

        status.update({
            "session_id": session.session_id,
            "bot_id": session.bot_id,
            "max_speakers": session.max_speakers,
            "monitors": [i + 1 for i in session.selected_sources],
            "folder": str(session.storage_root),
            "duration_seconds": session.duration_seconds,
        })

        producer = self._producer
        if producer is not None:
            status["snapshots_written"] = producer.stats.snapshots_written
        elif session.snapshot_stats is not None:
            status["snapshots_written"] = session.snapshot_stats.snapshots_written

        recorder = self._recorder
        audio_stats = recorder.get_recording_stats() if recorder is not None else session.audio_stats
        if audio_stats is not None:
            status["audio_bytes"] = audio_stats.bytes_written
            status["peak_level"] = audio_stats.peak_level
        return status

    def _publish(self, session: Session, event_type: str) -> None:
        event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            metadata={
                "session_id": session.session_id,
                "state": session.state.value,
                "folder": str(session.storage_root),
            },
        )
        try:
            pub.sendMessage(SESSION_TOPIC, event=event)
        except Exception as e:
            logger.warning(f"[{session.session_id}] Session event listener failed: {e}", exc_info=True)
