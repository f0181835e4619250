"""Upload coordinator delivering a stopped session to the collector."""

import logging
import threading

from ..errors import UploadFailureError
from ..models.session import Session
from ..models.upload import UploadReport
from ..storage.session_store import SessionStore
from .collector_client import CollectorClient

logger = logging.getLogger(__name__)


class UploadCoordinator:
    """Transmit a session's artifacts once, in two transfers.

    1. Image batch: every snapshot in one request tagged with bot and
       session id (sent even when the batch is empty).
    2. Audio: the single audio artifact with the speaker count, sent only
       when the artifact holds audio.

    Transfer failures are logged and recorded in the returned report; they
    never propagate. There is no retry; the artifacts stay on disk.
    """

    def __init__(self, client: CollectorClient):
        """Initialize upload coordinator.

        Args:
            client: Collector client (anything with ``upload_images`` and ``upload_audio``)
        """
        self.client = client
        self._uploaded = set()
        self._lock = threading.Lock()

    def upload_session(self, session: Session, store: SessionStore) -> UploadReport:
        """Deliver one stopped session.

        Args:
            session: Session being delivered
            store: Sealed store holding the session's artifacts

        Returns:
            UploadReport describing both transfers
        """
        report = UploadReport(session_id=session.session_id)

        with self._lock:
            if session.session_id in self._uploaded:
                logger.warning(f"[{session.session_id}] Session already uploaded; ignoring")
                return report
            self._uploaded.add(session.session_id)

        self._upload_images(session, store, report)
        self._upload_audio(session, store, report)

        logger.info(f"[{session.session_id}] Upload finished: images="
                    f"{'ok' if report.images.succeeded else 'failed'}, audio="
                    f"{'ok' if report.audio.succeeded else ('skipped' if not report.audio.attempted else 'failed')}")
        return report

    def _upload_images(self, session: Session, store: SessionStore, report: UploadReport) -> None:
        paths = store.snapshot_paths()
        result = report.images
        result.attempted = True
        result.file_count = len(paths)

        logger.info(f"[{session.session_id}] Uploading {len(paths)} screenshot(s) from {store.path}")
        try:
            result.status = self.client.upload_images(
                bot_id=session.bot_id,
                session_id=session.session_id,
                current_time=session.timestamp,
                paths=paths,
            )
            result.succeeded = True
        except UploadFailureError as e:
            result.status = e.status
            result.error = str(e)
            logger.error(f"[{session.session_id}] UploadFailure (images, {store.path}): {e}")
        except Exception as e:
            result.error = str(e)
            logger.error(f"[{session.session_id}] UploadFailure (images, {store.path}): {e}", exc_info=True)

    def _upload_audio(self, session: Session, store: SessionStore, report: UploadReport) -> None:
        result = report.audio
        if not store.has_audio():
            logger.warning(f"[{session.session_id}] No audio captured at {store.audio_path}; "
                           f"skipping audio upload")
            return

        result.attempted = True
        result.file_count = 1

        logger.info(f"[{session.session_id}] Uploading audio {store.audio_path}")
        try:
            result.status = self.client.upload_audio(
                bot_id=session.bot_id,
                session_id=session.session_id,
                max_speakers=session.max_speakers,
                path=store.audio_path,
            )
            result.succeeded = True
        except UploadFailureError as e:
            result.status = e.status
            result.error = str(e)
            logger.error(f"[{session.session_id}] UploadFailure (audio, {store.audio_path}): {e}")
        except Exception as e:
            result.error = str(e)
            logger.error(f"[{session.session_id}] UploadFailure (audio, {store.audio_path}): {e}", exc_info=True)
