"""Control surface translating user commands into controller calls."""

import logging
from typing import Dict, Any, List

from pydantic import ValidationError

from ..errors import SessionCapError
from ..models.control import StartSessionRequest
from .session_controller import SessionController

logger = logging.getLogger(__name__)


class ControlSurface:
    """High-level API used by the console and the command line.

    Every command returns a plain dict with a ``success`` flag; failures
    carry an ``error`` message instead of raising.
    """

    def __init__(self, controller: SessionController):
        """Initialize control surface.

        Args:
            controller: Session controller receiving the commands
        """
        self.controller = controller

    def list_sources(self) -> List[Dict[str, Any]]:
        """Describe the capture sources, numbered from 1."""
        return [
            {
                "number": number,
                "name": source.display_name,
                "width": source.width,
                "height": source.height,
            }
            for number, source in enumerate(self.controller.list_sources(), start=1)
        ]

    def start_session(self, sources: str = "all", speakers: int = 1, bot_id: str = "") -> Dict[str, Any]:
        """Start a capture session.

        Args:
            sources: "all" or comma-separated 1-based monitor numbers
            speakers: Maximum number of speakers, passed to the collector
            bot_id: Caller-supplied identifier

        Returns:
            Dict with session details and success status
        """
        try:
            request = StartSessionRequest(sources=sources, speakers=speakers, bot_id=bot_id)
        except ValidationError as e:
            message = "; ".join(error["msg"] for error in e.errors())
            logger.warning(f"Rejected start request: {message}")
            return {
                "success": False,
                "error": message
            }

        available = self.controller.list_sources()
        indices = request.resolve_sources(len(available))

        try:
            session = self.controller.start(indices, request.speakers, request.bot_id)
        except SessionCapError as e:
            logger.error(f"Error starting session: {e}")
            return {
                "success": False,
                "error": str(e)
            }

        return {
            "success": True,
            "session_id": session.session_id,
            "storage_path": str(session.storage_root),
            "selected_sources": [index + 1 for index in session.selected_sources],
            "warnings": list(session.warnings),
        }

    def stop_session(self) -> Dict[str, Any]:
        """Stop the running session and upload its artifacts.

        Returns:
            Dict with final session statistics and the upload outcome
        """
        try:
            session = self.controller.stop()
        except SessionCapError as e:
            logger.error(f"Error stopping session: {e}")
            return {
                "success": False,
                "error": str(e)
            }

        result: Dict[str, Any] = {
            "success": True,
            "session_id": session.session_id,
            "storage_path": str(session.storage_root),
            "duration_seconds": session.duration_seconds,
            "state": session.state.value,
        }
        if session.snapshot_stats is not None:
            result["snapshots_written"] = session.snapshot_stats.snapshots_written
        if session.audio_stats is not None:
            result["audio_bytes"] = session.audio_stats.bytes_written
        report = session.upload_report
        if report is not None:
            result["upload"] = {
                "succeeded": report.succeeded,
                "images": {
                    "attempted": report.images.attempted,
                    "succeeded": report.images.succeeded,
                    "status": report.images.status,
                    "file_count": report.images.file_count,
                    "error": report.images.error,
                },
                "audio": {
                    "attempted": report.audio.attempted,
                    "succeeded": report.audio.succeeded,
                    "status": report.audio.status,
                    "file_count": report.audio.file_count,
                    "error": report.audio.error,
                },
            }
        return result

    def get_status(self) -> Dict[str, Any]:
        return self.controller.get_status()
