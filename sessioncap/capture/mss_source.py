"""Display capture via the mss screenshot library."""

import logging
from typing import List

import mss
import mss.exception

from ..errors import CaptureFailureError, CaptureUnavailableError
from ..models.snapshot import SourceInfo, RawFrame
from .base import AbstractCaptureSource

logger = logging.getLogger(__name__)


class MssCaptureSource(AbstractCaptureSource):
    """Capture source backed by ``mss``.

    ``mss`` reports the virtual screen spanning every display at index 0
    and the individual displays from index 1; only the individual displays
    are exposed. A fresh ``mss`` instance is used per call because the
    handle is not shareable across threads on every platform.
    """

    def list_sources(self) -> List[SourceInfo]:
        with mss.mss() as sct:
            monitors = sct.monitors[1:]

        return [
            SourceInfo(
                id=number,
                display_name=f"Display {number}",
                width=monitor["width"],
                height=monitor["height"],
            )
            for number, monitor in enumerate(monitors, start=1)
        ]

    def capture_frame(self, source_id: int) -> RawFrame:
        try:
            with mss.mss() as sct:
                monitors = sct.monitors
                if source_id < 1 or source_id >= len(monitors):
                    raise CaptureUnavailableError(source_id - 1, len(monitors) - 1)
                shot = sct.grab(monitors[source_id])
        except mss.exception.ScreenShotError as e:
            raise CaptureFailureError(f"Failed to capture display {source_id}: {e}") from e

        return RawFrame(data=shot.rgb, width=shot.width, height=shot.height, mode="RGB")
