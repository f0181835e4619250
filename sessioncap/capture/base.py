"""Abstract base classes for capture sources and frame encoders."""

from abc import ABC, abstractmethod
from typing import List

from ..models.snapshot import SourceInfo, RawFrame


class AbstractCaptureSource(ABC):
    """Abstract base class for visual capture sources (one per display)."""

    @abstractmethod
    def list_sources(self) -> List[SourceInfo]:
        """Enumerate currently available sources.

        Returns:
            Ordered sequence of sources; position in the list is the
            zero-based source index used by sessions
        """
        pass

    @abstractmethod
    def capture_frame(self, source_id: int) -> RawFrame:
        """Capture one frame from a source.

        Args:
            source_id: ``SourceInfo.id`` of the source to capture

        Returns:
            Raw frame pixels

        Raises:
            CaptureUnavailableError: If the source vanished
            CaptureFailureError: If the capture itself failed
        """
        pass


class AbstractFrameEncoder(ABC):
    """Abstract base class for frame encoders."""

    @abstractmethod
    def encode(self, frame: RawFrame, max_dimension: int, quality: int) -> bytes:
        """Compress a raw frame into a storable image.

        Args:
            frame: Raw frame to encode
            max_dimension: Upper bound for both width and height
            quality: Lossy compression quality (1-95)

        Returns:
            Compressed image bytes

        Raises:
            EncodeFailureError: If the frame cannot be encoded
        """
        pass
