"""Abstract base classes for audio sources."""

from abc import ABC, abstractmethod


class AbstractAudioStream(ABC):
    """An open, continuously producing audio stream."""

    @abstractmethod
    def read(self) -> bytes:
        """Block until the next chunk of 16-bit PCM audio is available.

        Raises:
            AudioStreamFailureError: If the device stream failed
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Halt capture and release the device. Must be idempotent."""
        pass


class AbstractAudioSource(ABC):
    """Abstract base class for audio input devices."""

    @abstractmethod
    def open_stream(self, sample_rate: int, channels: int, chunk_size: int) -> AbstractAudioStream:
        """Open a continuous input stream.

        Args:
            sample_rate: Sample rate in Hz
            channels: Number of channels
            chunk_size: Frames per chunk returned by ``read()``

        Raises:
            AudioStreamFailureError: If the device cannot be opened
        """
        pass
