"""Microphone input via PyAudio."""

import logging
from typing import Optional

import pyaudio

from ..errors import AudioStreamFailureError
from .base import AbstractAudioSource, AbstractAudioStream

logger = logging.getLogger(__name__)


class PyAudioStream(AbstractAudioStream):
    """Input stream opened through PyAudio."""

    def __init__(self, pyaudio_instance: pyaudio.PyAudio, stream, chunk_size: int):
        self.pyaudio_instance = pyaudio_instance
        self.stream = stream
        self.chunk_size = chunk_size
        self._closed = False

    def read(self) -> bytes:
        try:
            return self.stream.read(self.chunk_size, exception_on_overflow=False)
        except (IOError, OSError) as e:
            raise AudioStreamFailureError(f"Audio device read failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.stream.stop_stream()
            self.stream.close()
        finally:
            self.pyaudio_instance.terminate()


class PyAudioSource(AbstractAudioSource):
    """Microphone input via PyAudio (16-bit PCM)."""

    def __init__(self, input_device_index: Optional[int] = None):
        self.input_device_index = input_device_index
        self.format = pyaudio.paInt16

    def open_stream(self, sample_rate: int, channels: int, chunk_size: int) -> PyAudioStream:
        pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = pyaudio_instance.open(
                format=self.format,
                channels=channels,
                rate=sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=chunk_size,
                stream_callback=None
            )
        except (IOError, OSError) as e:
            pyaudio_instance.terminate()
            raise AudioStreamFailureError(f"Cannot open audio input: {e}") from e

        logger.info(f"Audio stream opened: {sample_rate}Hz, {channels} channel(s), "
                    f"{chunk_size} samples/chunk")
        return PyAudioStream(pyaudio_instance, stream, chunk_size)

    def check_microphone_available(self) -> bool:
        """Check if an input device is available for recording."""
        pyaudio_instance = pyaudio.PyAudio()
        try:
            pyaudio_instance.get_default_input_device_info()
            return True
        except (IOError, OSError) as e:
            logger.debug(f"Microphone not available: {e}")
            return False
        finally:
            pyaudio_instance.terminate()
