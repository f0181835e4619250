"""Audio capture module with continuous recording and event publishing."""

import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime

from ..errors import AudioStreamFailureError
from ..models.events import AudioEvent
from .base import AbstractAudioSource, AbstractAudioStream


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous audio capture publishing one event per chunk.

    A background thread reads chunks from the stream opened on the audio
    source and hands each one to ``callback`` as an ``AudioEvent``. The
    last event of a stream has ``final=True``; when the stream ended on a
    device failure it also carries ``error``.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        source: AbstractAudioSource,
        session_id: str,
        sample_rate: int = 44100,
        chunk_size: int = 1024,
        channels: int = 1,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives every AudioEvent, in capture order
            source: Audio source adapter
            session_id: Session the captured audio belongs to
            sample_rate: Audio sample rate
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
        """
        self.audio_event_callback = callback
        self.source = source
        self.session_id = session_id
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.stream_error: Optional[str] = None

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info(f"[{self.session_id}] Starting audio recording")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self, timeout: float = 5.0) -> None:
        """Stop recording and wait for the final event to be published."""
        if not self.is_recording:
            logger.debug(f"[{self.session_id}] No recording in progress")
            return

        logger.info(f"[{self.session_id}] Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=timeout)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"[{self.session_id}] Recording stopped. Total chunks: {self.total_chunks}")

    def __publish_audio_event(self, audio_chunk: bytes, final: bool = False) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            session_id=self.session_id,
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final,
            error=self.stream_error if final else None,
        )
        self.audio_event_callback(audio_event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream: Optional[AbstractAudioStream] = None
        try:
            stream = self.source.open_stream(self.sample_rate, self.channels, self.chunk_size)
            while not self.stop_event.is_set():
                audio_chunk = stream.read()
                self.total_chunks += 1
                self.__publish_audio_event(audio_chunk)
        except AudioStreamFailureError as e:
            self.stream_error = str(e)
            logger.error(f"[{self.session_id}] AudioStreamFailure: {e}; "
                         f"keeping {self.total_chunks} chunks captured so far")
        except Exception as e:
            self.stream_error = str(e)
            logger.error(f"[{self.session_id}] AudioStreamFailure: {e}", exc_info=True)
        finally:
            if stream is not None:
                try:
                    stream.close()
                except Exception as e:
                    logger.warning(f"[{self.session_id}] Error closing audio stream: {e}")
            # Publish final event, so consumers know we are done
            self.__publish_audio_event(b"", final=True)
