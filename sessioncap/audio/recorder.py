"""Audio recorder appending a session's audio stream to one WAV artifact."""

import queue
import logging
import threading
from datetime import datetime
from typing import Optional

import numpy as np
from pubsub import pub

from ..models.audio import AudioStats
from ..models.events import AudioEvent
from ..storage.session_store import SessionStore
from .audio_pub import AudioPublisher, AUDIO_TOPIC
from .base import AbstractAudioSource
from .capture import AudioCapture

logger = logging.getLogger(__name__)

SAMPLE_WIDTH_BYTES = 2


class AudioRecorder:
    """Drive one audio stream for the lifetime of a session.

    Chunks flow from the capture thread over the ``audio.frame`` topic into
    an internal queue; a writer thread drains the queue and appends the
    chunks, in arrival order, to the session's WAV artifact. ``stop()``
    returns only after the writer has closed (and flushed) the file.
    """

    def __init__(self,
                 source: AbstractAudioSource,
                 store: SessionStore,
                 sample_rate: int = 44100,
                 channels: int = 1,
                 chunk_size: int = 1024,
                 topic: str = AUDIO_TOPIC):
        """Initialize audio recorder.

        Args:
            source: Audio source adapter
            store: Session store that owns the audio artifact
            sample_rate: Sample rate in Hz
            channels: Channel count
            chunk_size: Samples per chunk
            topic: Pub/sub topic carrying the audio events
        """
        self.store = store
        self.session_id = store.session_id
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.topic = topic

        self.publisher = AudioPublisher(topic)
        self.capture = AudioCapture(
            callback=self.publisher.publish_audio_event,
            source=source,
            session_id=self.session_id,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
        )

        self._queue: "queue.Queue[Optional[AudioEvent]]" = queue.Queue()
        self._writer_thread: Optional[threading.Thread] = None
        self._wave_file = None
        self._lock = threading.Lock()
        self._started = False
        self._stopping = False
        self._closed = False

        self.chunks_written = 0
        self.bytes_written = 0
        self.peak_level = 0.0
        self.stream_failed = False
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    @property
    def audio_path(self):
        return self.store.audio_path

    @property
    def is_recording(self) -> bool:
        return self._started and not self._closed

    def start(self) -> None:
        """Open the audio artifact and start capture.

        Raises:
            SessionStoreError: If the audio artifact cannot be opened
        """
        with self._lock:
            if self._started:
                logger.warning(f"[{self.session_id}] Audio recorder already started")
                return
            self._started = True

        self._wave_file = self.store.open_audio(self.sample_rate, self.channels, SAMPLE_WIDTH_BYTES)
        self.start_time = datetime.now()

        pub.subscribe(self.on_audio_event, self.topic)

        self._writer_thread = threading.Thread(target=self._write_loop, daemon=True)
        self._writer_thread.name = "AudioWriterThread"
        self._writer_thread.start()

        self.capture.start_recording()
        logger.info(f"[{self.session_id}] Audio recording started: {self.audio_path}")

    def on_audio_event(self, event: AudioEvent) -> None:
        """Queue an audio event for the writer thread."""
        if event.session_id != self.session_id or self._closed:
            return
        self._queue.put(event)

    def stop(self) -> None:
        """Halt capture, drain pending chunks and close the audio artifact.

        Safe to call more than once.
        """
        with self._lock:
            if not self._started or self._stopping:
                return
            self._stopping = True

        self.capture.stop_recording()

        try:
            pub.unsubscribe(self.on_audio_event, self.topic)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Error during unsubscribe: {e}")

        # Sentinel: everything the capture thread published is already queued
        self._queue.put(None)
        if self._writer_thread is not None:
            self._writer_thread.join()

        with self._lock:
            self._closed = True
        self.end_time = datetime.now()

        logger.info(f"[{self.session_id}] Audio saved: {self.audio_path} "
                    f"({self.chunks_written} chunks, {self.bytes_written} bytes)")

    def _write_loop(self) -> None:
        """Internal method: append queued chunks until the stream ends."""
        try:
            while True:
                event = self._queue.get()
                if event is None:
                    break

                if event.audio_data:
                    self._append(event.audio_data)

                if event.final:
                    if event.error:
                        self.stream_failed = True
                        logger.warning(f"[{self.session_id}] Audio stream ended early; "
                                       f"partial artifact kept at {self.audio_path}")
                    break
        finally:
            self._close_file()

    def _append(self, audio_data: bytes) -> None:
        if self._wave_file is None:
            return
        try:
            self._wave_file.writeframes(audio_data)
        except (OSError, ValueError) as e:
            self.stream_failed = True
            logger.error(f"[{self.session_id}] Failed to append audio to {self.audio_path}: {e}")
            self._close_file()
            return

        self.chunks_written += 1
        self.bytes_written += len(audio_data)

        usable = len(audio_data) - (len(audio_data) % SAMPLE_WIDTH_BYTES)
        if usable:
            samples = np.frombuffer(audio_data[:usable], dtype=np.int16)
            level = float(np.max(np.abs(samples.astype(np.int32)))) / 32768.0
            self.peak_level = max(self.peak_level, level)

    def _close_file(self) -> None:
        if self._wave_file is None:
            return
        wave_file, self._wave_file = self._wave_file, None
        try:
            wave_file.close()
        except (OSError, ValueError) as e:
            logger.error(f"[{self.session_id}] Failed to close audio artifact {self.audio_path}: {e}")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            end = self.end_time or datetime.now()
            duration = (end - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            channels=self.channels,
            chunk_size=self.chunk_size,
            total_chunks=self.chunks_written,
            bytes_written=self.bytes_written,
            peak_level=self.peak_level,
            stream_failed=self.stream_failed,
        )
