"""Pytest configuration and fixtures for Sessioncap tests."""

import pytest
import tempfile
import threading
import time
import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
from pubsub import pub

from sessioncap.audio.base import AbstractAudioSource, AbstractAudioStream
from sessioncap.capture.base import AbstractCaptureSource, AbstractFrameEncoder
from sessioncap.config import SessionCapConfig
from sessioncap.errors import (
    AudioStreamFailureError,
    CaptureFailureError,
    CaptureUnavailableError,
    EncodeFailureError,
    UploadFailureError,
)
from sessioncap.models.snapshot import RawFrame, SourceInfo
from sessioncap.services.session_controller import SessionController
from sessioncap.upload.coordinator import UploadCoordinator


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without devices or network")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "hardware: tests requiring a real display and microphone")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop listeners left behind by a previous test."""
    yield
    pub.unsubAll()


class FakeCaptureSource(AbstractCaptureSource):
    """Capture source with configurable displays and failures."""

    def __init__(self, sizes=((64, 48), (32, 24))):
        self.sizes = list(sizes)
        self.failing_ids = set()
        self.enumerate_error: Optional[Exception] = None
        self.capture_delay = 0.0
        self.captured: List[int] = []
        self._lock = threading.Lock()

    def list_sources(self) -> List[SourceInfo]:
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return [
            SourceInfo(id=number, display_name=f"Fake {number}", width=width, height=height)
            for number, (width, height) in enumerate(self.sizes, start=1)
        ]

    def capture_frame(self, source_id: int) -> RawFrame:
        if self.capture_delay:
            time.sleep(self.capture_delay)
        if source_id < 1 or source_id > len(self.sizes):
            raise CaptureUnavailableError(source_id - 1, len(self.sizes))
        if source_id in self.failing_ids:
            raise CaptureFailureError(f"fake capture failure on {source_id}")

        with self._lock:
            self.captured.append(source_id)
        width, height = self.sizes[source_id - 1]
        return RawFrame(data=bytes([source_id]) * (width * height * 3), width=width, height=height)


class FakeEncoder(AbstractFrameEncoder):
    """Encoder returning a short marker instead of a real JPEG."""

    def __init__(self):
        self.fail = False
        self.calls = 0

    def encode(self, frame: RawFrame, max_dimension: int, quality: int) -> bytes:
        self.calls += 1
        if self.fail:
            raise EncodeFailureError("fake encode failure")
        return b"\xff\xd8" + f"{frame.width}x{frame.height}q{quality}".encode() + b"\xff\xd9"


class FakeAudioStream(AbstractAudioStream):
    """Stream producing a fixed chunk every ``chunk_seconds``."""

    def __init__(self, chunk: bytes, chunk_seconds: float, fail_after: Optional[int] = None):
        self.chunk = chunk
        self.chunk_seconds = chunk_seconds
        self.fail_after = fail_after
        self.reads = 0
        self.close_calls = 0

    def read(self) -> bytes:
        if self.fail_after is not None and self.reads >= self.fail_after:
            raise AudioStreamFailureError("fake device unplugged")
        time.sleep(self.chunk_seconds)
        self.reads += 1
        return self.chunk

    def close(self) -> None:
        self.close_calls += 1


class FakeAudioSource(AbstractAudioSource):
    """Audio source handing out FakeAudioStreams."""

    def __init__(self, chunk: bytes, chunk_seconds: float = 0.005):
        self.chunk = chunk
        self.chunk_seconds = chunk_seconds
        self.fail_after: Optional[int] = None
        self.open_error: Optional[Exception] = None
        self.streams: List[FakeAudioStream] = []

    def open_stream(self, sample_rate: int, channels: int, chunk_size: int) -> FakeAudioStream:
        if self.open_error is not None:
            raise self.open_error
        stream = FakeAudioStream(self.chunk, self.chunk_seconds, self.fail_after)
        self.streams.append(stream)
        return stream


class RecordingCollector:
    """Collector client double recording every request."""

    def __init__(self):
        self.image_calls = []
        self.audio_calls = []
        self.fail_images = False
        self.fail_audio = False

    def upload_images(self, bot_id, session_id, current_time, paths):
        self.image_calls.append({
            "bot_id": bot_id,
            "session_id": session_id,
            "current_time": current_time,
            "files": [Path(p).name for p in paths],
        })
        if self.fail_images:
            raise UploadFailureError("collector returned 500", status=500)
        return 200

    def upload_audio(self, bot_id, session_id, max_speakers, path):
        self.audio_calls.append({
            "bot_id": bot_id,
            "session_id": session_id,
            "max_speakers": max_speakers,
            "file": Path(path).name,
            "size": Path(path).stat().st_size,
        })
        if self.fail_audio:
            raise UploadFailureError("connection refused")
        return 200


@pytest.fixture
def temp_storage_root():
    """Create temporary directory for session folders."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_audio_chunk():
    """Generate a 256-sample 16-bit sine wave chunk."""
    sample_rate = 8000
    t = np.arange(256) / sample_rate
    wave_data = np.sin(2 * np.pi * 440 * t) * 0.5
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def capture_source():
    return FakeCaptureSource()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def audio_source(sample_audio_chunk):
    return FakeAudioSource(sample_audio_chunk)


@pytest.fixture
def collector():
    return RecordingCollector()


@pytest.fixture
def test_config(temp_storage_root):
    """Configuration with a short interval and no environment overrides."""
    config = SessionCapConfig(environ={})
    config.set('storage.root_directory', str(temp_storage_root))
    config.set('capture.interval_ms', 100)
    config.set('audio.sample_rate', 8000)
    config.set('audio.chunk_size', 256)
    return config


@pytest.fixture
def controller(test_config, capture_source, encoder, audio_source, collector):
    """SessionController wired to fakes."""
    controller = SessionController(
        test_config,
        capture_source=capture_source,
        encoder=encoder,
        audio_source=audio_source,
        uploader=UploadCoordinator(collector),
    )
    yield controller
    controller.shutdown()
