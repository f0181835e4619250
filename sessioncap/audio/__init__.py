"""Audio capture and recording module."""

from .base import AbstractAudioSource, AbstractAudioStream
from .audio_pub import AudioPublisher, AUDIO_TOPIC
from .recorder import AudioRecorder

__all__ = [
    'AbstractAudioSource',
    'AbstractAudioStream',
    'AudioPublisher',
    'AUDIO_TOPIC',
    'AudioRecorder',
]
