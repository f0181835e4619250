"""Visual capture: source adapters, frame encoding and the snapshot producer."""

from .base import AbstractCaptureSource, AbstractFrameEncoder
from .snapshot_producer import SnapshotProducer

__all__ = [
    'AbstractCaptureSource',
    'AbstractFrameEncoder',
    'SnapshotProducer',
]
