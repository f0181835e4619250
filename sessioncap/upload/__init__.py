"""Delivery of session artifacts to the remote collector."""

from .collector_client import CollectorClient
from .coordinator import UploadCoordinator

__all__ = [
    "CollectorClient",
    "UploadCoordinator",
]
