"""Exception types raised by the capture session components."""


class SessionCapError(Exception):
    """Base class for all sessioncap errors."""


class SessionStateError(SessionCapError):
    """A command was issued in a state that does not allow it."""


class AlreadyRunningError(SessionStateError):
    """Raised by ``start`` while a session is running, stopping or uploading."""


class NotRunningError(SessionStateError):
    """Raised by ``stop`` when no session is running."""


class SourceUnavailableError(SessionCapError):
    """A configured capture source index is not in the current enumeration."""

    def __init__(self, source_index: int, available: int):
        self.source_index = source_index
        self.available = available
        super().__init__(
            f"Monitor {source_index + 1} is not available ({available} sources enumerated)"
        )


class CaptureUnavailableError(SourceUnavailableError):
    """The source vanished between enumeration and capture."""


class CaptureFailureError(SessionCapError):
    """Capturing one frame failed."""


class EncodeFailureError(SessionCapError):
    """Encoding one frame failed."""


class AudioStreamFailureError(SessionCapError):
    """The audio device stream failed."""


class UploadFailureError(SessionCapError):
    """A transfer to the remote collector failed."""

    def __init__(self, message: str, status: int = None):
        self.status = status
        super().__init__(message)


class SessionStoreError(SessionCapError):
    """The session directory could not be created or written."""
