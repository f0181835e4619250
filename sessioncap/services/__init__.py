"""Services layer for session control."""

from .session_controller import SessionController, SESSION_TOPIC
from .control_surface import ControlSurface
from .shutdown import ShutdownHook

__all__ = [
    "SessionController",
    "SESSION_TOPIC",
    "ControlSurface",
    "ShutdownHook"
]
