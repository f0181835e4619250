"""Local session storage."""

from .session_store import SessionStore, list_sessions

__all__ = [
    "SessionStore",
    "list_sessions",
]
