"""Process termination handling for a running session."""

import time
import atexit
import signal
import logging
import threading
from typing import Optional, Sequence

from ..models.session import Session
from .session_controller import SessionController

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHook:
    """Route process termination through ``SessionController.stop``.

    The signal handlers only set ``should_exit``; the main loop polls it
    through ``wait()`` and then calls ``run()``, which stops the session and
    uploads its artifacts. A second signal while the first is pending
    raises ``KeyboardInterrupt`` in the main thread. An ``atexit``
    handler covers interpreter exit without a signal.
    """

    def __init__(self,
                 controller: SessionController,
                 signals: Sequence[int] = DEFAULT_SIGNALS,
                 poll_interval: float = 0.1):
        self.controller = controller
        self.signals = tuple(signals)
        self.poll_interval = poll_interval
        self.should_exit = False
        self._previous_handlers = {}
        self._installed = False
        self._lock = threading.Lock()

    def install(self) -> None:
        """Register signal handlers (main thread only) and the exit handler."""
        if self._installed:
            return

        if threading.current_thread() is threading.main_thread():
            for signum in self.signals:
                self._previous_handlers[signum] = signal.getsignal(signum)
                signal.signal(signum, self._handle_signal)
        else:
            logger.warning("ShutdownHook installed off the main thread; signal handlers skipped")

        atexit.register(self.run)
        self._installed = True
        logger.debug("Shutdown hook installed")

    def uninstall(self) -> None:
        """Restore the previous signal handlers and drop the exit handler."""
        if not self._installed:
            return

        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        atexit.unregister(self.run)
        self._installed = False
        logger.debug("Shutdown hook uninstalled")

    def trigger(self) -> None:
        """Request shutdown as if a termination signal had arrived."""
        self.should_exit = True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is requested or ``timeout`` elapses.

        Returns:
            True if shutdown was requested
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.should_exit:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(self.poll_interval)
        return True

    def run(self) -> Optional[Session]:
        """Stop the running session, if any, and upload it."""
        with self._lock:
            session = self.controller.shutdown()
        if session is not None:
            logger.info(f"[{session.session_id}] Session stopped by shutdown hook")
        return session

    def _handle_signal(self, signum, frame) -> None:
        name = signal.Signals(signum).name
        if self.should_exit:
            logger.warning(f"Received {name} again; forcing exit")
            raise KeyboardInterrupt
        logger.warning(f"Received {name}; stopping session")
        self.should_exit = True
