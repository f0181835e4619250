"""Main application entry point for Sessioncap."""

import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .config import SessionCapConfig
from .services import ControlSurface, SessionController, ShutdownHook
from .storage import list_sessions
from .ui import SessionConsole

logger = logging.getLogger(__name__)


class Server:
    """Runs one capture session from the command line."""

    def __init__(self,
                 config: SessionCapConfig,
                 console: Optional[SessionConsole] = None,
                 controller: Optional[SessionController] = None,
                 shutdown_hook: Optional[ShutdownHook] = None):
        self.config = config
        self.console = console or SessionConsole()
        self.controller = controller or SessionController(config)
        self.control = ControlSurface(self.controller)
        self.shutdown_hook = shutdown_hook or ShutdownHook(self.controller)

    def run(self,
            sources: Optional[str],
            speakers: Optional[int],
            bot_id: Optional[str],
            duration: Optional[float]) -> int:
        """Start a session, wait for Ctrl+C or ``duration``, then stop and upload.

        Missing arguments are asked for interactively.

        Returns:
            Process exit code
        """
        if sources is None or speakers is None or bot_id is None:
            prompted = self.console.prompt_session_arguments(self.control.list_sources())
            sources = prompted[0] if sources is None else sources
            speakers = prompted[1] if speakers is None else speakers
            bot_id = prompted[2] if bot_id is None else bot_id

        self.console.subscribe()
        self.shutdown_hook.install()
        try:
            started = self.control.start_session(sources, speakers, bot_id)
            self.console.print_started(started)
            if not started["success"]:
                return 1

            if duration is not None:
                self.console.console.print(f"Recording for {duration:g}s (Ctrl+C to stop early)")
            else:
                self.console.console.print("Recording... press Ctrl+C to stop and upload")
            self.shutdown_hook.wait(duration)

            stopped = self.control.stop_session()
            self.console.print_stopped(stopped)
            if not stopped["success"]:
                return 1
            return 0 if stopped.get("upload", {}).get("succeeded") else 2
        finally:
            self.shutdown_hook.run()
            self.shutdown_hook.uninstall()
            self.console.unsubscribe()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/sessioncap.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info(f"Sessioncap {__version__} starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sessioncap - record screenshots and audio, then upload them to a collector",
        epilog="Without --sources/--speakers/--bot-id the missing values are prompted for. "
               "Environment: SERVER_URL, SCREENSHOT_INTERVAL (ms)."
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--sources",
        type=str,
        help="Monitors to capture: 'all' or comma-separated numbers starting at 1"
    )

    parser.add_argument(
        "--speakers",
        type=int,
        help="Maximum number of speakers passed to the collector"
    )

    parser.add_argument(
        "--bot-id",
        type=str,
        help="Bot identifier sent with every upload"
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Stop automatically after this many seconds (default: wait for Ctrl+C)"
    )

    parser.add_argument(
        "--list-sources",
        action="store_true",
        help="List available monitors and exit"
    )

    parser.add_argument(
        "--list-sessions",
        action="store_true",
        help="List session folders under the storage root and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Sessioncap v{__version__}"
    )
    return parser


def main(argv=None) -> None:
    """Main entry point for Sessioncap."""
    args = build_parser().parse_args(argv)

    try:
        config = SessionCapConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
    console = SessionConsole()

    if args.list_sessions:
        console.print_sessions(list_sessions(config.get_storage_root()))
        return

    try:
        server = Server(config, console)
        if args.list_sources:
            console.print_sources(server.control.list_sources())
            return
        exit_code = server.run(args.sources, args.speakers, args.bot_id, args.duration)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        exit_code = 130
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
