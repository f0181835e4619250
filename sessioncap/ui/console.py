"""Rich console front end for capture sessions."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from ..models.events import SessionEvent
from ..services.session_controller import SESSION_TOPIC

logger = logging.getLogger(__name__)

EVENT_STYLES = {
    "started": ("🔴", "green"),
    "stopping": ("⏹️", "yellow"),
    "uploading": ("📤", "blue"),
    "stopped": ("✅", "green"),
}


class SessionConsole:
    """Console prompts, tables and lifecycle messages."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._subscribed = False

    def subscribe(self) -> None:
        """Print session lifecycle events as they are published."""
        if not self._subscribed:
            pub.subscribe(self.on_session_event, SESSION_TOPIC)
            self._subscribed = True

    def unsubscribe(self) -> None:
        if self._subscribed:
            pub.unsubscribe(self.on_session_event, SESSION_TOPIC)
            self._subscribed = False

    def on_session_event(self, event: SessionEvent) -> None:
        icon, style = EVENT_STYLES.get(event.event_type, ("•", "white"))
        session_id = event.metadata.get("session_id", "?")
        self.console.print(f"{icon} Session {session_id}: {event.event_type}", style=style)

    def print_sources(self, sources: List[Dict[str, Any]]) -> None:
        """List the monitors as ``n. name: WxH``."""
        if not sources:
            self.console.print("❌ No monitors detected", style="red")
            return

        self.console.print("Available monitors:", style="bold")
        for source in sources:
            self.console.print(f"  {source['number']}. {source['name']}: "
                               f"{source['width']}x{source['height']}")

    def prompt_session_arguments(self, sources: List[Dict[str, Any]]) -> Tuple[str, int, str]:
        """Ask for monitors, speaker count and bot id.

        Returns:
            (sources, speakers, bot_id) as accepted by ``ControlSurface.start_session``
        """
        self.print_sources(sources)
        selection = Prompt.ask(
            "Monitors to capture ([bold]all[/bold] or comma-separated numbers)",
            console=self.console,
            default="all",
        )
        speakers = IntPrompt.ask("Maximum number of speakers", console=self.console, default=1)
        while speakers < 1:
            self.console.print("Speaker count must be at least 1", style="red")
            speakers = IntPrompt.ask("Maximum number of speakers", console=self.console, default=1)

        bot_id = ""
        while not bot_id.strip():
            bot_id = Prompt.ask("Bot ID", console=self.console)
        return selection, speakers, bot_id.strip()

    def print_started(self, result: Dict[str, Any]) -> None:
        if not result.get("success"):
            self.print_error(result.get("error", "unknown error"))
            return

        monitors = ", ".join(str(number) for number in result["selected_sources"]) or "none (audio only)"
        self.console.print(Panel(
            f"Session: {result['session_id']}\n"
            f"Monitors: {monitors}\n"
            f"Folder: {result['storage_path']}",
            title="Recording",
            border_style="green",
        ))
        for warning in result.get("warnings", []):
            self.console.print(f"⚠️  {warning}", style="yellow")

    def print_stopped(self, result: Dict[str, Any]) -> None:
        if not result.get("success"):
            self.print_error(result.get("error", "unknown error"))
            return

        table = Table(title=f"Session {result['session_id']}")
        table.add_column("Item", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Folder", result["storage_path"])
        table.add_row("Duration", f"{result['duration_seconds']:.1f}s")
        table.add_row("Screenshots", str(result.get("snapshots_written", 0)))
        table.add_row("Audio bytes", str(result.get("audio_bytes", 0)))

        upload = result.get("upload")
        if upload:
            table.add_row("Image upload", self._describe_transfer(upload["images"]))
            table.add_row("Audio upload", self._describe_transfer(upload["audio"]))
        self.console.print(table)

    def print_sessions(self, sessions: List[Dict[str, Any]]) -> None:
        if not sessions:
            self.console.print("No sessions found", style="yellow")
            return

        table = Table(title="Sessions")
        table.add_column("Session ID", style="cyan")
        table.add_column("Screenshots", justify="right")
        table.add_column("Audio (bytes)", justify="right")
        table.add_column("Size (MB)", justify="right")
        for info in sessions:
            table.add_row(
                info["session_id"],
                str(info["snapshots"]),
                str(info["audio_bytes"]),
                f"{info['total_size_mb']:.2f}",
            )
        self.console.print(table)

    def print_error(self, message: str) -> None:
        self.console.print(f"❌ Error: {message}", style="red")

    @staticmethod
    def _describe_transfer(transfer: Dict[str, Any]) -> str:
        if not transfer["attempted"]:
            return "skipped"
        if transfer["succeeded"]:
            return f"ok ({transfer['file_count']} file(s), HTTP {transfer['status']})"
        return f"failed: {transfer['error']}"
