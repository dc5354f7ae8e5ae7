"""Terminal screen for answering a prompt by voice or by typing."""

import asyncio
import time
import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..models.events import AudioLevelEvent, PhaseChangeEvent
from ..models.session import RecordingPhase
from ..models.ui import Notification
from ..services.voice_input import VoiceInputController
from .keyboard_input import ENTER, KeyboardInputHandler

logger = logging.getLogger(__name__)


LEVEL_REDRAW_INTERVAL = 0.2  # seconds between meter redraws


class VoiceInputScreen:
    """Renders a VoiceInputController with rich and maps keys onto its actions."""

    def __init__(self, controller: VoiceInputController, console: Optional[Console] = None):
        self.controller = controller
        self.console = console or Console()
        self.submitted_text: Optional[str] = None
        self.last_notification: Optional[Notification] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._done: Optional[asyncio.Event] = None
        self._keyboard: Optional[KeyboardInputHandler] = None
        self._typing_task: Optional[asyncio.Task] = None
        self._last_level_redraw = 0.0

        pub.subscribe(self.on_phase_change, controller.publisher.phase_topic)
        pub.subscribe(self.on_level, controller.level_publisher.topic)
        pub.subscribe(self.on_notification, controller.notifier.topic)
        pub.subscribe(self.on_submitted, controller.publisher.submitted_topic)

    async def run(self, start_typing: bool = False) -> Optional[str]:
        """Show the screen until an answer is submitted or the user quits.

        Returns:
            The submitted text, or None if the user quit
        """
        self._loop = asyncio.get_running_loop()
        self._done = asyncio.Event()
        try:
            if start_typing:
                self._begin_typing()
            else:
                self._start_keyboard()
                self.controller.mount()
            self.render()
            await self._done.wait()
        finally:
            self._stop_keyboard()
            if self._typing_task is not None and not self._typing_task.done():
                self._typing_task.cancel()
            self.controller.close()
            self._unsubscribe()
        return self.submitted_text

    # Pub/sub listeners

    def on_phase_change(self, event: PhaseChangeEvent) -> None:
        self.render()

    def on_level(self, event: AudioLevelEvent) -> None:
        now = time.monotonic()
        if now - self._last_level_redraw >= LEVEL_REDRAW_INTERVAL:
            self._last_level_redraw = now
            self.render()

    def on_notification(self, notification: Notification) -> None:
        self.last_notification = notification
        self.render()

    def on_submitted(self, text: str) -> None:
        self.submitted_text = text
        self._finish()

    # Keys

    def handle_key(self, key: str) -> None:
        """Apply one command key. Runs on the event loop."""
        controller = self.controller
        if key == "q":
            self._finish()
        elif key == "m":
            controller.enable_microphone()
        elif key == "r":
            controller.start_recording()
        elif key == "s":
            controller.stop_recording()
        elif key == "a":
            controller.retry()
        elif key == ENTER:
            controller.submit()
        elif key == "t":
            self._begin_typing()
        elif key == "p":
            controller.play_prompt()
        self.render()

    def _on_key_from_thread(self, key: str) -> bool:
        if self._loop is None or self._loop.is_closed():
            return False
        self._loop.call_soon_threadsafe(self.handle_key, key)
        # Typing needs the terminal back in line mode
        return key not in ("q", "t")

    # Typing fallback

    def _begin_typing(self) -> None:
        self.controller.switch_to_typing()
        self._stop_keyboard()
        if self._typing_task is None or self._typing_task.done():
            self._typing_task = asyncio.get_running_loop().create_task(self._read_typed_answer())

    async def _read_typed_answer(self) -> None:
        self.render()
        prompt = f"{self.controller.options.placeholder}\n(empty line to use voice instead)\n> "
        text = await asyncio.get_running_loop().run_in_executor(None, self.console.input, prompt)
        if self.controller.submit_text(text):
            return

        self.controller.switch_to_voice()
        self._start_keyboard()
        self.render()

    # Rendering

    def render(self) -> None:
        controller = self.controller
        self.console.clear()

        body = Text()
        if controller.options.prompt_text:
            body.append(f"{controller.options.prompt_text}\n\n", style="bold")

        if controller.permission_gate.is_denied and not controller.show_text_input:
            body.append("Microphone access is required for voice practice\n", style="red")
        elif controller.show_text_input:
            body.append("Type your answer below.\n", style="cyan")
        else:
            body.append(f"{controller.status_text}\n", style=_phase_style(controller.phase))
            if controller.phase in (RecordingPhase.RECORDING, RecordingPhase.SILENCE_DETECTED):
                meter = "█" * int(controller.audio_level * 20)
                body.append(f"Audio: [{meter:<20}] {controller.audio_level:.2f}\n")
                stats = controller.recording_stats()
                if stats is not None:
                    limit = controller.options.max_recording_ms // 1000
                    body.append(f"Recording: {stats.duration_seconds:.0f}s / {limit}s\n", style="dim")
            if controller.phase is RecordingPhase.READY:
                body.append("\nYour response:\n", style="dim")
                body.append(f"{controller.transcribed_text}\n")

        if self.last_notification is not None:
            style = "red" if self.last_notification.is_error else "yellow"
            body.append(f"\n{self.last_notification.title}: {self.last_notification.description}\n", style=style)

        self.console.print(Panel(body, title="Mirror Play", border_style="blue"))
        if not controller.show_text_input:
            self.console.print(self._commands())

    def _commands(self) -> str:
        controller = self.controller
        commands = []
        if controller.permission_gate.is_denied:
            commands.append("[bold green]m[/bold green] enable microphone")
        elif controller.phase is RecordingPhase.IDLE:
            commands.append("[bold green]r[/bold green] speak")
        elif controller.phase is RecordingPhase.RECORDING:
            commands.append("[bold yellow]s[/bold yellow] done speaking")
        elif controller.phase is RecordingPhase.READY:
            commands.append("[bold blue]a[/bold blue] re-record")
            commands.append(f"[bold green]enter[/bold green] {controller.options.submit_label.lower()}")
        commands.append("[bold]t[/bold] type instead")
        if controller.options.prompt_text and controller.options.on_play_prompt:
            commands.append("[bold]p[/bold] hear prompt again")
        commands.append("[bold red]q[/bold red] quit")
        return "  ".join(commands)

    # Helpers

    def _start_keyboard(self) -> None:
        if self._keyboard is None:
            self._keyboard = KeyboardInputHandler(self._on_key_from_thread)
            self._keyboard.start()

    def _stop_keyboard(self) -> None:
        if self._keyboard is not None:
            self._keyboard.stop()
            self._keyboard = None

    def _finish(self) -> None:
        if self._done is not None:
            self._done.set()

    def _unsubscribe(self) -> None:
        pub.unsubscribe(self.on_phase_change, self.controller.publisher.phase_topic)
        pub.unsubscribe(self.on_level, self.controller.level_publisher.topic)
        pub.unsubscribe(self.on_notification, self.controller.notifier.topic)
        pub.unsubscribe(self.on_submitted, self.controller.publisher.submitted_topic)


def _phase_style(phase: RecordingPhase) -> str:
    return {
        RecordingPhase.RECORDING: "bold red",
        RecordingPhase.SILENCE_DETECTED: "yellow",
        RecordingPhase.TRANSCRIBING: "yellow",
        RecordingPhase.READY: "bold green",
    }.get(phase, "bold blue")
