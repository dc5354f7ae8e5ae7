"""Cross-platform single-key input for the terminal UI."""

import sys
import threading
import time
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


ENTER = "enter"


class KeyboardInputHandler:
    """Reads single keypresses on a background thread and hands them to a callback."""

    def __init__(self, callback: Callable[[str], bool]):
        """Initialize keyboard handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to quit
        """
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the keyboard input handler."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        """Stop the keyboard input handler."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        self.thread = None
        logger.info("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        """Main input handling loop."""
        logger.debug("Starting keyboard input loop")
        while self.running:
            key = self._get_key()
            if key:
                logger.debug(f"Key detected: {key!r}")
                if not self.callback(key):
                    logger.debug("Callback returned False, breaking input loop")
                    break
            # Small delay to prevent busy waiting
            time.sleep(0.05)
        self.running = False
        logger.debug("Keyboard input loop ended")

    def _get_key(self) -> Optional[str]:
        """Get a single keypress in a cross-platform way."""
        if sys.platform == "win32":
            key = self._get_key_windows()
        else:
            key = self._get_key_unix()
        return normalize_key(key) if key else None

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        if msvcrt.kbhit():
            return msvcrt.getch().decode('utf-8', errors='ignore')
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import tty
        import termios

        if not sys.stdin.isatty():
            return None
        # Check if input is available
        if select.select([sys.stdin], [], [], 0.1)[0]:
            old_settings = termios.tcgetattr(sys.stdin)
            try:
                tty.setraw(sys.stdin.fileno())
                return sys.stdin.read(1)
            finally:
                termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)
        return None


def normalize_key(key: str) -> str:
    """Map raw terminal characters onto command names."""
    if key in ("\r", "\n"):
        return ENTER
    if key == "\x03":
        # Ctrl+C arrives as a character in raw mode
        return "q"
    return key.lower()
