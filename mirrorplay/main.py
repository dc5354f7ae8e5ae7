"""Main application entry point for Mirror Play voice input."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import __version__
from .config import MirrorPlayConfig
from .services.voice_input import VoiceInputController
from .transcription.http_backend import TranscribeApiBackend
from .ui.voice_screen import VoiceInputScreen

logger = logging.getLogger(__name__)


def setup_logging(config: MirrorPlayConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/mirrorplay.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("Mirror Play voice input starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Mirror Play - answer a practice prompt by voice",
        epilog="Keys: r=speak, s=done speaking, a=re-record, enter=submit, t=type instead, q=quit"
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
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--type",
        action="store_true",
        dest="start_typing",
        help="Start with the text input instead of the microphone"
    )
    parser.add_argument(
        "--no-auto-start",
        action="store_true",
        help="Wait for the 'r' key instead of starting to listen automatically"
    )
    parser.add_argument(
        "--silence-threshold",
        type=int,
        help="Milliseconds of silence before recording stops (overrides config)"
    )
    parser.add_argument(
        "--prompt",
        type=str,
        help="Prompt shown above the answer; 'p' prints it again"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Mirror Play v{__version__}"
    )
    return parser


def run(args: argparse.Namespace, console: Console) -> Optional[str]:
    config = MirrorPlayConfig(args.config)
    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    if args.no_auto_start:
        config.set('voice.auto_start', False)
    if args.silence_threshold is not None:
        config.set('voice.silence_threshold_ms', args.silence_threshold)

    transcriber = TranscribeApiBackend.from_config(config)
    if not transcriber.initialize():
        raise ValueError(f"Transcription endpoint is not usable: {transcriber.url}")

    overrides = {}
    if args.prompt:
        overrides['prompt_text'] = args.prompt
        overrides['on_play_prompt'] = lambda: console.print(f"\n[bold]{args.prompt}[/bold]\n")

    async def answer() -> Optional[str]:
        controller = VoiceInputController.from_config(
            config,
            on_submit=lambda text: logger.info("Answer received"),
            transcriber=transcriber,
            **overrides,
        )
        screen = VoiceInputScreen(controller, console=console)
        return await screen.run(start_typing=args.start_typing)

    return asyncio.run(answer())


def main() -> None:
    """Main entry point for Mirror Play."""
    args = build_parser().parse_args()
    console = Console()

    try:
        text = run(args, console)
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
        return
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        logging.error(f"Application error: {e}")
        sys.exit(1)

    if text is None:
        console.print("No answer submitted.")
        sys.exit(1)
    print(text)


if __name__ == "__main__":
    main()
