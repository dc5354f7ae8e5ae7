"""Recording session state shared by the voice input controller."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class RecordingPhase(Enum):
    """Discrete phase of a recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    SILENCE_DETECTED = "silence-detected"
    TRANSCRIBING = "transcribing"
    READY = "ready"


class MicPermission(Enum):
    """Outcome of the microphone permission request."""
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class RecordingSession:
    """One voice input attempt, from the first chunk to the transcribed text.

    The session owns every resource acquired for the attempt (recorder,
    analyser, frame loop task). ``release()`` gives all of them back and may
    be called any number of times.
    """
    session_id: str
    phase: RecordingPhase = RecordingPhase.IDLE
    audio_chunks: List[bytes] = field(default_factory=list)
    transcribed_text: str = ""
    audio_level: float = 0.0
    last_sound_timestamp: float = 0.0
    recording_started_at: float = 0.0

    # Owned resources
    capture: Optional[Any] = None  # AudioCapture
    analyser: Optional[Any] = None  # AudioAnalyser
    frame_task: Optional[asyncio.Task] = None
    transcription_task: Optional[asyncio.Task] = None
    released: bool = False

    @property
    def is_capturing(self) -> bool:
        return (
            self.phase is RecordingPhase.RECORDING
            and self.capture is not None
            and self.capture.is_recording
        )

    def release(self) -> None:
        """Release the microphone and stop the frame loop."""
        if self.frame_task is not None:
            if not self.frame_task.done() and self.frame_task is not _current_task():
                self.frame_task.cancel()
            self.frame_task = None

        if self.capture is not None:
            self.capture.release()
            self.capture = None

        self.analyser = None
        self.audio_chunks.clear()
        self.audio_level = 0.0

        if not self.released:
            logger.debug(f"Session {self.session_id} released")
        self.released = True

    def cancel_transcription(self) -> None:
        if self.transcription_task is not None and not self.transcription_task.done():
            self.transcription_task.cancel()
        self.transcription_task = None


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        # No running loop
        return None
