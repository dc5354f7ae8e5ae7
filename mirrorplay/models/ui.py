"""UI-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .session import RecordingPhase


STATUS_TEXT = {
    RecordingPhase.IDLE: "Tap to start",
    RecordingPhase.RECORDING: "Listening...",
    RecordingPhase.SILENCE_DETECTED: "Processing...",
    RecordingPhase.TRANSCRIBING: "Transcribing...",
    RecordingPhase.READY: "Ready to submit",
}


@dataclass
class Notification:
    """A non-blocking, dismissible message shown to the user."""
    title: str
    description: str
    variant: str = "default"  # "default" | "destructive"
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


@dataclass
class VoiceInputOptions:
    """Caller-facing options for a voice input."""
    auto_start: bool = True
    auto_start_delay_ms: int = 1500
    silence_threshold_ms: int = 3000
    max_recording_ms: int = 90000
    noise_floor: float = 0.05
    retry_delay_ms: int = 500
    frame_interval_ms: int = 16
    placeholder: str = "Your response will appear here..."
    prompt_text: Optional[str] = None
    on_play_prompt: Optional[Callable[[], None]] = None
    submit_label: str = "Submit"
    disabled: bool = False

    def __post_init__(self):
        if self.silence_threshold_ms <= 0:
            raise ValueError(f"silence_threshold_ms must be positive, got {self.silence_threshold_ms}")
        if self.max_recording_ms <= 0:
            raise ValueError(f"max_recording_ms must be positive, got {self.max_recording_ms}")
        if not 0.0 <= self.noise_floor < 1.0:
            raise ValueError(f"noise_floor must be in [0, 1), got {self.noise_floor}")
        if self.auto_start_delay_ms < 0 or self.retry_delay_ms < 0:
            raise ValueError("Delays must not be negative")
        if self.frame_interval_ms <= 0:
            raise ValueError(f"frame_interval_ms must be positive, got {self.frame_interval_ms}")
