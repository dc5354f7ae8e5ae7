"""Event models published while a voice input session runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .session import RecordingPhase


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class PhaseChangeEvent:
    """Published whenever a recording session moves between phases."""
    session_id: str
    previous: RecordingPhase
    current: RecordingPhase
    trigger: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class AudioLevelEvent:
    """One analyser reading taken while recording."""
    session_id: str
    level: float  # normalized to [0, 1]
    silence_ms: float
    timestamp: float
