"""Audio-related data models."""

import base64
from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_ms: int
    total_chunks: int


@dataclass
class AudioBlob:
    """A finished recording assembled from all captured chunks."""
    data: bytes
    sample_rate: int
    channels: int = 1
    mime_type: str = "audio/wav"

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        """Encode the recording for the transcription endpoint (no data-URL prefix)."""
        return base64.b64encode(self.data).decode("ascii")
