"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
import logging

from ..models.audio import AudioBlob
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionError(RuntimeError):
    """Raised when the transcription service could not produce a result."""


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "unknown"

    @abstractmethod
    async def transcribe(self, blob: AudioBlob) -> TranscriptionResult:
        """Transcribe a finished recording.

        Args:
            blob: Assembled audio recording

        Returns:
            TranscriptionResult; ``text`` is empty when no speech was found

        Raises:
            TranscriptionError: on network, timeout or service failure
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Verify configuration.

        Returns:
            True if the backend is ready to accept requests
        """
        pass
