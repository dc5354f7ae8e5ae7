"""Microphone permission gate."""

import logging
from typing import Callable, Optional

import pyaudio

from ..models.session import MicPermission

logger = logging.getLogger(__name__)


class MicrophoneUnavailableError(OSError):
    """Raised when no usable input device can be acquired."""


class PermissionGate:
    """Acquires microphone access and remembers whether it was granted.

    Every recording attempt acquires a fresh PortAudio instance through
    ``request()``; the caller owns the returned instance and must terminate it.
    The outcome of the latest request is kept in ``permission`` for the
    lifetime of the gate, and ``permission_requested`` records that a request
    was ever made so auto-start logic fires at most once.
    """

    def __init__(self, audio_factory: Optional[Callable[[], pyaudio.PyAudio]] = None):
        self._audio_factory = audio_factory or pyaudio.PyAudio
        self.permission = MicPermission.UNKNOWN
        self.permission_requested = False

    @property
    def is_denied(self) -> bool:
        return self.permission is MicPermission.DENIED

    def request(self) -> Optional[pyaudio.PyAudio]:
        """Request microphone access.

        Returns:
            A live PortAudio instance with a default input device, or None
            if access was denied.
        """
        self.permission_requested = True
        try:
            audio = self._acquire()
        except MicrophoneUnavailableError as e:
            logger.warning(f"Microphone access denied: {e}")
            self.permission = MicPermission.DENIED
            return None

        if self.permission is not MicPermission.GRANTED:
            logger.info("Microphone access granted")
        self.permission = MicPermission.GRANTED
        return audio

    def _acquire(self) -> pyaudio.PyAudio:
        try:
            audio = self._audio_factory()
        except OSError as e:
            raise MicrophoneUnavailableError(f"Audio system unavailable: {e}") from e

        try:
            device = audio.get_default_input_device_info()
        except OSError as e:
            audio.terminate()
            raise MicrophoneUnavailableError(f"No default input device: {e}") from e

        if device.get('maxInputChannels', 1) < 1:
            audio.terminate()
            raise MicrophoneUnavailableError(f"Device '{device.get('name')}' has no input channels")

        logger.debug(f"Default input device: {device.get('name')}")
        return audio
