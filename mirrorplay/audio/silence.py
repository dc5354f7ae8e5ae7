"""Audio level analysis and silence detection."""

import logging

import numpy as np

from ..models.session import RecordingSession

logger = logging.getLogger(__name__)


class AudioAnalyser:
    """Frequency-domain level meter over the most recent samples.

    Each bin's magnitude is converted to decibels and mapped linearly from
    [min_decibels, max_decibels] onto [0, 255]. The level is the mean bin
    value divided by 128, capped at 1.
    """

    def __init__(self, fft_size: int = 256, min_decibels: float = -100.0, max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must be greater than min_decibels")

        self.fft_size = fft_size
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self._window = np.blackman(fft_size)
        self._samples = np.zeros(fft_size, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def feed(self, audio_data: bytes) -> None:
        """Append 16-bit PCM audio, keeping only the last ``fft_size`` samples."""
        if len(audio_data) < 2:
            return
        usable = len(audio_data) - (len(audio_data) % 2)
        samples = np.frombuffer(audio_data[:usable], dtype=np.int16).astype(np.float64) / 32768.0
        self._samples = np.concatenate((self._samples, samples))[-self.fft_size:]

    def get_byte_frequency_data(self) -> np.ndarray:
        spectrum = np.abs(np.fft.rfft(self._samples * self._window))[:self.frequency_bin_count]
        spectrum /= self.fft_size
        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(spectrum)
        scaled = 255.0 * (decibels - self.min_decibels) / (self.max_decibels - self.min_decibels)
        scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def read_level(self) -> float:
        data = self.get_byte_frequency_data()
        return min(float(data.mean()) / 128.0, 1.0)


class SilenceDetector:
    """Decides when a recording has been quiet long enough to stop."""

    def __init__(self, silence_threshold_ms: int = 3000, noise_floor: float = 0.05):
        self.silence_threshold_ms = silence_threshold_ms
        self.noise_floor = noise_floor

    def check(self, session: RecordingSession, level: float, now: float) -> bool:
        """Record a level reading on the session.

        Args:
            session: Session whose level and last-sound timestamp are updated
            level: Normalized level in [0, 1]
            now: Monotonic time in seconds

        Returns:
            True once the quiet period exceeds the silence threshold
        """
        session.audio_level = level
        if level > self.noise_floor:
            session.last_sound_timestamp = now
        return self.silence_ms(session, now) > self.silence_threshold_ms

    @staticmethod
    def silence_ms(session: RecordingSession, now: float) -> float:
        return max(0.0, (now - session.last_sound_timestamp) * 1000.0)
