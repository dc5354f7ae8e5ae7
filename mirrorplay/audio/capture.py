"""Microphone recorder delivering periodic chunks and assembling a WAV blob on stop."""

import io
import time
import wave
import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pyaudio

from ..models.audio import AudioBlob, AudioStats
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


# Ordered (sample_rate, format) preferences; the device default is used when none is supported.
FORMAT_PREFERENCES: Tuple[Tuple[int, int], ...] = (
    (16000, pyaudio.paInt16),
    (48000, pyaudio.paInt16),
    (44100, pyaudio.paInt16),
)


class RecorderError(RuntimeError):
    """Raised when no recorder could be constructed for the input device."""


def _call_directly(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


class AudioCapture:
    """Records from an acquired PortAudio instance in callback mode.

    PortAudio invokes the stream callback on its own thread; every chunk and
    the final stop signal are handed to ``dispatch`` (normally the event
    loop's ``call_soon_threadsafe``) so the owner sees them in order on its
    own thread. The stop signal always follows the last chunk.
    """

    def __init__(
        self,
        audio: pyaudio.PyAudio,
        on_chunk: Callable[[AudioEvent], None],
        on_stop: Callable[[], None],
        chunk_ms: int = 100,
        channels: int = 1,
        input_device_index: Optional[int] = None,
        format_preferences: Sequence[Tuple[int, int]] = FORMAT_PREFERENCES,
        dispatch: Optional[Callable[..., None]] = None,
    ):
        """Initialize the recorder.

        Args:
            audio: PortAudio instance handed over by the permission gate; the
                recorder terminates it on release
            on_chunk: Receives each captured chunk
            on_stop: Called once after the stream stopped and all chunks were delivered
            chunk_ms: Chunk delivery period in milliseconds
            channels: Number of audio channels (1 for mono)
            input_device_index: PortAudio device index, None for the default device
            format_preferences: Ordered (sample_rate, format) pairs to try
            dispatch: Hands a callback and its arguments to the owner's thread
        """
        self.audio: Optional[pyaudio.PyAudio] = audio
        self.on_chunk = on_chunk
        self.on_stop = on_stop
        self.chunk_ms = chunk_ms
        self.channels = channels
        self.input_device_index = input_device_index
        self.format_preferences = tuple(format_preferences)
        self._dispatch = dispatch or _call_directly

        self.sample_rate: Optional[int] = None
        self.format = pyaudio.paInt16
        self.stream: Optional[pyaudio.Stream] = None
        self._stream_stopped = False

        self.is_recording = False
        self.start_time: Optional[float] = None
        self.total_chunks = 0

    def start_recording(self) -> None:
        """Open the input stream and begin delivering chunks.

        Raises:
            RecorderError: if the input device is gone, or neither the selected
                nor the default configuration opens
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return
        if self.audio is None:
            raise RecorderError("Recorder was already released")

        self.sample_rate, self.format = self._select_format()
        self.total_chunks = 0
        self.stream = self._open_stream()
        self._stream_stopped = False
        self.start_time = time.monotonic()
        self.is_recording = True
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, {self.chunk_ms}ms chunks")

    def stop_recording(self) -> None:
        """Stop capture; ``on_stop`` is dispatched after the last chunk."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        self.is_recording = False
        self._stop_stream()
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")
        self._dispatch(self.on_stop)

    def release(self) -> None:
        """Stop the stream, close it and terminate PortAudio. Safe to call repeatedly."""
        self.is_recording = False
        if self.stream is not None:
            self._stop_stream()
            try:
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None

        if self.audio is not None:
            self.audio.terminate()
            self.audio = None
            logger.debug("Microphone released")

    def build_blob(self, chunks: List[bytes]) -> AudioBlob:
        """Assemble captured chunks into a single WAV recording."""
        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(pyaudio.get_sample_size(self.format))
            wf.setframerate(self.sample_rate or 16000)
            for chunk in chunks:
                wf.writeframes(chunk)

        return AudioBlob(
            data=buffer.getvalue(),
            sample_rate=self.sample_rate or 16000,
            channels=self.channels,
        )

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time is not None:
            duration = time.monotonic() - self.start_time

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate or 0,
            chunk_ms=self.chunk_ms,
            total_chunks=self.total_chunks,
        )

    def _select_format(self) -> Tuple[int, int]:
        try:
            device_index = self._device_index()
        except OSError as e:
            raise RecorderError(f"Input device unavailable: {e}") from e

        for sample_rate, sample_format in self.format_preferences:
            try:
                if self.audio.is_format_supported(
                    sample_rate,
                    input_device=device_index,
                    input_channels=self.channels,
                    input_format=sample_format,
                ):
                    return sample_rate, sample_format
            except ValueError:
                # PyAudio signals unsupported formats by raising
                logger.debug(f"Format {sample_rate}Hz/{sample_format} not supported")
        return self._default_sample_rate(), pyaudio.paInt16

    def _open_stream(self) -> pyaudio.Stream:
        try:
            return self.audio.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=int(self.sample_rate * self.chunk_ms / 1000),
                stream_callback=self._stream_callback,
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Could not open {self.sample_rate}Hz stream ({e}), "
                           f"retrying with device defaults")

        self.sample_rate = self._default_sample_rate()
        self.format = pyaudio.paInt16
        try:
            return self.audio.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                stream_callback=self._stream_callback,
            )
        except (OSError, ValueError) as e:
            raise RecorderError(f"Could not open input stream: {e}") from e

    def _stream_callback(self, in_data, frame_count, time_info, status):
        """Runs on the PortAudio thread."""
        if status:
            logger.debug(f"Input stream status flags: {status}")
        if in_data:
            self.total_chunks += 1
            audio_event = AudioEvent(
                chunk_id=f"chunk_{self.total_chunks}",
                audio_data=in_data,
                timestamp=time.time(),
                sequence_number=self.total_chunks,
                sample_rate=self.sample_rate,
                channels=self.channels,
            )
            self._dispatch(self.on_chunk, audio_event)
        return (None, pyaudio.paContinue)

    def _stop_stream(self) -> None:
        if self.stream is None or self._stream_stopped:
            return
        self._stream_stopped = True
        try:
            self.stream.stop_stream()
        except OSError as e:
            logger.warning(f"Error stopping audio stream: {e}")

    def _device_index(self) -> int:
        if self.input_device_index is not None:
            return self.input_device_index
        return self.audio.get_default_input_device_info()['index']

    def _default_sample_rate(self) -> int:
        try:
            if self.input_device_index is not None:
                info = self.audio.get_device_info_by_index(self.input_device_index)
            else:
                info = self.audio.get_default_input_device_info()
        except OSError as e:
            raise RecorderError(f"Input device unavailable: {e}") from e
        return int(info['defaultSampleRate'])
