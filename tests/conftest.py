"""Pytest configuration and fixtures for Mirror Play tests."""

import asyncio
import logging
import tempfile
from datetime import datetime
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from mirrorplay.models.transcription import TranscriptionResult
from mirrorplay.models.ui import VoiceInputOptions
from mirrorplay.services.voice_input import VoiceInputController
from mirrorplay.transcription.base import AbstractTranscriptionBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


MOCK_DEVICE = {
    'index': 0,
    'name': 'Mock Microphone',
    'maxInputChannels': 1,
    'defaultSampleRate': 44100.0,
}


class FakeTranscriber(AbstractTranscriptionBackend):
    """Returns a fixed text, or raises ``error`` when set."""

    service_name = "fake"

    def __init__(self, text: str = "Hello there"):
        self.text = text
        self.error = None
        self.calls = []

    async def transcribe(self, blob):
        self.calls.append(blob)
        if self.error is not None:
            raise self.error
        return TranscriptionResult(
            text=self.text,
            processing_time=0.0,
            timestamp=datetime.now(),
            service=self.service_name,
        )

    def initialize(self) -> bool:
        return True


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop every pub/sub listener registered during a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


def _pcm(wave_data: np.ndarray) -> bytes:
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def sample_audio_chunk():
    """100ms of a 440Hz sine at 16kHz."""
    t = np.linspace(0, 0.1, 1600, False)
    return _pcm(0.5 * np.sin(2 * np.pi * 440 * t))


@pytest.fixture
def silent_audio_chunk():
    """100ms of digital silence at 16kHz."""
    return _pcm(np.zeros(1600))


@pytest.fixture
def noise_audio_chunk():
    """100ms of white noise at 16kHz."""
    rng = np.random.default_rng(seed=7)
    return _pcm(rng.uniform(-1, 1, 1600))


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.is_format_supported.return_value = True
        mock_pyaudio_instance.get_default_input_device_info.return_value = dict(MOCK_DEVICE)
        mock_pyaudio_instance.get_device_info_by_index.return_value = dict(MOCK_DEVICE)

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def feed_audio(mock_pyaudio):
    """Push bytes through the stream callback of the most recently opened stream."""
    def feed(audio_data: bytes):
        callback = mock_pyaudio['instance'].open.call_args.kwargs['stream_callback']
        return callback(audio_data, len(audio_data) // 2, {}, 0)
    return feed


@pytest.fixture
def drain():
    """Let the running event loop process everything that is ready."""
    async def _drain(times: int = 10):
        for _ in range(times):
            await asyncio.sleep(0)
    return _drain


@pytest.fixture
def fake_transcriber():
    return FakeTranscriber()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_controller(mock_pyaudio, fake_transcriber, clock):
    """Build controllers wired to the mocked microphone, fake transcriber and fake clock.

    Auto-start is off and the frame loop ticks once a second, so tests drive
    ``check_audio_level()`` themselves.
    """
    def factory(capture_factory=None, **option_overrides):
        settings = {
            'auto_start': False,
            'auto_start_delay_ms': 0,
            'retry_delay_ms': 0,
            'frame_interval_ms': 1000,
        }
        settings.update(option_overrides)
        return VoiceInputController(
            on_submit=Mock(),
            transcriber=fake_transcriber,
            options=VoiceInputOptions(**settings),
            capture_factory=capture_factory,
            clock=clock,
        )
    return factory
