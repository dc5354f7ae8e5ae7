"""Unit tests for the level analyser and silence detector."""

import numpy as np
import pytest

from mirrorplay.audio.silence import AudioAnalyser, SilenceDetector
from mirrorplay.models.session import RecordingSession


@pytest.mark.unit
class TestAudioAnalyser:

    def test_fresh_analyser_reads_zero(self):
        analyser = AudioAnalyser()
        assert analyser.read_level() == 0.0

    def test_silence_reads_zero(self, silent_audio_chunk):
        analyser = AudioAnalyser()
        analyser.feed(silent_audio_chunk)
        assert analyser.read_level() == 0.0

    def test_noise_reads_above_noise_floor(self, noise_audio_chunk):
        analyser = AudioAnalyser()
        analyser.feed(noise_audio_chunk)

        level = analyser.read_level()

        assert 0.05 < level <= 1.0

    def test_byte_frequency_data_shape(self, noise_audio_chunk):
        analyser = AudioAnalyser(fft_size=256)
        analyser.feed(noise_audio_chunk)

        data = analyser.get_byte_frequency_data()

        assert analyser.frequency_bin_count == 128
        assert data.shape == (128,)
        assert data.dtype == np.uint8

    def test_only_latest_window_counts(self, noise_audio_chunk, silent_audio_chunk):
        analyser = AudioAnalyser()
        analyser.feed(noise_audio_chunk)
        analyser.feed(silent_audio_chunk)

        assert analyser.read_level() == 0.0

    def test_odd_byte_is_ignored(self, noise_audio_chunk):
        analyser = AudioAnalyser()
        analyser.feed(noise_audio_chunk + b"\x01")
        analyser.feed(b"\x01")

        assert analyser.read_level() > 0.05

    @pytest.mark.parametrize("fft_size", [0, 16, 100, 255])
    def test_invalid_fft_size(self, fft_size):
        with pytest.raises(ValueError):
            AudioAnalyser(fft_size=fft_size)

    def test_invalid_decibel_range(self):
        with pytest.raises(ValueError):
            AudioAnalyser(min_decibels=-30, max_decibels=-100)


@pytest.mark.unit
class TestSilenceDetector:

    def setup_method(self):
        self.detector = SilenceDetector(silence_threshold_ms=3000, noise_floor=0.05)
        self.session = RecordingSession(session_id="test", last_sound_timestamp=10.0)

    def test_quiet_frames_stop_only_after_threshold(self):
        # 16ms frames of silence starting at the last sound
        now = 10.0
        stops = []
        for _ in range(200):
            now += 0.016
            stops.append((now, self.detector.check(self.session, 0.0, now)))

        first_stop = next(t for t, stopped in stops if stopped)
        assert first_stop - 10.0 > 3.0
        assert first_stop - 10.0 < 3.0 + 0.016 * 2
        assert not any(stopped for t, stopped in stops if t - 10.0 <= 2.99)

    def test_sound_resets_quiet_period(self):
        assert self.detector.check(self.session, 0.0, 12.0) is False
        assert self.detector.check(self.session, 0.4, 12.5) is False
        assert self.session.last_sound_timestamp == 12.5

        assert self.detector.check(self.session, 0.0, 15.4) is False
        assert self.detector.check(self.session, 0.0, 15.6) is True

    def test_level_at_noise_floor_is_silence(self):
        self.detector.check(self.session, 0.05, 11.0)
        assert self.session.last_sound_timestamp == 10.0

    def test_check_records_level(self):
        self.detector.check(self.session, 0.3, 11.0)
        assert self.session.audio_level == 0.3

    def test_silence_ms(self):
        assert SilenceDetector.silence_ms(self.session, 11.5) == pytest.approx(1500.0)
        assert SilenceDetector.silence_ms(self.session, 9.0) == 0.0

    def test_custom_threshold(self):
        detector = SilenceDetector(silence_threshold_ms=500)
        assert detector.check(self.session, 0.0, 10.4) is False
        assert detector.check(self.session, 0.0, 10.6) is True
