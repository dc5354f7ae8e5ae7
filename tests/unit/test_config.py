"""Unit tests for MirrorPlayConfig."""

import os
from pathlib import Path

import pytest

from mirrorplay.config import DEFAULT_CONFIG, MirrorPlayConfig


def write_config(directory, text):
    path = Path(directory) / "mirrorplay.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.mark.unit
class TestMirrorPlayConfig:

    def test_defaults_without_file(self):
        config = MirrorPlayConfig()

        assert config.get('voice.silence_threshold_ms') == 3000
        assert config.get('voice.auto_start_delay_ms') == 1500
        assert config.get('voice.noise_floor') == 0.05
        assert config.get('voice.max_recording_ms') == 90000
        assert config.get('audio.fft_size') == 256
        assert config.get('transcription.timeout_seconds') == 30.0
        assert os.path.isabs(config.get('logging.file_path'))

    def test_defaults_are_not_shared(self):
        config = MirrorPlayConfig()
        config.set('voice.silence_threshold_ms', 1)

        assert DEFAULT_CONFIG['voice']['silence_threshold_ms'] == 3000

    def test_missing_file_raises(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            MirrorPlayConfig(os.path.join(temp_data_dir, "missing.yaml"))

    def test_file_merges_onto_defaults(self, temp_data_dir):
        path = write_config(temp_data_dir, "voice:\n  silence_threshold_ms: 2000\n")

        config = MirrorPlayConfig(path)

        assert config.get('voice.silence_threshold_ms') == 2000
        assert config.get('voice.auto_start_delay_ms') == 1500
        assert config.get('transcription.endpoint') == "/api/transcribe"

    def test_log_path_resolves_against_config_dir(self, temp_data_dir):
        path = write_config(temp_data_dir, "logging:\n  file_path: logs/test.log\n")

        config = MirrorPlayConfig(path)

        assert config.get('logging.file_path') == str(Path(temp_data_dir) / "logs" / "test.log")

    def test_empty_file_raises(self, temp_data_dir):
        with pytest.raises(ValueError, match="empty"):
            MirrorPlayConfig(write_config(temp_data_dir, ""))

    def test_invalid_yaml_raises(self, temp_data_dir):
        with pytest.raises(ValueError, match="Invalid YAML"):
            MirrorPlayConfig(write_config(temp_data_dir, "voice: [unclosed\n"))

    def test_non_mapping_raises(self, temp_data_dir):
        with pytest.raises(ValueError, match="mapping"):
            MirrorPlayConfig(write_config(temp_data_dir, "- just\n- a list\n"))

    def test_get_missing_key_returns_default(self):
        config = MirrorPlayConfig()

        assert config.get('voice.nope') is None
        assert config.get('voice.nope', 'fallback') == 'fallback'
        assert config.get('voice.silence_threshold_ms.deeper', 7) == 7

    def test_set_creates_sections(self):
        config = MirrorPlayConfig()
        config.set('new.section.value', 5)

        assert config.get('new.section.value') == 5

    def test_transcription_url(self):
        config = MirrorPlayConfig()
        assert config.get_transcription_url() == "http://localhost:5000/api/transcribe"

        config.set('transcription.base_url', 'https://example.com/')
        config.set('transcription.endpoint', 'v1/transcribe')
        assert config.get_transcription_url() == "https://example.com/v1/transcribe"

    def test_transcription_url_requires_base(self):
        config = MirrorPlayConfig()
        config.set('transcription.base_url', None)

        with pytest.raises(ValueError):
            config.get_transcription_url()
