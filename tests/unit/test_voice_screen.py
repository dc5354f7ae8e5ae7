"""Unit tests for the terminal screen and key handling."""

import asyncio
import io
from unittest.mock import Mock, patch

import pytest
from rich.console import Console

from mirrorplay.models.session import RecordingPhase
from mirrorplay.ui.keyboard_input import ENTER, normalize_key
from mirrorplay.ui.voice_screen import VoiceInputScreen


def make_screen(controller):
    console = Console(file=io.StringIO(), width=100)
    return VoiceInputScreen(controller, console=console), console


async def wait_until(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("Condition not met")


@pytest.mark.unit
class TestNormalizeKey:

    @pytest.mark.parametrize("raw,expected", [
        ("\r", ENTER),
        ("\n", ENTER),
        ("\x03", "q"),
        ("R", "r"),
        ("s", "s"),
    ])
    def test_normalize_key(self, raw, expected):
        assert normalize_key(raw) == expected


@pytest.mark.unit
class TestVoiceInputScreen:

    @pytest.mark.asyncio
    async def test_keys_drive_a_voice_answer(self, make_controller, feed_audio, drain, noise_audio_chunk):
        controller = make_controller()
        screen, console = make_screen(controller)

        screen.handle_key("r")
        assert controller.phase is RecordingPhase.RECORDING
        assert "Listening..." in console.file.getvalue()

        feed_audio(noise_audio_chunk)
        await drain()
        screen.handle_key("s")
        await drain()

        assert controller.phase is RecordingPhase.READY
        output = console.file.getvalue()
        assert "Ready to submit" in output
        assert "Hello there" in output

        screen.handle_key(ENTER)

        assert screen.submitted_text == "Hello there"
        controller.on_submit.assert_called_once_with("Hello there")

    @pytest.mark.asyncio
    async def test_recording_shows_elapsed_time(self, make_controller):
        controller = make_controller(max_recording_ms=60000)
        screen, console = make_screen(controller)

        screen.handle_key("r")

        assert "Recording: 0s / 60s" in console.file.getvalue()
        stats = controller.recording_stats()
        assert stats.is_recording is True
        assert stats.sample_rate == 16000
        controller.close()
        assert controller.recording_stats() is None

    @pytest.mark.asyncio
    async def test_notifications_are_rendered(self, make_controller, mock_pyaudio):
        mock_pyaudio['class'].side_effect = OSError("PortAudio not available")
        controller = make_controller()
        screen, console = make_screen(controller)

        screen.handle_key("r")

        assert screen.last_notification.title == "Microphone access required"
        output = console.file.getvalue()
        assert "Microphone access is required for voice practice" in output
        assert "enable microphone" in output

    @pytest.mark.asyncio
    async def test_prompt_key(self, make_controller):
        on_play_prompt = Mock()
        controller = make_controller(prompt_text="Ask your partner for space", on_play_prompt=on_play_prompt)
        screen, console = make_screen(controller)

        screen.handle_key("p")

        on_play_prompt.assert_called_once_with()
        assert "Ask your partner for space" in console.file.getvalue()

    @pytest.mark.asyncio
    async def test_run_returns_none_on_quit(self, make_controller, drain, mock_pyaudio):
        controller = make_controller(auto_start=True)
        screen, _ = make_screen(controller)

        with patch('mirrorplay.ui.voice_screen.KeyboardInputHandler') as keyboard_class:
            task = asyncio.ensure_future(screen.run())
            await drain()
            assert controller.phase is RecordingPhase.RECORDING

            screen.handle_key("q")
            result = await task

        assert result is None
        assert controller.is_closed
        keyboard_class.return_value.start.assert_called_once()
        keyboard_class.return_value.stop.assert_called_once()
        mock_pyaudio['instance'].terminate.assert_called_once()

    @pytest.mark.asyncio
    async def test_run_typing_returns_typed_answer(self, make_controller, mock_pyaudio):
        controller = make_controller(auto_start=True)
        screen, console = make_screen(controller)
        console.input = Mock(return_value="  Not right now, thanks  ")

        with patch('mirrorplay.ui.voice_screen.KeyboardInputHandler'):
            result = await asyncio.wait_for(screen.run(start_typing=True), timeout=5)

        assert result == "Not right now, thanks"
        controller.on_submit.assert_called_once_with("Not right now, thanks")
        mock_pyaudio['class'].assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_typed_line_returns_to_voice(self, make_controller):
        controller = make_controller()
        screen, console = make_screen(controller)
        console.input = Mock(return_value="")

        with patch('mirrorplay.ui.voice_screen.KeyboardInputHandler') as keyboard_class:
            screen.handle_key("t")
            assert controller.show_text_input

            await wait_until(lambda: not controller.show_text_input)

        keyboard_class.return_value.start.assert_called_once()
        controller.on_submit.assert_not_called()
