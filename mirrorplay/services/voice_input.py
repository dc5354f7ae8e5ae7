"""Voice capture and submission state machine.

A ``VoiceInputController`` runs on one asyncio event loop. It owns at most
one ``RecordingSession`` at a time and moves it through the phases

    idle -> recording -> [silence-detected] -> transcribing -> ready | idle

``transition()`` is the single place where the phase changes. Everything a
session acquires is given back by ``RecordingSession.release()``, which is
called on every exit path: manual stop, silence stop, submit, retry,
switching to typing and ``close()``.

Media and network errors never escape the controller. They become
notifications on the ``voice.notification`` topic and the session returns
to idle; callers only ever see ``on_submit`` called with non-empty text.
"""

import asyncio
import dataclasses
import functools
import time
import uuid
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from ..audio.audio_pub import AudioLevelPublisher
from ..audio.capture import AudioCapture, RecorderError
from ..audio.permission import PermissionGate
from ..audio.silence import AudioAnalyser, SilenceDetector
from ..models.audio import AudioBlob, AudioStats
from ..models.events import AudioEvent, AudioLevelEvent, PhaseChangeEvent
from ..models.session import MicPermission, RecordingPhase, RecordingSession
from ..models.ui import STATUS_TEXT, VoiceInputOptions
from ..transcription.base import AbstractTranscriptionBackend, TranscriptionError
from ..transcription.http_backend import TranscribeApiBackend
from .notifier import Notifier
from .publisher import SessionPublisher

logger = logging.getLogger(__name__)


class VoiceEvent(Enum):
    """Inputs to the recording state machine."""
    START = "start"
    SILENCE = "silence"
    RECORDER_STOPPED = "recorder_stopped"
    NO_AUDIO = "no_audio"
    TRANSCRIBED = "transcribed"
    NO_SPEECH = "no_speech"
    FAILED = "failed"
    RETRY = "retry"


TRANSITIONS: Dict[Tuple[RecordingPhase, VoiceEvent], RecordingPhase] = {
    (RecordingPhase.IDLE, VoiceEvent.START): RecordingPhase.RECORDING,
    (RecordingPhase.RECORDING, VoiceEvent.SILENCE): RecordingPhase.SILENCE_DETECTED,
    (RecordingPhase.RECORDING, VoiceEvent.RECORDER_STOPPED): RecordingPhase.TRANSCRIBING,
    (RecordingPhase.SILENCE_DETECTED, VoiceEvent.RECORDER_STOPPED): RecordingPhase.TRANSCRIBING,
    (RecordingPhase.RECORDING, VoiceEvent.NO_AUDIO): RecordingPhase.IDLE,
    (RecordingPhase.SILENCE_DETECTED, VoiceEvent.NO_AUDIO): RecordingPhase.IDLE,
    (RecordingPhase.TRANSCRIBING, VoiceEvent.TRANSCRIBED): RecordingPhase.READY,
    (RecordingPhase.TRANSCRIBING, VoiceEvent.NO_SPEECH): RecordingPhase.IDLE,
    (RecordingPhase.TRANSCRIBING, VoiceEvent.FAILED): RecordingPhase.IDLE,
    (RecordingPhase.READY, VoiceEvent.RETRY): RecordingPhase.IDLE,
}


class VoiceInputController:
    """Drives one voice input from permission request to submitted text."""

    def __init__(
        self,
        on_submit: Callable[[str], None],
        transcriber: AbstractTranscriptionBackend,
        options: Optional[VoiceInputOptions] = None,
        permission_gate: Optional[PermissionGate] = None,
        capture_factory: Optional[Callable[..., AudioCapture]] = None,
        analyser_factory: Optional[Callable[[], AudioAnalyser]] = None,
        notifier: Optional[Notifier] = None,
        publisher: Optional[SessionPublisher] = None,
        level_publisher: Optional[AudioLevelPublisher] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the controller.

        Args:
            on_submit: Receives the trimmed, non-empty answer exactly once per submission
            transcriber: Backend that turns a recording into text
            options: Caller options (auto-start, thresholds, labels)
            permission_gate: Gate used to acquire the microphone
            capture_factory: Builds the recorder for an acquired PortAudio instance
            analyser_factory: Builds the level analyser for a new session
            notifier: Channel for user-visible notifications
            publisher: Channel for phase changes and submissions
            level_publisher: Channel for level readings
            clock: Monotonic clock in seconds
        """
        self.on_submit = on_submit
        self.transcriber = transcriber
        self.options = options or VoiceInputOptions()
        self.permission_gate = permission_gate or PermissionGate()
        self._capture_factory = capture_factory or AudioCapture
        self._analyser_factory = analyser_factory or AudioAnalyser
        self.notifier = notifier or Notifier()
        self.publisher = publisher or SessionPublisher()
        self.level_publisher = level_publisher or AudioLevelPublisher()
        self.silence_detector = SilenceDetector(
            silence_threshold_ms=self.options.silence_threshold_ms,
            noise_floor=self.options.noise_floor,
        )
        self._clock = clock

        self.session = self._new_session()
        self.show_text_input = False
        self.text_input = ""
        self.is_submitting = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._start_timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config,
        on_submit: Callable[[str], None],
        transcriber: Optional[AbstractTranscriptionBackend] = None,
        **overrides: Any,
    ) -> "VoiceInputController":
        """Build a controller from the ``audio``, ``voice`` and ``transcription`` config sections."""
        option_names = {f.name for f in dataclasses.fields(VoiceInputOptions)}
        voice_settings = dict(config.get('voice', {}) or {})
        unknown = set(voice_settings) - option_names
        if unknown:
            logger.warning(f"Ignoring unknown voice settings: {sorted(unknown)}")
        voice_settings = {k: v for k, v in voice_settings.items() if k in option_names}
        voice_settings.update(overrides)
        options = VoiceInputOptions(**voice_settings)

        if transcriber is None:
            transcriber = TranscribeApiBackend.from_config(config)

        capture_factory = functools.partial(
            AudioCapture,
            chunk_ms=config.get('audio.chunk_ms', 100),
            channels=config.get('audio.channels', 1),
            input_device_index=config.get('audio.input_device_index'),
        )
        analyser_factory = functools.partial(AudioAnalyser, fft_size=config.get('audio.fft_size', 256))

        return cls(
            on_submit=on_submit,
            transcriber=transcriber,
            options=options,
            capture_factory=capture_factory,
            analyser_factory=analyser_factory,
        )

    # State

    @property
    def phase(self) -> RecordingPhase:
        return self.session.phase

    @property
    def transcribed_text(self) -> str:
        return self.session.transcribed_text

    @property
    def audio_level(self) -> float:
        return self.session.audio_level

    @property
    def has_mic_permission(self) -> MicPermission:
        return self.permission_gate.permission

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self.session.phase]

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_text(self) -> str:
        """Trimmed text the Submit action would deliver."""
        if self.show_text_input:
            return self.text_input.strip()
        if self.session.phase is RecordingPhase.READY:
            return self.session.transcribed_text.strip()
        return ""

    @property
    def can_submit(self) -> bool:
        return not self.is_submitting and bool(self.pending_text)

    def transition(self, event: VoiceEvent) -> bool:
        """Apply ``event`` to the current session.

        Returns:
            False if the event is not valid in the current phase
        """
        previous = self.session.phase
        current = TRANSITIONS.get((previous, event))
        if current is None:
            logger.warning(f"Ignoring '{event.value}' in phase '{previous.value}'")
            return False
        self._set_phase(current, event.value)
        return True

    # Recording

    def mount(self) -> bool:
        """Arm auto-start. Fires at most once per controller.

        Returns:
            True if an auto-start timer was scheduled
        """
        if not self.options.auto_start or self.options.disabled or self._closed:
            return False
        if self.permission_gate.permission_requested or self.permission_gate.is_denied:
            return False
        if self.session.phase is not RecordingPhase.IDLE or self._start_timer is not None:
            return False

        logger.debug(f"Auto-start in {self.options.auto_start_delay_ms}ms")
        self._schedule_start(self.options.auto_start_delay_ms)
        return True

    def start_recording(self) -> bool:
        """Acquire the microphone and begin a new session.

        Returns:
            True if recording started
        """
        if self._closed:
            logger.warning("Voice input is closed")
            return False
        if self.options.disabled:
            logger.info("Voice input is disabled")
            return False
        if self.session.phase is not RecordingPhase.IDLE:
            logger.warning(f"Cannot start recording in phase '{self.session.phase.value}'")
            return False

        self._cancel_start_timer()
        self._loop = asyncio.get_running_loop()

        audio = self.permission_gate.request()
        if audio is None:
            self.notifier.microphone_required()
            return False

        session = self._new_session()
        session.last_sound_timestamp = session.recording_started_at = self._clock()
        self.session = session

        try:
            session.analyser = self._analyser_factory()
            session.capture = self._capture_factory(
                audio,
                on_chunk=functools.partial(self._on_chunk, session),
                on_stop=functools.partial(self._on_recorder_stopped, session),
                dispatch=self._dispatch,
            )
            session.capture.start_recording()
        except (RecorderError, OSError, ValueError) as e:
            logger.error(f"Could not start recorder: {e}")
            if session.capture is None:
                # The recorder never took ownership of PortAudio
                audio.terminate()
            session.release()
            self.notifier.recording_failed()
            return False

        self.transition(VoiceEvent.START)
        session.frame_task = self._loop.create_task(self._frame_loop(session))
        return True

    def stop_recording(self) -> bool:
        """Stop capture; transcription starts once the recorder confirms the stop.

        Returns:
            True if a running recorder was asked to stop
        """
        capture = self.session.capture
        if capture is None or not capture.is_recording:
            return False
        capture.stop_recording()
        return True

    def check_audio_level(self) -> None:
        """Take one analyser reading; stop after enough silence or at the duration cap."""
        session = self.session
        if not session.is_capturing or session.analyser is None:
            return

        level = session.analyser.read_level()
        now = self._clock()
        silent = self.silence_detector.check(session, level, now)
        self.level_publisher.publish_level(AudioLevelEvent(
            session_id=session.session_id,
            level=level,
            silence_ms=self.silence_detector.silence_ms(session, now),
            timestamp=now,
        ))

        if silent:
            logger.info(f"No sound for {self.options.silence_threshold_ms}ms, stopping recording")
            self.transition(VoiceEvent.SILENCE)
            self.stop_recording()
        elif (now - session.recording_started_at) * 1000.0 >= self.options.max_recording_ms:
            logger.info(f"Recording reached {self.options.max_recording_ms}ms, stopping")
            self.stop_recording()

    def recording_stats(self) -> Optional[AudioStats]:
        """Statistics of the running recorder, or None when nothing is captured."""
        capture = self.session.capture
        if capture is None:
            return None
        return capture.get_recording_stats()

    # Review / submit

    def retry(self) -> bool:
        """Discard the transcription and record again after a short delay."""
        session = self.session
        if session.phase is not RecordingPhase.READY:
            logger.warning(f"Cannot retry in phase '{session.phase.value}'")
            return False

        session.transcribed_text = ""
        session.release()
        self.transition(VoiceEvent.RETRY)
        self._schedule_start(self.options.retry_delay_ms)
        return True

    def submit(self) -> bool:
        """Hand the reviewed (or typed) text to the caller.

        Returns:
            True if ``on_submit`` was called
        """
        if self.show_text_input:
            return self.submit_text()
        if not self.can_submit:
            return False

        text = self.pending_text
        self._reset_session("submit")
        self._deliver(text)
        return True

    def submit_text(self, text: Optional[str] = None) -> bool:
        """Submit typed text. Never touches the microphone.

        Args:
            text: Replaces the current text input when given
        """
        if text is not None:
            self.text_input = text
        typed = self.text_input.strip()
        if self.is_submitting or not typed:
            return False

        self.text_input = ""
        self._deliver(typed)
        return True

    def switch_to_typing(self) -> None:
        """Abandon voice input and reveal the text area."""
        self._cancel_start_timer()
        self.show_text_input = True
        if self.session.phase is RecordingPhase.READY and not self.text_input:
            self.text_input = self.session.transcribed_text.strip()
        if self.session.phase is not RecordingPhase.IDLE:
            self._reset_session("switch_to_typing")

    def switch_to_voice(self) -> None:
        self.show_text_input = False

    def enable_microphone(self) -> bool:
        """Ask for the microphone again after a denial."""
        self.show_text_input = False
        return self.start_recording()

    def play_prompt(self) -> bool:
        if not (self.options.prompt_text and self.options.on_play_prompt):
            return False
        self.options.on_play_prompt()
        return True

    def close(self) -> None:
        """Release everything; no callback fires afterwards."""
        if self._closed:
            return
        self._closed = True
        self._cancel_start_timer()
        self.session.release()
        self.session.cancel_transcription()
        logger.info("Voice input closed")

    # Internals

    def _new_session(self) -> RecordingSession:
        return RecordingSession(session_id=uuid.uuid4().hex[:12])

    def _set_phase(self, phase: RecordingPhase, trigger: str) -> None:
        previous = self.session.phase
        self.session.phase = phase
        logger.info(f"Session {self.session.session_id}: {previous.value} -> {phase.value} ({trigger})")
        self.publisher.publish_phase_change(PhaseChangeEvent(
            session_id=self.session.session_id,
            previous=previous,
            current=phase,
            trigger=trigger,
        ))

    def _reset_session(self, trigger: str) -> None:
        previous = self.session
        previous.release()
        previous.cancel_transcription()
        self.session = self._new_session()
        if previous.phase is not RecordingPhase.IDLE:
            logger.info(f"Session {previous.session_id}: {previous.phase.value} -> idle ({trigger})")
            self.publisher.publish_phase_change(PhaseChangeEvent(
                session_id=previous.session_id,
                previous=previous.phase,
                current=RecordingPhase.IDLE,
                trigger=trigger,
            ))

    def _deliver(self, text: str) -> None:
        logger.info(f"Submitting answer ({len(text)} chars)")
        self.on_submit(text)
        self.publisher.publish_submitted(text)

    def _dispatch(self, func: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(func, *args)

    def _schedule_start(self, delay_ms: int) -> None:
        self._cancel_start_timer()
        self._loop = asyncio.get_running_loop()
        self._start_timer = self._loop.call_later(delay_ms / 1000.0, self._start_from_timer)

    def _cancel_start_timer(self) -> None:
        if self._start_timer is not None:
            self._start_timer.cancel()
            self._start_timer = None

    def _start_from_timer(self) -> None:
        self._start_timer = None
        if self._closed or self.show_text_input:
            return
        self.start_recording()

    async def _frame_loop(self, session: RecordingSession) -> None:
        interval = self.options.frame_interval_ms / 1000.0
        while not self._closed and session is self.session and session.is_capturing:
            self.check_audio_level()
            await asyncio.sleep(interval)

    def _on_chunk(self, session: RecordingSession, event: AudioEvent) -> None:
        if self._closed or session is not self.session or session.released:
            return
        if session.phase not in (RecordingPhase.RECORDING, RecordingPhase.SILENCE_DETECTED):
            return
        if not event.audio_data:
            return
        session.audio_chunks.append(event.audio_data)
        if session.analyser is not None:
            session.analyser.feed(event.audio_data)

    def _on_recorder_stopped(self, session: RecordingSession) -> None:
        if self._closed or session is not self.session or session.released:
            return

        chunks = list(session.audio_chunks)
        blob = session.capture.build_blob(chunks) if chunks and session.capture else None
        session.release()

        if blob is None:
            logger.info("Recording stopped without audio")
            self.transition(VoiceEvent.NO_AUDIO)
            self.notifier.no_speech()
            return

        self.transition(VoiceEvent.RECORDER_STOPPED)
        session.transcription_task = self._loop.create_task(self._transcribe(session, blob))

    async def _transcribe(self, session: RecordingSession, blob: AudioBlob) -> None:
        try:
            result = await self.transcriber.transcribe(blob)
        except TranscriptionError as e:
            logger.error(f"Transcription failed: {e}")
            if session is self.session and not self._closed:
                self.transition(VoiceEvent.FAILED)
                self.notifier.transcription_failed()
            return
        except Exception:
            logger.exception("Unexpected error from transcription backend")
            if session is self.session and not self._closed:
                self.transition(VoiceEvent.FAILED)
                self.notifier.transcription_failed()
            return

        if session is not self.session or self._closed:
            return

        if result.has_speech:
            session.transcribed_text = result.text
            self.transition(VoiceEvent.TRANSCRIBED)
        else:
            self.transition(VoiceEvent.NO_SPEECH)
            self.notifier.no_speech()
