"""State-machine based interview voice session.

IDLE -> CONNECTING -> LIVE -> IDLE | ERROR. The microphone is acquired in
``start()`` and released on every exit path; ``stop()`` is safe from any state.
Capture (input clock) and playback (output clock) run independently.

Device and SDK calls (capture start/stop, connect, close) are made outside the
controller lock: PortAudio joins its callback thread on stop and the realtime
SDK fires ``on_open`` from its own thread while ``connect()`` is blocked.
Capture windows that arrive after ``on_open`` but before ``connect()`` has
returned the connection are queued and flushed, in order, ahead of any later
window. State and transcript callbacks run after the lock is released.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, NamedTuple, Optional

import audio_codec
import prompts
from errors import SESSION_PROTOCOL_ERROR, CaptureUnavailableError, classify_exception
from interfaces import AudioCapture, LiveConnection, LiveConnector
from models import AudioFrame, LiveMessage, LiveSessionConfig, SessionState, TranscriptEntry, UserProfile
from playback import PlaybackScheduler

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TranscriptCallback = Callable[[TranscriptEntry], None]
ErrorCallback = Callable[[str, str], None]
StateChange = Optional[tuple[SessionState, SessionState]]


class _Held(NamedTuple):
    connection: Optional[LiveConnection]
    capturing: bool
    timer: Optional[threading.Timer]


class LiveSessionController:
    def __init__(
        self,
        capture: AudioCapture,
        connector: LiveConnector,
        scheduler: PlaybackScheduler,
        model: str = "qwen-omni-turbo-realtime-latest",
        voice: str = "Chelsie",
        output_sample_rate: int = 24000,
        max_session_s: float = 0.0,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._capture = capture
        self._connector = connector
        self._scheduler = scheduler
        self._model = model
        self._voice = voice
        self._output_sample_rate = output_sample_rate
        self._max_session_s = max_session_s
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_error = on_error

        self._lock = threading.RLock()
        # serializes outbound audio; taken before ``_lock`` when both are needed
        self._send_lock = threading.Lock()
        self._state = SessionState.IDLE
        self._session_id = 0
        self._connection: Optional[LiveConnection] = None
        self._capturing = False
        self._pending: list[AudioFrame] = []
        self._frames_captured = 0
        self._frames_sent = 0
        self._transcript: list[TranscriptEntry] = []
        self._limit_timer: Optional[threading.Timer] = None
        self.status_text = "Idle"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transcript(self) -> list[TranscriptEntry]:
        with self._lock:
            return list(self._transcript)

    @property
    def frames_sent(self) -> int:
        return self._frames_sent

    def start(self, profile: UserProfile) -> bool:
        """Open the microphone and connect; returns False if not started."""
        with self._send_lock:
            with self._lock:
                if self._state not in (SessionState.IDLE, SessionState.ERROR):
                    return False
                self._session_id += 1
                session_id = self._session_id
                self._transcript = []
                self._pending = []
                self._frames_captured = 0
                self._frames_sent = 0
                change = self._transition(SessionState.CONNECTING)
        self._notify_state(change)

        try:
            self._capture.start(lambda samples: self._on_capture_window(session_id, samples))
        except CaptureUnavailableError as exc:
            self._fail(session_id, exc.code, str(exc))
            return False
        except Exception as exc:
            self._fail(session_id, SESSION_PROTOCOL_ERROR, f"capture failed: {exc}")
            return False

        with self._lock:
            current = session_id == self._session_id
            if current:
                self._capturing = True
        if not current:
            self._capture.stop()
            return False

        config = LiveSessionConfig(
            model=self._model,
            instructions=prompts.interview_instructions(profile),
            voice=self._voice,
            input_sample_rate=self._capture.sample_rate,
            output_sample_rate=self._output_sample_rate,
        )
        try:
            connection = self._connector.connect(
                config,
                on_open=lambda: self._handle_open(session_id),
                on_message=lambda message: self._handle_message(session_id, message),
                on_error=lambda code, message: self._handle_error(session_id, code, message),
                on_close=lambda: self._handle_close(session_id),
            )
        except Exception as exc:
            code, _ = classify_exception(exc)
            self._fail(session_id, code, f"connect failed: {exc}")
            return False

        with self._send_lock:
            with self._lock:
                current = session_id == self._session_id
                if current:
                    self._connection = connection
                    self._arm_limit_timer(session_id)
                pending, self._pending = self._pending, []
            if current:
                for frame in pending:
                    self._send(connection, frame)
        if not current:
            # stopped or failed while connecting
            self._safe_close(connection)
            return False
        return True

    def stop(self) -> None:
        """Close the session from any state; always ends in IDLE."""
        with self._lock:
            self._session_id += 1
            held = self._detach()
            change = self._transition(SessionState.IDLE)
        self._cleanup(held)
        self._notify_state(change)

    # ------------------------------------------------------------------
    # Connection callbacks (may arrive on SDK threads)
    # ------------------------------------------------------------------

    def _handle_open(self, session_id: int) -> None:
        with self._lock:
            if session_id != self._session_id or self._state != SessionState.CONNECTING:
                return
            change = self._transition(SessionState.LIVE)
        self._notify_state(change)

    def _handle_message(self, session_id: int, message: LiveMessage) -> None:
        entry = None
        with self._lock:
            if session_id != self._session_id or self._state != SessionState.LIVE:
                return
            if message.text:
                entry = TranscriptEntry(role=message.role, text=message.text)
                self._transcript.append(entry)
            if message.audio_b64:
                self._play(message.audio_b64)
            if message.interrupted:
                self._scheduler.interrupt()
        if entry is not None and self._on_transcript:
            self._on_transcript(entry)

    def _handle_error(self, session_id: int, code: str, message: str) -> None:
        self._fail(session_id, code or SESSION_PROTOCOL_ERROR, message)

    def _handle_close(self, session_id: int) -> None:
        with self._lock:
            if session_id != self._session_id:
                return
            logger.info("remote closed the interview session")
            self._session_id += 1
            held = self._detach()
            change = self._transition(SessionState.IDLE)
        self._cleanup(held)
        self._notify_state(change)

    # ------------------------------------------------------------------
    # Audio paths
    # ------------------------------------------------------------------

    def _on_capture_window(self, session_id: int, samples: Any) -> None:
        # Runs on the capture thread; windows arrive one at a time, in order.
        if session_id != self._session_id or self._state != SessionState.LIVE:
            return
        with self._send_lock:
            if session_id != self._session_id:
                return
            frame = audio_codec.to_frame(samples, self._capture.sample_rate, self._frames_captured)
            self._frames_captured += 1
            connection = self._connection
            if connection is None:
                # open arrived before connect() returned
                self._pending.append(frame)
                return
            self._send(connection, frame)

    def _send(self, connection: LiveConnection, frame: AudioFrame) -> None:
        logger.debug("sending frame %d (%d bytes)", frame.sequence, len(frame.pcm16_bytes))
        try:
            connection.send_audio(audio_codec.encode(frame.pcm16_bytes))
        except Exception as exc:
            logger.debug("dropping capture window: %s", exc)
            return
        self._frames_sent += 1

    def _play(self, audio_b64: str) -> None:
        try:
            data = audio_codec.decode(audio_b64)
        except (ValueError, TypeError) as exc:
            logger.debug("dropping undecodable audio chunk: %s", exc)
            return
        self._scheduler.enqueue(audio_codec.pcm16_to_buffer(data, self._output_sample_rate, 1))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _arm_limit_timer(self, session_id: int) -> None:
        if self._max_session_s <= 0:
            return

        def _expire() -> None:
            if session_id != self._session_id:
                return
            logger.info("interview reached the %.0fs limit", self._max_session_s)
            self.stop()

        timer = threading.Timer(self._max_session_s, _expire)
        timer.daemon = True
        self._limit_timer = timer
        timer.start()

    def _fail(self, session_id: int, code: str, message: str) -> None:
        with self._lock:
            if session_id != self._session_id:
                return
            self._session_id += 1
            logger.error("interview session error %s: %s", code, message)
            held = self._detach()
            change = self._transition(SessionState.ERROR)
        self._cleanup(held)
        self._notify_state(change)
        if self._on_error:
            self._on_error(code, message)

    def _detach(self) -> _Held:
        held = _Held(self._connection, self._capturing, self._limit_timer)
        self._connection = None
        self._capturing = False
        self._limit_timer = None
        return held

    def _cleanup(self, held: _Held) -> None:
        if held.timer is not None and held.timer is not threading.current_thread():
            held.timer.cancel()
        if held.connection is not None:
            self._safe_close(held.connection)
        if held.capturing:
            try:
                self._capture.stop()
            except Exception as exc:  # pragma: no cover
                logger.warning("capture stop failed: %s", exc)
        self._scheduler.interrupt()

    def _safe_close(self, connection: LiveConnection) -> None:
        try:
            connection.close()
        except Exception as exc:  # pragma: no cover
            logger.warning("connection close failed: %s", exc)

    def _transition(self, to_state: SessionState) -> StateChange:
        """Set the state under the lock; the caller notifies once it is released."""
        from_state = self._state
        if from_state == to_state:
            return None
        self._state = to_state
        self.status_text = to_state.value.capitalize()
        logger.info("interview session %s -> %s", from_state.value, to_state.value)
        return from_state, to_state

    def _notify_state(self, change: StateChange) -> None:
        if change is not None and self._on_state_change:
            self._on_state_change(*change)
