"""Live voice session adapter using DashScope Qwen-Omni realtime.

The realtime API speaks the OpenAI-style event protocol over a websocket.
Inbound events are normalized into ``LiveMessage`` objects; everything the
controller does not need (session/rate-limit bookkeeping) is logged and
dropped.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable

from errors import AUTH_FAILED, classify_exception
from models import LiveMessage, LiveSessionConfig

try:
    import dashscope
    from dashscope.audio.qwen_omni import (
        AudioFormat,
        MultiModality,
        OmniRealtimeCallback,
        OmniRealtimeConversation,
    )
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    AudioFormat = None  # type: ignore
    MultiModality = None  # type: ignore
    OmniRealtimeCallback = object  # type: ignore
    OmniRealtimeConversation = None  # type: ignore

logger = logging.getLogger(__name__)

REALTIME_URL = "wss://dashscope.aliyuncs.com/api-ws/v1/realtime"


def to_live_message(event: dict) -> LiveMessage | None:
    """Translate one realtime event into a ``LiveMessage`` (or None)."""
    event_type = event.get("type", "")
    if event_type == "response.audio.delta":
        delta = event.get("delta", "")
        return LiveMessage(audio_b64=delta) if delta else None
    if event_type == "response.audio_transcript.done":
        text = str(event.get("transcript", "")).strip()
        return LiveMessage(text=text, role="ai") if text else None
    if event_type == "conversation.item.input_audio_transcription.completed":
        text = str(event.get("transcript", "")).strip()
        return LiveMessage(text=text, role="user") if text else None
    if event_type == "input_audio_buffer.speech_started":
        return LiveMessage(interrupted=True)
    return None


class _EventBridge(OmniRealtimeCallback):  # type: ignore[misc]
    def __init__(
        self,
        on_open: Callable[[], None],
        on_message: Callable[[LiveMessage], None],
        on_error: Callable[[str, str], None],
        on_close: Callable[[], None],
    ) -> None:
        super().__init__()
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close

    def on_open(self) -> None:
        self._on_open()

    def on_close(self, close_status_code: Any = None, close_msg: Any = None) -> None:
        logger.info("realtime connection closed (%s %s)", close_status_code, close_msg)
        self._on_close()

    def on_event(self, response: Any) -> None:
        if not isinstance(response, dict):
            return
        event_type = response.get("type", "")
        if event_type == "error":
            error = response.get("error") or {}
            message = str(error.get("message", "")) or "realtime error"
            code, _ = classify_exception(RuntimeError(f"{error.get('code', '')} {message}"))
            self._on_error(code, message)
            return
        message = to_live_message(response)
        if message is not None:
            self._on_message(message)
        elif event_type != "response.audio_transcript.delta":
            logger.debug("realtime event: %s", event_type)


class DashscopeLiveConnection:
    def __init__(self, conversation: Any) -> None:
        self._conversation = conversation
        self._closed = False

    def send_audio(self, data_b64: str) -> None:
        if self._closed:
            return
        self._conversation.append_audio(data_b64)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._conversation.close()


class DashscopeLiveConnector:
    def __init__(self, api_key: str = "", url: str = REALTIME_URL) -> None:
        self._api_key = api_key
        self._url = url

    def connect(
        self,
        config: LiveSessionConfig,
        on_open: Callable[[], None],
        on_message: Callable[[LiveMessage], None],
        on_error: Callable[[str, str], None],
        on_close: Callable[[], None],
    ) -> DashscopeLiveConnection:
        if dashscope is None or OmniRealtimeConversation is None:
            raise RuntimeError("dashscope realtime is not installed")
        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise PermissionError(f"{AUTH_FAILED}: No API key configured")
        dashscope.api_key = api_key
        if (config.input_sample_rate, config.output_sample_rate) != (16000, 24000):
            logger.warning(
                "realtime model only streams 16 kHz in / 24 kHz out, ignoring %d/%d",
                config.input_sample_rate,
                config.output_sample_rate,
            )

        bridge = _EventBridge(on_open, on_message, on_error, on_close)
        conversation = OmniRealtimeConversation(model=config.model, callback=bridge, url=self._url)
        conversation.connect()
        conversation.update_session(
            output_modalities=[MultiModality.AUDIO, MultiModality.TEXT],
            voice=config.voice,
            input_audio_format=AudioFormat.PCM_16000HZ_MONO_16BIT,
            output_audio_format=AudioFormat.PCM_24000HZ_MONO_16BIT,
            enable_input_audio_transcription=True,
            input_audio_transcription_model="gummy-realtime-v1",
            enable_turn_detection=True,
            turn_detection_type="server_vad",
            instructions=config.instructions,
        )
        logger.info("realtime session configured (model=%s, voice=%s)", config.model, config.voice)
        return DashscopeLiveConnection(conversation)
