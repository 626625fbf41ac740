"""Tests for the DashScope realtime adapter."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from errors import AUTH_FAILED, SESSION_PROTOCOL_ERROR
from models import LiveMessage, LiveSessionConfig
from realtime import DashscopeLiveConnection, DashscopeLiveConnector, _EventBridge, to_live_message


# ---------------------------------------------------------------
# Event mapping
# ---------------------------------------------------------------

def test_audio_delta_maps_to_audio_message() -> None:
    message = to_live_message({"type": "response.audio.delta", "delta": "AAAA"})

    assert message == LiveMessage(audio_b64="AAAA")


def test_transcripts_map_to_roles() -> None:
    ai = to_live_message({"type": "response.audio_transcript.done", "transcript": " Tell me more. "})
    user = to_live_message(
        {"type": "conversation.item.input_audio_transcription.completed", "transcript": "Sure."}
    )

    assert (ai.role, ai.text) == ("ai", "Tell me more.")
    assert (user.role, user.text) == ("user", "Sure.")


def test_speech_started_maps_to_interrupted() -> None:
    message = to_live_message({"type": "input_audio_buffer.speech_started"})

    assert message.interrupted is True
    assert message.text == ""
    assert message.audio_b64 == ""


def test_irrelevant_events_are_dropped() -> None:
    assert to_live_message({"type": "session.updated"}) is None
    assert to_live_message({"type": "response.audio.delta", "delta": ""}) is None
    assert to_live_message({"type": "response.audio_transcript.done", "transcript": "  "}) is None
    assert to_live_message({}) is None


# ---------------------------------------------------------------
# Callback bridge
# ---------------------------------------------------------------

def _bridge():  # noqa: ANN202
    calls: dict[str, list] = {"open": [], "message": [], "error": [], "close": []}
    bridge = _EventBridge(
        on_open=lambda: calls["open"].append(True),
        on_message=calls["message"].append,
        on_error=lambda code, msg: calls["error"].append((code, msg)),
        on_close=lambda: calls["close"].append(True),
    )
    return bridge, calls


def test_bridge_forwards_lifecycle_and_messages() -> None:
    bridge, calls = _bridge()

    bridge.on_open()
    bridge.on_event({"type": "response.audio.delta", "delta": "AAAA"})
    bridge.on_event({"type": "response.audio_transcript.delta", "delta": "Te"})
    bridge.on_event("not a dict")
    bridge.on_close(1000, "bye")

    assert calls["open"] == [True]
    assert calls["message"] == [LiveMessage(audio_b64="AAAA")]
    assert calls["close"] == [True]
    assert calls["error"] == []


def test_bridge_maps_error_events() -> None:
    bridge, calls = _bridge()

    bridge.on_event({"type": "error", "error": {"code": "invalid_value", "message": "bad audio"}})
    bridge.on_event({"type": "error", "error": {"code": "401", "message": "Unauthorized"}})

    assert calls["error"] == [(SESSION_PROTOCOL_ERROR, "bad audio"), (AUTH_FAILED, "Unauthorized")]
    assert calls["message"] == []


# ---------------------------------------------------------------
# Connection / connector
# ---------------------------------------------------------------

def test_connection_send_and_close() -> None:
    conversation = MagicMock()
    connection = DashscopeLiveConnection(conversation)

    connection.send_audio("AAAA")
    connection.close()
    connection.close()
    connection.send_audio("BBBB")

    conversation.append_audio.assert_called_once_with("AAAA")
    conversation.close.assert_called_once()


def _config() -> LiveSessionConfig:
    return LiveSessionConfig(model="qwen-omni-turbo-realtime-latest", instructions="Interview Ada.", voice="Chelsie")


@patch("realtime.AudioFormat")
@patch("realtime.MultiModality")
@patch("realtime.OmniRealtimeConversation")
@patch("realtime.dashscope")
def test_connect_opens_and_configures_session(
    mock_ds: MagicMock, mock_conv_cls: MagicMock, mock_modality: MagicMock, mock_format: MagicMock
) -> None:
    conversation = mock_conv_cls.return_value

    connector = DashscopeLiveConnector(api_key="test-key", url="wss://example.invalid/realtime")
    connection = connector.connect(
        _config(), on_open=lambda: None, on_message=lambda m: None, on_error=lambda c, m: None, on_close=lambda: None
    )

    assert mock_ds.api_key == "test-key"
    kwargs = mock_conv_cls.call_args.kwargs
    assert kwargs["model"] == "qwen-omni-turbo-realtime-latest"
    assert kwargs["url"] == "wss://example.invalid/realtime"
    assert isinstance(kwargs["callback"], _EventBridge)
    conversation.connect.assert_called_once()

    session = conversation.update_session.call_args.kwargs
    assert session["voice"] == "Chelsie"
    assert session["instructions"] == "Interview Ada."
    assert session["enable_turn_detection"] is True
    assert session["turn_detection_type"] == "server_vad"
    assert session["enable_input_audio_transcription"] is True
    assert session["input_audio_format"] == mock_format.PCM_16000HZ_MONO_16BIT
    assert session["output_audio_format"] == mock_format.PCM_24000HZ_MONO_16BIT

    connection.send_audio("AAAA")
    conversation.append_audio.assert_called_once_with("AAAA")


@patch("realtime.OmniRealtimeConversation")
@patch("realtime.dashscope")
def test_connect_without_key_raises_auth(mock_ds: MagicMock, mock_conv_cls: MagicMock, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)

    with pytest.raises(PermissionError, match=AUTH_FAILED):
        DashscopeLiveConnector(api_key="").connect(
            _config(), on_open=lambda: None, on_message=lambda m: None, on_error=lambda c, m: None, on_close=lambda: None
        )
    mock_conv_cls.assert_not_called()


@patch("realtime.dashscope", None)
def test_connect_without_dashscope() -> None:
    with pytest.raises(RuntimeError, match="not installed"):
        DashscopeLiveConnector(api_key="k").connect(
            _config(), on_open=lambda: None, on_message=lambda m: None, on_error=lambda c, m: None, on_close=lambda: None
        )
