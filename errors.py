"""Shared error codes and user-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
SESSION_PROTOCOL_ERROR = "SESSION_PROTOCOL_ERROR"
LLM_PARSE_ERROR = "LLM_PARSE_ERROR"
COMMAND_BLOCKED = "COMMAND_BLOCKED"
TASK_ALREADY_RUNNING = "TASK_ALREADY_RUNNING"
TASK_FAILED = "TASK_FAILED"
CLIPBOARD_UNAVAILABLE = "CLIPBOARD_UNAVAILABLE"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone permission was denied.",
    DEVICE_UNAVAILABLE: "No microphone or speaker device is available.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    SESSION_PROTOCOL_ERROR: "Model session failed.",
    LLM_PARSE_ERROR: "Model response could not be parsed.",
    COMMAND_BLOCKED: "Command was not executed.",
    TASK_ALREADY_RUNNING: "This task is already running.",
    TASK_FAILED: "Risk Protocol Halt: the task failed.",
    CLIPBOARD_UNAVAILABLE: "Clipboard is not available.",
}


class CaptureUnavailableError(RuntimeError):
    """Raised by capture adapters when the microphone cannot be opened."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


def classify_exception(exc: BaseException) -> tuple[str, bool]:
    """Map an SDK/network exception to ``(code, retryable)``."""
    low = str(exc).lower()
    if "401" in low or "403" in low or "auth" in low or "api key" in low:
        return AUTH_FAILED, False
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return NETWORK_ERROR, True
    if "timeout" in low or "network" in low or "connection" in low:
        return NETWORK_ERROR, True
    return SESSION_PROTOCOL_ERROR, True


def user_message(code: str, detail: str = "") -> str:
    base = ERROR_MESSAGES.get(code, "Unexpected error.")
    if detail:
        return f"{base} ({detail})"
    return base


class CompletionError(RuntimeError):
    """Raised by completion clients when the remote call fails."""

    def __init__(self, code: str, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
