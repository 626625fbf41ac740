"""Text completion adapter using DashScope ``Generation`` and JSON helpers.

Every structured call asks the model for JSON and parses it with
``parse_json``, which returns the caller's default instead of raising when the
response is empty or malformed.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Optional

from errors import AUTH_FAILED, SESSION_PROTOCOL_ERROR, CompletionError, classify_exception

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class DashscopeCompletionClient:
    def __init__(
        self,
        api_key: str = "",
        model: str = "qwen-plus",
        request_timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._request_timeout_s = request_timeout_s

    def complete(self, prompt: str, *, system: Optional[str] = None, json_output: bool = False) -> str:
        if dashscope is None:
            raise CompletionError(SESSION_PROTOCOL_ERROR, "dashscope is not installed")

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise CompletionError(AUTH_FAILED, "No API key configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "api_key": api_key,
            "model": self._model,
            "messages": messages,
            "result_format": "message",
            "timeout": self._request_timeout_s,
        }
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = dashscope.Generation.call(**kwargs)
        except Exception as exc:
            code, retryable = classify_exception(exc)
            logger.error("completion call failed (%s): %s", code, exc)
            raise CompletionError(code, str(exc), retryable) from exc

        status = _field(response, "status_code")
        if status is not None and int(status) != 200:
            message = f"{status} {_field(response, 'code') or ''} {_field(response, 'message') or ''}".strip()
            code, retryable = classify_exception(RuntimeError(message))
            logger.error("completion call returned %s", message)
            raise CompletionError(code, message, retryable)

        return self._extract_text(response)

    def _extract_text(self, response: object) -> str:
        output = _field(response, "output") or {}
        choices = _field(output, "choices") or []
        if choices:
            message = _field(choices[0], "message") or {}
            content = _field(message, "content")
            if isinstance(content, list):
                return "".join(str(_field(part, "text") or "") for part in content)
            return str(content or "")
        # text result_format
        return str(_field(output, "text") or "")


def _field(obj: object, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def parse_json(text: Optional[str], default: Any) -> Any:
    """Parse a model response as JSON, falling back to ``default``.

    Markdown code fences around the payload are tolerated. The parsed value
    must have the same container type as ``default`` (list or dict).
    """
    if not text or not text.strip():
        return default
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        value = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.warning("discarding unparseable model response (%d chars)", len(text))
        return default
    if isinstance(default, (list, dict)) and not isinstance(value, type(default)):
        # JSON-mode models sometimes wrap a list in a single-key object
        if isinstance(default, list) and isinstance(value, dict):
            for item in value.values():
                if isinstance(item, list):
                    return item
        logger.warning("model response had type %s, expected %s", type(value).__name__, type(default).__name__)
        return default
    return value
