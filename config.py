"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

API_KEY_ENV = "DASHSCOPE_API_KEY"

DEFAULTS: dict[str, Any] = {
    "api_key": "",
    "text_model": "qwen-plus",
    "live_model": "qwen-omni-turbo-realtime-latest",
    "voice": "Chelsie",
    "input_sample_rate": 16000,
    "output_sample_rate": 24000,
    "capture_window": 4096,
    "max_session_s": 0.0,
    "progress_tick_s": 1.5,
    "user_id": "local",
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "career_copilot" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", "")) or os.getenv(API_KEY_ENV, "")

    def set_api_key(self, key: str) -> None:
        self.set("api_key", key)

    def get(self, name: str) -> Any:
        if name not in DEFAULTS:
            raise KeyError(f"Unknown setting: {name}")
        default = DEFAULTS[name]
        value = self._read_all().get(name, default)
        # stored values keep the type of their default
        try:
            return type(default)(value)
        except (TypeError, ValueError):
            logger.warning("ignoring invalid %s=%r in %s", name, value, self._path)
            return default

    def set(self, name: str, value: Any) -> None:
        if name not in DEFAULTS:
            raise KeyError(f"Unknown setting: {name}")
        data = self._read_all()
        data[name] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("config %s unreadable, using defaults: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
