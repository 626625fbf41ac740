"""Protocol interfaces for the collaborators behind the core components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from models import ApplicationLog, DiscoveredJob, LiveMessage, LiveSessionConfig, UserProfile

if TYPE_CHECKING:
    from playback import PlaybackSource

WindowCallback = Callable[[Any], None]


class AudioCapture(Protocol):
    sample_rate: int

    def start(self, on_window: WindowCallback) -> None: ...

    def stop(self) -> None: ...


class AudioOutput(Protocol):
    sample_rate: int

    def current_time(self) -> float: ...

    def play(self, source: "PlaybackSource") -> None: ...

    def stop_source(self, source: "PlaybackSource") -> None: ...

    def close(self) -> None: ...


class LiveConnection(Protocol):
    def send_audio(self, data_b64: str) -> None: ...

    def close(self) -> None: ...


class LiveConnector(Protocol):
    def connect(
        self,
        config: LiveSessionConfig,
        on_open: Callable[[], None],
        on_message: Callable[[LiveMessage], None],
        on_error: Callable[[str, str], None],
        on_close: Callable[[], None],
    ) -> LiveConnection: ...


class CompletionClient(Protocol):
    def complete(self, prompt: str, *, system: Optional[str] = None, json_output: bool = False) -> str: ...


class JobSearchProvider(Protocol):
    def search(self, query: str, limit: int = 8) -> list[DiscoveredJob]: ...


class ProfileStore(Protocol):
    def load_profile(self, user_id: str) -> UserProfile: ...

    def save_profile(self, user_id: str, profile: UserProfile) -> None: ...

    def load_applications(self, user_id: str) -> list[ApplicationLog]: ...

    def append_application(self, user_id: str, log: ApplicationLog) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...
