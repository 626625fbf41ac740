"""JSON file persistence for the user profile and application log.

State for every user id lives in one file:
``{"<user_id>": {"profile": {...}, "applications": [...]}}``.
A user with no saved profile gets ``default_profile()``.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path

from models import ApplicationLog, UserProfile

logger = logging.getLogger(__name__)

_DEFAULT_PROFILE = {
    "full_name": "John Doe",
    "email": "john.doe@example.com",
    "phone": "555-0123",
    "linkedin": "linkedin.com/in/johndoe",
    "portfolio": "johndoe.dev",
    "resume_tracks": [
        {
            "id": "frontend-track",
            "name": "Senior Frontend Developer",
            "content": {
                "summary": (
                    "Senior Software Engineer with 8 years of experience in React and Node.js. "
                    "Builds performant, accessible web applications and leads technical teams."
                ),
                "skills": ["React", "TypeScript", "Node.js", "AWS", "Tailwind", "System Design"],
                "experience": [
                    {
                        "company": "Tech Giant Corp",
                        "role": "Senior Frontend Engineer",
                        "duration": "2020 - Present",
                        "achievements": [
                            "Led the migration of a legacy monolith to micro-frontends, cutting deployment times by 60%.",
                            "Introduced automated accessibility testing across 5 product lines.",
                            "Mentored 5 junior engineers, 3 of whom were promoted within a year.",
                        ],
                    }
                ],
                "projects": [
                    {
                        "name": "Open Source UI Lib",
                        "description": "A headless UI library for React with 5k+ GitHub stars.",
                        "technologies": ["React", "Tailwind", "Jest"],
                    }
                ],
                "education": [
                    {
                        "institution": "University of Technology",
                        "degree": "B.S. in Computer Science",
                        "duration": "2012 - 2016",
                    }
                ],
            },
        }
    ],
    "preferences": {
        "target_roles": ["Senior Software Engineer", "Staff Engineer", "Frontend Lead"],
        "min_salary": "160k",
        "locations": ["New York", "Remote"],
        "remote_only": True,
        "match_threshold": 75,
        "preferred_platforms": ["LinkedIn", "Indeed", "Wellfound"],
    },
}


def default_profile() -> UserProfile:
    return UserProfile.from_dict(copy.deepcopy(_DEFAULT_PROFILE))


class JsonProfileStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "career_copilot" / "state.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def load_profile(self, user_id: str) -> UserProfile:
        with self._lock:
            entry = self._read_all().get(user_id) or {}
        if not isinstance(entry, dict) or not isinstance(entry.get("profile"), dict):
            return default_profile()
        return UserProfile.from_dict(entry["profile"])

    def save_profile(self, user_id: str, profile: UserProfile) -> None:
        with self._lock:
            data = self._read_all()
            entry = self._entry(data, user_id)
            entry["profile"] = profile.to_dict()
            self._write_all(data)
        logger.info("profile saved for %s", user_id)

    def load_applications(self, user_id: str) -> list[ApplicationLog]:
        with self._lock:
            entry = self._read_all().get(user_id) or {}
        raw = entry.get("applications") if isinstance(entry, dict) else None
        logs = [ApplicationLog.from_dict(item) for item in raw or []]
        return [log for log in logs if log is not None]

    def append_application(self, user_id: str, log: ApplicationLog) -> None:
        with self._lock:
            data = self._read_all()
            entry = self._entry(data, user_id)
            entry["applications"].append(log.to_dict())
            self._write_all(data)
        logger.info("application %s logged for %s (%s)", log.id, user_id, log.status.value)

    @staticmethod
    def _entry(data: dict, user_id: str) -> dict:
        entry = data.get(user_id)
        if not isinstance(entry, dict):
            entry = {}
            data[user_id] = entry
        if not isinstance(entry.get("applications"), list):
            entry["applications"] = []
        return entry

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("state file %s unreadable, starting fresh: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
