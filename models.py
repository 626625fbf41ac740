"""Core data models for the app."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    LIVE = "LIVE"
    ERROR = "ERROR"


class TaskStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class CommandAction(str, Enum):
    SWITCH_TAB = "switch_tab"
    SEARCH_JOBS = "search_jobs"
    IMPROVE_RESUME = "improve_resume"
    START_INTERVIEW = "start_interview"
    UPDATE_PROFILE = "update_profile"
    STATUS = "status"
    FIND_GIGS = "find_gigs"
    BLOCKED = "blocked"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    EXTRACTING = "EXTRACTING"
    MATCHING = "MATCHING"
    GENERATING_CL = "GENERATING_CL"
    MUTATING_RESUME = "MUTATING_RESUME"
    APPLYING = "APPLYING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    RISK_HALT = "RISK_HALT"


class CoverLetterStyle(str, Enum):
    ULTRA_CONCISE = "Ultra Concise"
    RESULTS_DRIVEN = "Results Driven"
    FOUNDER_FRIENDLY = "Founder Friendly"
    TECHNICAL_DEEP_CUT = "Technical Deep Cut"
    CHILL_PROFESSIONAL = "Chill Professional"


TABS = ("discover", "resume", "roadmap", "interview", "history", "profile")


# ----------------------------------------------------------------------
# Audio / live session
# ----------------------------------------------------------------------


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    sequence: int = 0


@dataclass
class LiveMessage:
    """Inbound message from the remote voice model, vendor-neutral."""

    text: str = ""
    role: str = "ai"
    audio_b64: str = ""
    interrupted: bool = False


@dataclass
class TranscriptEntry:
    role: str
    text: str

    def __str__(self) -> str:
        prefix = "AI" if self.role == "ai" else "You"
        return f"{prefix}: {self.text}"


@dataclass
class CopyResult:
    success: bool
    reason: str


@dataclass
class LiveSessionConfig:
    model: str
    instructions: str
    voice: str = "Chelsie"
    input_sample_rate: int = 16000
    output_sample_rate: int = 24000


# ----------------------------------------------------------------------
# Tasks and commands
# ----------------------------------------------------------------------


@dataclass
class TaskState:
    id: str
    status: TaskStatus = TaskStatus.IDLE
    progress: int = 0
    message: str = ""
    error: Optional[str] = None


@dataclass
class CommandResult:
    action: CommandAction
    goal: str = ""
    reason: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def blocked(cls, reason: str) -> "CommandResult":
        return cls(action=CommandAction.BLOCKED, reason=reason or "Command blocked")

    @property
    def is_blocked(self) -> bool:
        return self.action == CommandAction.BLOCKED


# ----------------------------------------------------------------------
# Career records
# ----------------------------------------------------------------------


_TRUE_WORDS = {"true", "yes", "y", "on", "1"}
_FALSE_WORDS = {"false", "no", "n", "off", "0"}


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        # "Staff Engineer, Frontend Lead"
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return default


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


@dataclass
class Experience:
    company: str = ""
    role: str = ""
    duration: str = ""
    achievements: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Experience":
        data = _dict(data)
        return cls(
            company=str(data.get("company", "")),
            role=str(data.get("role", "")),
            duration=str(data.get("duration", "")),
            achievements=_str_list(data.get("achievements")),
        )


@dataclass
class Project:
    name: str = ""
    description: str = ""
    technologies: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Project":
        data = _dict(data)
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            technologies=_str_list(data.get("technologies")),
        )


@dataclass
class Education:
    institution: str = ""
    degree: str = ""
    duration: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Education":
        data = _dict(data)
        return cls(
            institution=str(data.get("institution", "")),
            degree=str(data.get("degree", "")),
            duration=str(data.get("duration", "")),
        )


@dataclass
class ResumeContent:
    summary: str = ""
    skills: list[str] = field(default_factory=list)
    experience: list[Experience] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    education: list[Education] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "ResumeContent":
        data = _dict(data)
        return cls(
            summary=str(data.get("summary", "")),
            skills=_str_list(data.get("skills")),
            experience=[Experience.from_dict(e) for e in data.get("experience") or [] if isinstance(e, dict)],
            projects=[Project.from_dict(p) for p in data.get("projects") or [] if isinstance(p, dict)],
            education=[Education.from_dict(e) for e in data.get("education") or [] if isinstance(e, dict)],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResumeTrack:
    id: str
    name: str
    content: ResumeContent = field(default_factory=ResumeContent)

    @classmethod
    def from_dict(cls, data: Any) -> "ResumeTrack":
        data = _dict(data)
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            content=ResumeContent.from_dict(data.get("content")),
        )


@dataclass
class Preferences:
    target_roles: list[str] = field(default_factory=list)
    min_salary: str = ""
    locations: list[str] = field(default_factory=list)
    remote_only: bool = False
    match_threshold: int = 75
    preferred_platforms: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Preferences":
        data = _dict(data)
        try:
            threshold = max(0, min(100, int(float(data.get("match_threshold", 75)))))
        except (TypeError, ValueError, OverflowError):
            threshold = 75
        return cls(
            target_roles=_str_list(data.get("target_roles")),
            min_salary=str(data.get("min_salary", "")),
            locations=_str_list(data.get("locations")),
            remote_only=parse_bool(data.get("remote_only", False)),
            match_threshold=threshold,
            preferred_platforms=_str_list(data.get("preferred_platforms")),
        )


@dataclass
class UserProfile:
    full_name: str = ""
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    portfolio: str = ""
    resume_tracks: list[ResumeTrack] = field(default_factory=list)
    preferences: Preferences = field(default_factory=Preferences)

    @property
    def primary_resume(self) -> ResumeContent:
        if self.resume_tracks:
            return self.resume_tracks[0].content
        return ResumeContent()

    @classmethod
    def from_dict(cls, data: Any) -> "UserProfile":
        data = _dict(data)
        return cls(
            full_name=str(data.get("full_name", "")),
            email=str(data.get("email", "")),
            phone=str(data.get("phone", "")),
            linkedin=str(data.get("linkedin", "")),
            portfolio=str(data.get("portfolio", "")),
            resume_tracks=[
                ResumeTrack.from_dict(t) for t in data.get("resume_tracks") or [] if isinstance(t, dict)
            ],
            preferences=Preferences.from_dict(data.get("preferences")),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DiscoveredJob:
    title: str
    company: str
    location: str = ""
    url: str = ""
    source: str = ""
    salary: Optional[str] = None
    thumbnail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["DiscoveredJob"]:
        data = _dict(data)
        title = str(data.get("title", "")).strip()
        company = str(data.get("company", "")).strip()
        if not title or not company:
            return None
        return cls(
            title=title,
            company=company,
            location=str(data.get("location", "")),
            url=str(data.get("url", "")),
            source=str(data.get("source", "")),
            salary=data.get("salary") or None,
            thumbnail=data.get("thumbnail") or None,
        )


@dataclass
class Job:
    id: str
    title: str
    company: str
    description: str = ""
    location: str = ""
    skills: list[str] = field(default_factory=list)
    apply_url: str = ""
    platform: str = "Other"


@dataclass
class MatchResult:
    score: int = 0
    reasoning: str = ""
    missing_skills: list[str] = field(default_factory=list)


@dataclass
class RoadmapStep:
    period: str = ""
    goal: str = ""
    action_items: list[str] = field(default_factory=list)
    skill_gain: list[str] = field(default_factory=list)


@dataclass
class CareerRoadmap:
    current_market_value: str = ""
    target_market_value: str = ""
    gap_analysis: str = ""
    steps: list[RoadmapStep] = field(default_factory=list)


@dataclass
class MarketInsights:
    salary_range: str = ""
    demand_trend: str = "Stable"
    top_skills: list[str] = field(default_factory=list)


@dataclass
class ResumeMutation:
    resume: ResumeContent
    keywords_injected: list[str] = field(default_factory=list)
    reordering_justification: str = ""
    ats_score_estimate: int = 50


@dataclass
class ApplicationLog:
    id: str
    job_title: str
    company: str
    status: ApplicationStatus
    timestamp: str
    url: str = ""
    match_score: Optional[int] = None
    cover_letter: str = ""
    cover_letter_style: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ApplicationLog"]:
        data = _dict(data)
        try:
            status = ApplicationStatus(data.get("status", ApplicationStatus.PENDING.value))
        except ValueError:
            status = ApplicationStatus.PENDING
        if not data.get("id"):
            return None
        return cls(
            id=str(data["id"]),
            job_title=str(data.get("job_title", "")),
            company=str(data.get("company", "")),
            status=status,
            timestamp=str(data.get("timestamp", "")),
            url=str(data.get("url", "")),
            match_score=data.get("match_score"),
            cover_letter=str(data.get("cover_letter", "")),
            cover_letter_style=str(data.get("cover_letter_style", "")),
        )
