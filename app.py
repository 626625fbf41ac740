"""Application state owner: routes commands to the components that own state.

``CareerApp`` holds the profile, the active tab and the latest results, and is
the only place a ``CommandResult`` turns into side effects. Background work
goes through the shared ``TaskStore`` so progress is visible from any tab.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import fields
from datetime import datetime, timezone
from typing import Callable, Optional

from career_service import CareerService
from clipboard import ClipboardService
from command_dispatcher import CommandDispatcher
from errors import COMMAND_BLOCKED, TASK_ALREADY_RUNNING, user_message
from interfaces import JobSearchProvider, ProfileStore
from live_session import LiveSessionController
from models import (
    TABS,
    ApplicationLog,
    ApplicationStatus,
    CareerRoadmap,
    CommandAction,
    CommandResult,
    CoverLetterStyle,
    DiscoveredJob,
    Job,
    MarketInsights,
    MatchResult,
    Preferences,
    ResumeContent,
    ResumeMutation,
    ResumeTrack,
    TaskState,
    TaskStatus,
    UserProfile,
    parse_bool,
)
from task_drivers import TaskRunner, discovery_body, resume_body, roadmap_body
from task_store import DISCOVERY, RESUME, ROADMAP, TaskStore

logger = logging.getLogger(__name__)

NoticeCallback = Callable[[str], None]

_PROFILE_FIELDS = ("full_name", "email", "phone", "linkedin", "portfolio")
_PREFERENCE_FIELDS = {f.name for f in fields(Preferences)}


def style_from_text(text: str) -> Optional[CoverLetterStyle]:
    """Match ``ultra_concise``, ``ultra-concise`` or ``Ultra Concise`` to a style."""
    key = text.strip().lower().replace("_", " ").replace("-", " ")
    for style in CoverLetterStyle:
        if key in (style.value.lower(), style.name.lower().replace("_", " ")):
            return style
    return None


class CareerApp:
    def __init__(
        self,
        profile_store: ProfileStore,
        dispatcher: CommandDispatcher,
        service: CareerService,
        job_provider: JobSearchProvider,
        session: LiveSessionController,
        task_store: Optional[TaskStore] = None,
        clipboard: Optional[ClipboardService] = None,
        user_id: str = "local",
        progress_tick_s: float = 1.5,
        on_notice: Optional[NoticeCallback] = None,
    ) -> None:
        self._profile_store = profile_store
        self._dispatcher = dispatcher
        self._service = service
        self._job_provider = job_provider
        self._session = session
        self._clipboard = clipboard or ClipboardService()
        self._user_id = user_id
        self._progress_tick_s = progress_tick_s
        self._on_notice = on_notice

        self.tasks = task_store or TaskStore()
        self.runner = TaskRunner(self.tasks, on_rejected=self._on_task_rejected)
        self._lock = threading.Lock()

        self.profile: UserProfile = profile_store.load_profile(user_id)
        self.applications: list[ApplicationLog] = profile_store.load_applications(user_id)
        self.active_tab = "discover"
        self.discovered_jobs: list[DiscoveredJob] = []
        self.roadmap: Optional[CareerRoadmap] = None
        self.market: Optional[MarketInsights] = None
        self.tailored_resume: Optional[ResumeMutation] = None
        self.banner = ""

    @property
    def session(self) -> LiveSessionController:
        return self._session

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def submit(self, text: str) -> tuple[CommandResult, str]:
        """Interpret free text and execute the resulting command."""
        command = self._dispatcher.interpret(text)
        return command, self.execute(command)

    def execute(self, command: CommandResult) -> str:
        action = command.action
        params = command.params
        if action != CommandAction.BLOCKED:
            self.banner = ""

        if action == CommandAction.SWITCH_TAB:
            tab = params.get("target_tab", "")
            if tab not in TABS:
                return self._block(f"Unknown tab: {tab}")
            self.active_tab = tab
            return f"Switched to {tab}"
        if action == CommandAction.SEARCH_JOBS:
            query = params.get("query", "")
            self.active_tab = "discover"
            if not self.start_discovery(query):
                return user_message(TASK_ALREADY_RUNNING)
            return f"Searching for '{query}'"
        if action == CommandAction.FIND_GIGS:
            query = self.gig_query(params.get("query", ""))
            self.active_tab = "discover"
            if not self.start_discovery(query):
                return user_message(TASK_ALREADY_RUNNING)
            return f"Searching for '{query}'"
        if action == CommandAction.IMPROVE_RESUME:
            self.active_tab = "resume"
            if not self.improve_resume(params.get("improvement_prompt", "")):
                return user_message(TASK_ALREADY_RUNNING)
            return "Improving resume"
        if action == CommandAction.START_INTERVIEW:
            self.active_tab = "interview"
            if not self.start_interview():
                return f"Interview not started ({self._session.status_text})"
            return "Interview session connecting"
        if action == CommandAction.UPDATE_PROFILE:
            self.update_profile(params.get("profile_updates") or {}, params.get("preferences_updates") or {})
            return "Profile updated"
        if action == CommandAction.STATUS:
            return self.status_summary()
        return self._block(command.reason)

    def _block(self, reason: str) -> str:
        self.banner = reason or user_message(COMMAND_BLOCKED)
        logger.info("blocked: %s", self.banner)
        return self.banner

    def gig_query(self, query: str = "") -> str:
        subject = query.strip()
        if not subject:
            roles = self.profile.preferences.target_roles
            subject = roles[0] if roles else "software development"
        return f"freelance gigs for {subject}"

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def start_discovery(self, query: str) -> bool:
        def body() -> None:
            discovery_body(self.tasks, self._job_provider, query, on_result=self._set_jobs)

        return self.runner.start(DISCOVERY, body, f"Starting discovery for '{query}'...")

    def start_roadmap(self) -> bool:
        profile = self.profile

        def body() -> None:
            roadmap_body(
                self.tasks, self._service, profile, on_result=self._set_roadmap, tick_interval_s=self._progress_tick_s
            )

        return self.runner.start(ROADMAP, body, "Starting roadmap...")

    def improve_resume(self, instruction: str) -> bool:
        profile = self.profile

        def body() -> None:
            resume_body(self.tasks, self._service, profile, instruction, on_result=self._set_primary_resume)

        return self.runner.start(RESUME, body, "Starting resume improvement...")

    def _set_jobs(self, jobs: list[DiscoveredJob]) -> None:
        with self._lock:
            self.discovered_jobs = list(jobs)

    def _set_roadmap(self, roadmap: CareerRoadmap) -> None:
        with self._lock:
            self.roadmap = roadmap

    def _set_primary_resume(self, resume: ResumeContent) -> None:
        with self._lock:
            if self.profile.resume_tracks:
                self.profile.resume_tracks[0].content = resume
            else:
                self.profile.resume_tracks.append(ResumeTrack(id="primary", name="Primary", content=resume))
            profile = self.profile
        self._profile_store.save_profile(self._user_id, profile)

    def _on_task_rejected(self, code: str, task_id: str) -> None:
        logger.info("%s: %s", task_id, user_message(code))
        self._notice(f"{task_id}: {user_message(code)}")

    def status_summary(self) -> str:
        lines = [f"Tab: {self.active_tab}", f"Interview: {self._session.status_text}"]
        for task_id, state in sorted(self.tasks.snapshot().items()):
            line = f"{task_id}: {state.status.value} {state.progress}%"
            if state.message:
                line += f" - {state.message}"
            if state.status == TaskStatus.ERROR and state.error:
                line += f" ({state.error})"
            lines.append(line)
        return "\n".join(lines)

    def dismiss_task(self, task_id: str) -> Optional[TaskState]:
        """Clear a finished or failed task back to idle; running tasks are left alone."""
        if task_id not in self.tasks.snapshot():
            return None
        return self.tasks.reset(task_id)

    # ------------------------------------------------------------------
    # Interview
    # ------------------------------------------------------------------

    def start_interview(self) -> bool:
        self.active_tab = "interview"
        return self._session.start(self.profile)

    def stop_interview(self) -> None:
        self._session.stop()

    # ------------------------------------------------------------------
    # Profile and applications
    # ------------------------------------------------------------------

    def update_profile(self, profile_updates: dict, preferences_updates: dict) -> UserProfile:
        with self._lock:
            data = self.profile.to_dict()
            for name in _PROFILE_FIELDS:
                if profile_updates.get(name) is not None:
                    data[name] = str(profile_updates[name])
            prefs = data["preferences"]
            for name, value in preferences_updates.items():
                if name not in _PREFERENCE_FIELDS or value is None:
                    continue
                current = prefs[name]
                if isinstance(current, bool):
                    value = parse_bool(value, current)
                elif isinstance(current, list) and not isinstance(value, (list, str)):
                    logger.warning("ignoring %s update of type %s", name, type(value).__name__)
                    continue
                prefs[name] = value
            self.profile = UserProfile.from_dict(data)
            profile = self.profile
        self._profile_store.save_profile(self._user_id, profile)
        logger.info("profile updated: %s", sorted(set(profile_updates) | set(preferences_updates)))
        return profile

    def record_application(
        self,
        job: Job,
        match: Optional[MatchResult] = None,
        cover_letter: str = "",
        status: ApplicationStatus = ApplicationStatus.COMPLETED,
        style: Optional[CoverLetterStyle] = None,
    ) -> ApplicationLog:
        log = ApplicationLog(
            id=uuid.uuid4().hex[:9],
            job_title=job.title,
            company=job.company,
            status=status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            url=job.apply_url,
            match_score=match.score if match else None,
            cover_letter=cover_letter,
            cover_letter_style=style.value if style else "",
        )
        self._profile_store.append_application(self._user_id, log)
        with self._lock:
            self.applications.append(log)
        return log

    def market_insights(self, role: str = "") -> Optional[MarketInsights]:
        """Salary band and demand for ``role`` (default: first target role), or None."""
        role = role.strip()
        if not role:
            roles = self.profile.preferences.target_roles
            role = roles[0] if roles else ""
        if not role:
            return None
        insights = self._service.market_insights(role)
        with self._lock:
            self.market = insights
        return insights

    def apply_to(self, job_text: str, style: CoverLetterStyle = CoverLetterStyle.CHILL_PROFESSIONAL) -> ApplicationLog:
        """Extract, score, tailor and write a letter for one posting, then log it.

        Postings scoring below the profile's match threshold are logged as
        RISK_HALT without tailoring or a cover letter. Market insights for the
        role are refreshed on the way and may come back empty.
        """
        job = self._service.extract_job(job_text)
        match = self._service.calculate_match(job, self.profile)
        self.market_insights(job.title)
        if match.score < self.profile.preferences.match_threshold:
            logger.info("%s @ %s scored %d, below threshold", job.title, job.company, match.score)
            return self.record_application(job, match, status=ApplicationStatus.RISK_HALT)

        mutation = self._service.mutate_resume(job, self.profile)
        with self._lock:
            self.tailored_resume = mutation
        letter = self._service.generate_cover_letter(job, self.profile, style)
        copied = self._clipboard.copy_text(letter)
        if not copied.success:
            self._notice(f"Cover letter not copied: {copied.reason}")
        return self.record_application(job, match, cover_letter=letter, style=style)

    def shutdown(self) -> None:
        self._session.stop()

    def _notice(self, text: str) -> None:
        if self._on_notice:
            self._on_notice(text)
