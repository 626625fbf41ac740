"""Application entrypoint: a line-oriented command terminal."""

from __future__ import annotations

import logging
import os

from app import CareerApp, style_from_text
from capture import SoundDeviceCapture
from career_service import CareerService
from command_dispatcher import CommandDispatcher
from config import JsonConfigStore
from errors import CaptureUnavailableError, CompletionError, user_message
from interfaces import ConfigStore
from job_search import LlmJobSearchProvider
from live_session import LiveSessionController
from llm import DashscopeCompletionClient
from models import ApplicationStatus, CoverLetterStyle, SessionState, TaskState, TranscriptEntry
from playback import PlaybackScheduler, SoundDeviceOutput
from profile_store import JsonProfileStore
from realtime import DashscopeLiveConnector

LOG_ENV = "CAREER_COPILOT_LOG"

SUGGESTIONS = (
    "Search for Staff React jobs in Berlin",
    "Change my target roles to Staff Engineer",
    "Improve my resume summary for leadership",
    "Switch to Resume Lab",
    "Find Upwork gigs for Python",
    "Start a mock interview",
)

HELP = (
    "Type an instruction in plain language, or one of:\n"
    "  :roadmap   generate the career roadmap\n"
    "  :plan      show the generated roadmap\n"
    "  :stop      end the interview session\n"
    "  :status    show task progress\n"
    "  :dismiss TASK  clear a finished or failed task\n"
    "  :jobs      list discovered jobs\n"
    "  :transcript  show the interview transcript\n"
    "  :apply URL [--style STYLE]  score and tailor for a posting, copy a cover letter and log it\n"
    "  :insights [ROLE]  salary range and demand for a role\n"
    "  :key KEY   save the DashScope API key\n"
    "  :quit      exit\n"
    "Cover letter styles: " + ", ".join(style.value for style in CoverLetterStyle)
)
STYLE_FLAG = "--style"


def _configure_logging() -> None:
    level_name = os.getenv(LOG_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _say(text: str) -> None:
    print(text, flush=True)


def _on_task(state: TaskState) -> None:
    line = f"[{state.id}] {state.status.value} {state.progress}%"
    if state.message:
        line += f" {state.message}"
    _say(line)


def _on_state(from_state: SessionState, to_state: SessionState) -> None:
    _say(f"[interview] {from_state.value} -> {to_state.value}")


def _on_transcript(entry: TranscriptEntry) -> None:
    _say(f"[interview] {entry}")


def _on_error(code: str, message: str) -> None:
    _say(f"[interview] {user_message(code, message)}")


def build_app(config: ConfigStore) -> tuple[CareerApp, SoundDeviceOutput]:
    api_key = config.get_api_key()
    client = DashscopeCompletionClient(api_key=api_key, model=config.get("text_model"))

    output = SoundDeviceOutput(sample_rate=config.get("output_sample_rate"))
    try:
        output.open()
    except CaptureUnavailableError as exc:
        # the session still runs; replies are transcribed but not heard
        logging.getLogger(__name__).warning("audio output unavailable: %s", exc)

    session = LiveSessionController(
        capture=SoundDeviceCapture(
            sample_rate=config.get("input_sample_rate"), window_size=config.get("capture_window")
        ),
        connector=DashscopeLiveConnector(api_key=api_key),
        scheduler=PlaybackScheduler(output),
        model=config.get("live_model"),
        voice=config.get("voice"),
        output_sample_rate=config.get("output_sample_rate"),
        max_session_s=config.get("max_session_s"),
        on_state_change=_on_state,
        on_transcript=_on_transcript,
        on_error=_on_error,
    )
    app = CareerApp(
        profile_store=JsonProfileStore(),
        dispatcher=CommandDispatcher(client),
        service=CareerService(client),
        job_provider=LlmJobSearchProvider(client),
        session=session,
        user_id=config.get("user_id"),
        progress_tick_s=config.get("progress_tick_s"),
        on_notice=_say,
    )
    app.tasks.subscribe(_on_task)
    return app, output


def _handle_local(app: CareerApp, config: ConfigStore, line: str) -> bool:
    """Run a ``:command``; returns False when the loop should end."""
    name, _, arg = line[1:].partition(" ")
    if name in ("quit", "exit", "q"):
        return False
    if name == "roadmap":
        if not app.start_roadmap():
            _say("Roadmap is already running")
    elif name == "stop":
        app.stop_interview()
    elif name == "status":
        _say(app.status_summary())
    elif name == "dismiss":
        state = app.dismiss_task(arg.strip())
        if state is None:
            _say(f"Unknown task, expected one of: {', '.join(sorted(app.tasks.snapshot()))}")
        else:
            _on_task(state)
    elif name == "jobs":
        for job in app.discovered_jobs or []:
            _say(f"- {job.title} @ {job.company} ({job.location or 'n/a'}) {job.url}")
        if not app.discovered_jobs:
            _say("No jobs discovered yet")
    elif name == "plan":
        roadmap = app.roadmap
        if roadmap is None:
            _say("No roadmap yet, run :roadmap")
        else:
            _say(f"{roadmap.current_market_value} -> {roadmap.target_market_value}")
            for step in roadmap.steps:
                _say(f"- {step.period}: {step.goal}")
    elif name == "transcript":
        for entry in app.session.transcript:
            _say(str(entry))
    elif name == "apply":
        _apply(app, arg)
    elif name == "insights":
        try:
            insights = app.market_insights(arg)
        except CompletionError as exc:
            _say(user_message(exc.code, str(exc)))
            return True
        if insights is None:
            _say("No market insights available")
        else:
            _say(f"{insights.salary_range} ({insights.demand_trend}) {', '.join(insights.top_skills)}")
    elif name == "key":
        config.set_api_key(arg.strip())
        _say("API key saved, restart to apply")
    else:
        _say(HELP)
    return True


def _apply(app: CareerApp, arg: str) -> None:
    target, _, style_text = arg.partition(STYLE_FLAG)
    target = target.strip()
    if not target:
        _say("Usage: :apply URL_OR_TEXT [--style STYLE]")
        return
    style = CoverLetterStyle.CHILL_PROFESSIONAL
    if style_text.strip():
        style = style_from_text(style_text)
        if style is None:
            _say(f"Unknown style {style_text.strip()!r}")
            return
    try:
        log = app.apply_to(target, style)
    except CompletionError as exc:
        _say(user_message(exc.code, str(exc)))
        return
    _say(f"{log.job_title} @ {log.company}: {log.status.value} (match {log.match_score})")
    mutation = app.tailored_resume
    if log.status == ApplicationStatus.COMPLETED and mutation is not None:
        keywords = ", ".join(mutation.keywords_injected) or "none"
        _say(f"Tailored resume: ATS ~{mutation.ats_score_estimate}, keywords {keywords}")
    if app.market is not None:
        _say(f"Market: {app.market.salary_range} ({app.market.demand_trend})")


def main() -> int:
    _configure_logging()
    config = JsonConfigStore()
    app, output = build_app(config)
    _say("Career copilot ready. Try:")
    for suggestion in SUGGESTIONS:
        _say(f"  {suggestion}")
    _say("Type :help for terminal commands.")
    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line.startswith(":"):
                if not _handle_local(app, config, line):
                    break
                continue
            command, outcome = app.submit(line)
            _say(f"[{command.action.value}] {outcome}")
    except KeyboardInterrupt:
        pass
    finally:
        app.shutdown()
        output.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
