from __future__ import annotations

from pathlib import Path

from models import ApplicationLog, ApplicationStatus
from profile_store import JsonProfileStore, default_profile


def _log(log_id: str, status: ApplicationStatus = ApplicationStatus.COMPLETED) -> ApplicationLog:
    return ApplicationLog(
        id=log_id,
        job_title="Staff Engineer",
        company="Acme",
        status=status,
        timestamp="2026-01-05T10:00:00+00:00",
        url="https://acme.example/1",
        match_score=82,
        cover_letter="Dear Acme,",
    )


def test_missing_user_gets_default_profile(tmp_path: Path) -> None:
    store = JsonProfileStore(path=tmp_path / "state.json")

    profile = store.load_profile("local")

    assert profile.full_name == "John Doe"
    assert profile.preferences.match_threshold == 75
    assert "React" in profile.primary_resume.skills
    assert store.load_applications("local") == []


def test_default_profile_is_a_fresh_copy() -> None:
    first = default_profile()
    first.preferences.target_roles.append("Astronaut")

    assert "Astronaut" not in default_profile().preferences.target_roles


def test_profile_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    profile = default_profile()
    profile.full_name = "Ada Lovelace"
    profile.preferences.target_roles = ["Staff Engineer"]
    profile.resume_tracks[0].content.summary = "Analytical engine specialist"

    JsonProfileStore(path=path).save_profile("ada", profile)
    loaded = JsonProfileStore(path=path).load_profile("ada")

    assert loaded == profile


def test_applications_append_and_load(tmp_path: Path) -> None:
    store = JsonProfileStore(path=tmp_path / "state.json")
    store.save_profile("ada", default_profile())

    store.append_application("ada", _log("a1"))
    store.append_application("ada", _log("a2", ApplicationStatus.RISK_HALT))

    logs = store.load_applications("ada")
    assert [log.id for log in logs] == ["a1", "a2"]
    assert logs[1].status == ApplicationStatus.RISK_HALT
    assert logs[0].match_score == 82
    # saving the profile keeps the log
    store.save_profile("ada", default_profile())
    assert len(store.load_applications("ada")) == 2


def test_users_are_isolated(tmp_path: Path) -> None:
    store = JsonProfileStore(path=tmp_path / "state.json")
    store.append_application("ada", _log("a1"))

    assert store.load_applications("grace") == []
    assert store.load_profile("grace").full_name == "John Doe"


def test_unreadable_state_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{broken", encoding="utf-8")
    store = JsonProfileStore(path=path)

    assert store.load_profile("local").full_name == "John Doe"
    store.append_application("local", _log("a1"))
    assert [log.id for log in store.load_applications("local")] == ["a1"]
