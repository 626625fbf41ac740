from __future__ import annotations

import threading
import time

from errors import NETWORK_ERROR, TASK_ALREADY_RUNNING, CompletionError
from models import CareerRoadmap, DiscoveredJob, ResumeContent, RoadmapStep, TaskState, TaskStatus, UserProfile
from task_drivers import (
    SimulatedProgress,
    TaskRunner,
    discovery_body,
    resume_body,
    roadmap_body,
)
from task_store import DISCOVERY, RESUME, ROADMAP, TaskStore


class FakeProvider:
    def __init__(self, jobs=None, error=None) -> None:  # noqa: ANN001
        self.jobs = jobs or []
        self.error = error
        self.queries: list[str] = []

    def search(self, query: str, limit: int = 8) -> list[DiscoveredJob]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.jobs)


class FakeService:
    def __init__(self, error=None) -> None:  # noqa: ANN001
        self.error = error
        self.release = threading.Event()
        self.release.set()

    def generate_roadmap(self, profile: UserProfile) -> CareerRoadmap:
        self.release.wait(5.0)
        if self.error is not None:
            raise self.error
        return CareerRoadmap(current_market_value="$150k", steps=[RoadmapStep(period="Q1", goal="Lead")])

    def improve_resume(self, profile: UserProfile, instruction: str) -> ResumeContent:
        if self.error is not None:
            raise self.error
        return ResumeContent(summary=f"Improved: {instruction}")


def _record(store: TaskStore, task_id: str) -> list[TaskState]:
    seen: list[TaskState] = []
    store.subscribe(lambda state: seen.append(state) if state.id == task_id else None)
    return seen


def _wait_until(predicate, timeout: float = 3.0) -> bool:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


# ---------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------

def test_discovery_reports_monotonic_progress_to_completion() -> None:
    store = TaskStore()
    seen = _record(store, DISCOVERY)
    jobs = [DiscoveredJob(title="Staff Engineer", company="Acme")]
    results: list[list[DiscoveredJob]] = []

    assert store.try_start(DISCOVERY, "Starting discovery...")
    assert discovery_body(store, FakeProvider(jobs), "staff react", on_result=results.append) == jobs

    assert seen[0].status == TaskStatus.RUNNING and seen[0].progress == 0
    assert any(s.status == TaskStatus.RUNNING and 0 < s.progress < 100 and s.message for s in seen)
    progress = [s.progress for s in seen]
    assert progress == sorted(progress)
    final = store.get(DISCOVERY)
    assert final.status == TaskStatus.COMPLETED
    assert final.progress == 100
    assert results == [jobs]


def test_discovery_is_noop_while_running() -> None:
    store = TaskStore()
    store.try_start(DISCOVERY)
    provider = FakeProvider()

    runner = TaskRunner(store)

    assert runner.start(DISCOVERY, lambda: discovery_body(store, provider, "anything")) is False
    assert provider.queries == []
    assert store.get(DISCOVERY).status == TaskStatus.RUNNING


def test_discovery_failure_keeps_progress_and_records_error() -> None:
    store = TaskStore()
    store.try_start(DISCOVERY)

    result = discovery_body(store, FakeProvider(error=CompletionError(NETWORK_ERROR, "timed out")), "q")

    assert result is None
    state = store.get(DISCOVERY)
    assert state.status == TaskStatus.ERROR
    assert state.error == "timed out"
    assert state.progress == 20
    assert state.message


# ---------------------------------------------------------------
# Roadmap
# ---------------------------------------------------------------

def test_roadmap_simulated_progress_stops_at_result() -> None:
    store = TaskStore()
    service = FakeService()
    service.release.clear()
    seen = _record(store, ROADMAP)
    runner = TaskRunner(store)
    results: list[CareerRoadmap] = []

    runner.start(
        ROADMAP,
        lambda: roadmap_body(store, service, UserProfile(), on_result=results.append, tick_interval_s=0.01),
    )
    assert _wait_until(lambda: store.get(ROADMAP).progress >= 50)
    assert store.get(ROADMAP).status == TaskStatus.RUNNING

    service.release.set()
    assert runner.join(ROADMAP, timeout=3.0)

    final = store.get(ROADMAP)
    assert final.status == TaskStatus.COMPLETED
    assert final.progress == 100
    assert len(results) == 1

    count = len(seen)
    time.sleep(0.05)
    # no tick lands after the terminal write
    assert len(seen) == count
    assert seen[-1].status == TaskStatus.COMPLETED
    assert all(s.progress <= 90 for s in seen if s.status == TaskStatus.RUNNING)


def test_roadmap_failure_stops_ticker_and_keeps_progress() -> None:
    store = TaskStore()
    service = FakeService(error=CompletionError(NETWORK_ERROR, "network down"))
    service.release.clear()
    runner = TaskRunner(store)

    runner.start(ROADMAP, lambda: roadmap_body(store, service, UserProfile(), tick_interval_s=0.01))
    assert _wait_until(lambda: store.get(ROADMAP).progress >= 30)
    service.release.set()
    assert runner.join(ROADMAP, timeout=3.0)

    state = store.get(ROADMAP)
    assert state.status == TaskStatus.ERROR
    assert state.error == "network down"
    assert 30 <= state.progress <= 90

    time.sleep(0.05)
    assert store.get(ROADMAP) == state


def test_simulated_progress_never_passes_ceiling() -> None:
    store = TaskStore()
    store.try_start(ROADMAP)
    store.update(ROADMAP, progress=85)
    ticker = SimulatedProgress(store, ROADMAP, interval_s=0.005, messages=("a", "b"))

    ticker.start()
    assert _wait_until(lambda: store.get(ROADMAP).progress == 90)
    time.sleep(0.03)
    ticker.stop()

    assert store.get(ROADMAP).progress == 90
    assert ticker.ticks == 1


def test_simulated_progress_exits_when_task_not_running() -> None:
    store = TaskStore()
    ticker = SimulatedProgress(store, ROADMAP, interval_s=0.005)

    ticker.start()
    time.sleep(0.03)
    ticker.stop()

    assert store.get(ROADMAP).progress == 0
    assert ticker.ticks == 0


# ---------------------------------------------------------------
# Resume and runner
# ---------------------------------------------------------------

def test_resume_body_completes_with_result() -> None:
    store = TaskStore()
    store.try_start(RESUME)
    results: list[ResumeContent] = []

    resume_body(store, FakeService(), UserProfile(), "lead with impact", on_result=results.append)

    assert store.get(RESUME).status == TaskStatus.COMPLETED
    assert results[0].summary == "Improved: lead with impact"


def test_runner_rejects_second_start() -> None:
    store = TaskStore()
    rejected: list[tuple[str, str]] = []
    runner = TaskRunner(store, on_rejected=lambda code, task_id: rejected.append((code, task_id)))
    release = threading.Event()

    assert runner.start(DISCOVERY, lambda: release.wait(3.0)) is True
    assert runner.start(DISCOVERY, lambda: None) is False
    release.set()
    runner.join(DISCOVERY, timeout=3.0)

    assert rejected == [(TASK_ALREADY_RUNNING, DISCOVERY)]


def test_runner_join_unknown_task() -> None:
    assert TaskRunner(TaskStore()).join("never-started") is True
