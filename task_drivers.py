"""Drivers that run long operations and report into the task store."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from career_service import CareerService
from errors import TASK_ALREADY_RUNNING
from interfaces import JobSearchProvider
from models import CareerRoadmap, DiscoveredJob, ResumeContent, TaskStatus, UserProfile
from task_store import DISCOVERY, RESUME, ROADMAP, TaskStore

logger = logging.getLogger(__name__)

ROADMAP_MESSAGES = (
    "Scanning market signals...",
    "Benchmarking salary bands...",
    "Mapping skill gaps...",
    "Drafting milestones...",
)


class SimulatedProgress:
    """Advances a running task's progress on a fixed cadence until stopped.

    Progress only moves forward and never passes ``ceiling``. Once ``stop()``
    returns no further tick can be written.
    """

    def __init__(
        self,
        store: TaskStore,
        task_id: str,
        interval_s: float = 1.5,
        step: int = 10,
        ceiling: int = 90,
        messages: tuple[str, ...] = (),
    ) -> None:
        self._store = store
        self._task_id = task_id
        self._interval_s = interval_s
        self._step = step
        self._ceiling = ceiling
        self._messages = messages
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker, name=f"progress-{self._task_id}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def _worker(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            current = self._store.get(self._task_id)
            if current.status != TaskStatus.RUNNING:
                return
            target = min(current.progress + self._step, self._ceiling)
            if target <= current.progress:
                continue
            changes = {"progress": target}
            if self._messages:
                changes["message"] = self._messages[self.ticks % len(self._messages)]
            self._store.update(self._task_id, **changes)
            self.ticks += 1


def _fail(store: TaskStore, task_id: str, exc: BaseException, message: str) -> None:
    detail = str(exc) or type(exc).__name__
    logger.error("task %s failed: %s", task_id, detail)
    # progress is left where it was
    store.update(task_id, status=TaskStatus.ERROR, error=detail, message=message)


def discovery_body(
    store: TaskStore,
    provider: JobSearchProvider,
    query: str,
    on_result: Optional[Callable[[list[DiscoveredJob]], None]] = None,
) -> Optional[list[DiscoveredJob]]:
    try:
        store.update(DISCOVERY, progress=20, message=f"Agent scanning boards for '{query}'...")
        jobs = provider.search(query)
        store.update(DISCOVERY, progress=80, message=f"Found {len(jobs)} posting(s), syncing...")
        if on_result:
            on_result(jobs)
    except Exception as exc:
        _fail(store, DISCOVERY, exc, "Discovery halted")
        return None
    store.update(DISCOVERY, status=TaskStatus.COMPLETED, progress=100, message=f"{len(jobs)} lead(s) ready")
    return jobs


def roadmap_body(
    store: TaskStore,
    service: CareerService,
    profile: UserProfile,
    on_result: Optional[Callable[[CareerRoadmap], None]] = None,
    tick_interval_s: float = 1.5,
) -> Optional[CareerRoadmap]:
    ticker = SimulatedProgress(store, ROADMAP, interval_s=tick_interval_s, messages=ROADMAP_MESSAGES)
    try:
        store.update(ROADMAP, progress=10, message="Analyzing profile...")
        ticker.start()
        try:
            roadmap = service.generate_roadmap(profile)
        finally:
            ticker.stop()
        if on_result:
            on_result(roadmap)
    except Exception as exc:
        _fail(store, ROADMAP, exc, "Roadmap generation halted")
        return None
    store.update(ROADMAP, status=TaskStatus.COMPLETED, progress=100, message="Evolution plan ready")
    return roadmap


def resume_body(
    store: TaskStore,
    service: CareerService,
    profile: UserProfile,
    instruction: str,
    on_result: Optional[Callable[[ResumeContent], None]] = None,
) -> Optional[ResumeContent]:
    try:
        store.update(RESUME, progress=30, message="Rewriting resume...")
        resume = service.improve_resume(profile, instruction)
        if on_result:
            on_result(resume)
    except Exception as exc:
        _fail(store, RESUME, exc, "Resume improvement halted")
        return None
    store.update(RESUME, status=TaskStatus.COMPLETED, progress=100, message="Resume updated")
    return resume


class TaskRunner:
    """Starts drivers on background threads, one run per task id at a time."""

    def __init__(self, store: TaskStore, on_rejected: Optional[Callable[[str, str], None]] = None) -> None:
        self._store = store
        self._on_rejected = on_rejected
        self._threads: dict[str, threading.Thread] = {}

    def start(self, task_id: str, body: Callable[[], object], message: str = "") -> bool:
        if not self._store.try_start(task_id, message):
            if self._on_rejected:
                self._on_rejected(TASK_ALREADY_RUNNING, task_id)
            return False
        thread = threading.Thread(target=body, name=f"task-{task_id}", daemon=True)
        self._threads[task_id] = thread
        thread.start()
        return True

    def join(self, task_id: str, timeout: Optional[float] = None) -> bool:
        thread = self._threads.get(task_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
