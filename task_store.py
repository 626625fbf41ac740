"""Process-wide progress records for long-running agent operations.

One ``TaskState`` per named operation lives here for the whole process, so
any view can read or observe a task no matter which view started it. Writers
merge fields into their own record; records are never replaced or deleted.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import fields, replace
from typing import Any, Callable, Iterable

from models import TaskState, TaskStatus

logger = logging.getLogger(__name__)

DISCOVERY = "discovery"
ROADMAP = "roadmap"
RESUME = "resume"
DEFAULT_TASK_IDS = (DISCOVERY, ROADMAP, RESUME)

TaskListener = Callable[[TaskState], None]

_MUTABLE_FIELDS = {f.name for f in fields(TaskState)} - {"id"}


class TaskStore:
    def __init__(self, task_ids: Iterable[str] = DEFAULT_TASK_IDS) -> None:
        self._lock = threading.RLock()
        self._tasks: dict[str, TaskState] = {}
        self._listeners: list[TaskListener] = []
        for task_id in task_ids:
            self.register(task_id)

    def register(self, task_id: str) -> None:
        with self._lock:
            self._tasks.setdefault(task_id, TaskState(id=task_id))

    def get(self, task_id: str) -> TaskState:
        with self._lock:
            return replace(self._tasks[task_id])

    def snapshot(self) -> dict[str, TaskState]:
        with self._lock:
            return {task_id: replace(state) for task_id, state in self._tasks.items()}

    def is_running(self, task_id: str) -> bool:
        with self._lock:
            return self._tasks[task_id].status == TaskStatus.RUNNING

    def update(self, task_id: str, **changes: Any) -> TaskState:
        """Merge ``changes`` into the task's record; other fields persist."""
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)}")
        if "status" in changes:
            changes["status"] = TaskStatus(changes["status"])
        if "progress" in changes:
            changes["progress"] = max(0, min(100, int(changes["progress"])))
        with self._lock:
            state = self._tasks[task_id]
            for name, value in changes.items():
                setattr(state, name, value)
            current = replace(state)
        self._notify(current)
        return current

    def try_start(self, task_id: str, message: str = "") -> bool:
        """Move the task to running at progress 0 unless it is already running."""
        with self._lock:
            state = self._tasks[task_id]
            if state.status == TaskStatus.RUNNING:
                logger.info("task %s already running, start ignored", task_id)
                return False
            state.status = TaskStatus.RUNNING
            state.progress = 0
            state.message = message
            state.error = None
            current = replace(state)
        logger.info("task %s started", task_id)
        self._notify(current)
        return True

    def reset(self, task_id: str) -> TaskState:
        with self._lock:
            if self._tasks[task_id].status == TaskStatus.RUNNING:
                return replace(self._tasks[task_id])
        return self.update(task_id, status=TaskStatus.IDLE, progress=0, message="", error=None)

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, state: TaskState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception as exc:
                logger.error("task listener error for %s: %s", state.id, exc)
