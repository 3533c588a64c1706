"""In-memory table of in-flight generation tasks.

Tasks live only while a generation call is running: the orchestrator removes
a task as soon as it reaches a terminal state, so polling a finished task
raises ``TaskNotFoundError``.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import replace

from .errors import TaskNotFoundError
from .models import GenerationTask, TaskStatus

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    """Return ``task_<epoch-millis>_<8 hex>``."""
    return f"task_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class TaskTable:
    """Thread-safe map of task id to :class:`GenerationTask`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, GenerationTask] = {}

    def create(self) -> GenerationTask:
        task = GenerationTask(id=new_task_id(), message="Initialising")
        with self._lock:
            self._tasks[task.id] = task
        logger.debug("Created task %s", task.id)
        return replace(task)

    def update(
        self, task_id: str, status: TaskStatus, progress: int, message: str | None = None
    ) -> None:
        """Record progress for a live task. Unknown ids are ignored."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return
            task.status = status
            task.progress = progress
            task.message = message
        logger.debug("Task %s -> %s (%d%%)", task_id, status.value, progress)

    def get(self, task_id: str) -> GenerationTask:
        """Snapshot of a live task.

        Raises:
            TaskNotFoundError: If the task was never created or already finished
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(f"task '{task_id}' does not exist")
            return replace(task)

    def remove(self, task_id: str) -> None:
        with self._lock:
            self._tasks.pop(task_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
