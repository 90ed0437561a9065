# src/agent/store.py
"""
Persisted task queue.

The store holds `{queue: [task, ...], active: task | null}` and rewrites
the whole JSON file after every mutation, so a restarted process resumes
exactly where the previous one stopped. An active task found at load time
is resumed as-is.

Invariants:
  - at most one active task
  - the active task is never also in the queue (promote() pops it)
  - queue order is insertion order

Write failures do not raise: the in-memory state stays authoritative, the
store is marked dirty and the next mutation retries the write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event
from spec.types import (
    AfkTask,
    TaskDescriptor,
    TaskFormatError,
    describe_task,
    task_from_dict,
    task_to_dict,
)

log = logging.getLogger(__name__)

DEFAULT_TASK: TaskDescriptor = AfkTask(every_ms=5000)


class QueueStore:
    """FIFO task queue plus active slot, persisted as a JSON snapshot."""

    def __init__(
        self,
        path: Path,
        *,
        queue: Optional[Iterable[TaskDescriptor]] = None,
        active: Optional[TaskDescriptor] = None,
        dead_letter: Optional[Iterable[TaskDescriptor]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self._path = Path(path)
        self._queue: List[TaskDescriptor] = list(queue or [])
        self._active: Optional[TaskDescriptor] = active
        self._dead_letter: List[TaskDescriptor] = list(dead_letter or [])
        self._bus = bus
        self.dirty = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path, *, bus: Optional[EventBus] = None) -> "QueueStore":
        """
        Read the snapshot at `path`.

        A missing, unreadable or corrupt file yields an empty store; this
        never raises. Individual malformed task entries are dropped.
        """
        path = Path(path)
        if not path.exists():
            log.info("No state file at %s, starting empty", path)
            return cls(path, bus=bus)

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict) or not isinstance(raw.get("queue", []), list):
                raise ValueError("state file must be an object with a 'queue' list")
            if not isinstance(raw.get("deadLetter") or [], list):
                raise ValueError("'deadLetter' must be a list")
        except (OSError, ValueError) as exc:
            log.warning("Could not read %s, resetting. Error: %s", path, exc)
            return cls(path, bus=bus)

        queue = [t for t in (_decode(item, path) for item in raw.get("queue", [])) if t]
        active = _decode(raw["active"], path) if raw.get("active") is not None else None
        dead = [t for t in (_decode(item, path) for item in raw.get("deadLetter") or []) if t]

        store = cls(path, queue=queue, active=active, dead_letter=dead, bus=bus)
        log.info(
            "Loaded state from %s: active=%s queued=%d",
            path,
            describe_task(active) if active else None,
            len(queue),
        )
        return store

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def active(self) -> Optional[TaskDescriptor]:
        return self._active

    @property
    def queue(self) -> Tuple[TaskDescriptor, ...]:
        return tuple(self._queue)

    @property
    def dead_letter(self) -> Tuple[TaskDescriptor, ...]:
        return tuple(self._dead_letter)

    def is_empty(self) -> bool:
        return self._active is None and not self._queue

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "queue": [task_to_dict(t) for t in self._queue],
            "active": task_to_dict(self._active) if self._active is not None else None,
        }
        if self._dead_letter:
            data["deadLetter"] = [task_to_dict(t) for t in self._dead_letter]
        return data

    # ------------------------------------------------------------------
    # Mutations (each one persists)
    # ------------------------------------------------------------------

    def push(self, task: TaskDescriptor) -> None:
        self._queue.append(task)
        self._changed("push", task=task)

    def clear(self) -> None:
        """Empty the queue and the active slot."""
        self._queue = []
        self._active = None
        self._changed("clear")

    def replace(self, tasks: Iterable[TaskDescriptor]) -> None:
        """Replace the queue wholesale and drop the active task."""
        self._queue = list(tasks)
        self._active = None
        self._changed("replace")

    def promote(self) -> Optional[TaskDescriptor]:
        """
        Make the queue head the active task.

        No-op if a task is already active. Returns the active task (None if
        nothing is queued).
        """
        if self._active is not None:
            return self._active
        if not self._queue:
            return None
        self._active = self._queue.pop(0)
        self._changed("promote", task=self._active)
        return self._active

    def complete(self) -> None:
        """Clear the active slot after a finite task finished."""
        task, self._active = self._active, None
        self._changed("complete", task=task)

    def dead_letter_active(self) -> Optional[TaskDescriptor]:
        """Move the active task to the dead-letter list."""
        task, self._active = self._active, None
        if task is not None:
            self._dead_letter.append(task)
        self._changed("dead_letter", task=task)
        return task

    def ensure_default(self, task: TaskDescriptor = DEFAULT_TASK) -> bool:
        """Seed the default task when there is nothing to do. Returns True if seeded."""
        if not self.is_empty():
            return False
        self._queue.append(task)
        self._changed("bootstrap", task=task)
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> bool:
        """
        Write the snapshot atomically (temp file + rename).

        Returns False on I/O failure; the store then stays dirty.
        """
        text = json.dumps(self.to_dict(), indent=2)
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=str(directory)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            self.dirty = True
            log.error("Could not save state to %s: %s (keeping in-memory state)", self._path, exc)
            log_event(
                bus=self._bus,
                module="agent.store",
                event_type=EventType.PERSISTENCE_ERROR,
                message="State save failed",
                payload={"path": str(self._path), "error": repr(exc)},
            )
            return False

        self.dirty = False
        return True

    def _changed(self, op: str, task: Optional[TaskDescriptor] = None) -> None:
        self.save()
        log_event(
            bus=self._bus,
            module="agent.store",
            event_type=EventType.QUEUE_CHANGED,
            message=f"Queue {op}",
            payload={
                "op": op,
                "task": task_to_dict(task) if task is not None else None,
                "queue_len": len(self._queue),
                "active": task_to_dict(self._active) if self._active is not None else None,
            },
        )


def _decode(item: Any, path: Path) -> Optional[TaskDescriptor]:
    try:
        return task_from_dict(item)
    except TaskFormatError as exc:
        log.warning("Dropping malformed task %r from %s: %s", item, path, exc)
        return None


__all__ = ["QueueStore", "DEFAULT_TASK"]
