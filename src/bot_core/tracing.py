# src/bot_core/tracing.py
"""
Tracing for task runs.

Thin structured-logging layer around task execution: one record per run
(finished, failed or cancelled), kept in a rolling buffer for status tools
and tests, plus one compact log line per run.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional

from spec.types import TaskDescriptor, task_to_dict


@dataclass
class TaskTraceRecord:
    """Structured record of a single task run."""

    timestamp: float           # wall-clock time (time.time()) at the end of the run
    duration_s: float

    task_type: str
    params: Dict[str, Any]

    outcome: str               # "completed" | "failed" | "cancelled"
    error: Optional[str]
    attempt: int               # 1 for the first run of this active task


class TaskTracer:
    """
    In-memory task tracer with logging.

    Keeps the last `max_records` runs and logs each at info level
    (warning for failures) on the "bot_core.task" logger.
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        max_records: int = 1_000,
    ) -> None:
        self._logger = logger or logging.getLogger("bot_core.task")
        self._records: Deque[TaskTraceRecord] = deque(maxlen=max_records)

    def record(
        self,
        *,
        task: TaskDescriptor,
        outcome: str,
        duration_s: float,
        attempt: int = 1,
        error: Optional[BaseException] = None,
    ) -> TaskTraceRecord:
        params = task_to_dict(task)
        params.pop("type", None)
        record = TaskTraceRecord(
            timestamp=time.time(),
            duration_s=duration_s,
            task_type=task.type,
            params=params,
            outcome=outcome,
            error=str(error) if error is not None else None,
            attempt=attempt,
        )
        self._records.append(record)

        level = logging.WARNING if outcome == "failed" else logging.INFO
        self._logger.log(
            level,
            "task_run type=%s outcome=%s attempt=%d duration=%.3fs error=%s",
            record.task_type,
            record.outcome,
            record.attempt,
            record.duration_s,
            record.error,
        )
        return record

    def get_records(self) -> List[TaskTraceRecord]:
        """Snapshot of the buffered records, oldest first."""
        return list(self._records)

    def last(self) -> Optional[TaskTraceRecord]:
        return self._records[-1] if self._records else None
