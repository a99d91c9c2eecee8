# drivedup Resume Scheduler
# The single pending "resume after N seconds" call of the job system

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import yaml

from drivedup.utils.paths import atomic_write

logger = logging.getLogger(__name__)


@runtime_checkable
class ResumeScheduler(Protocol):
    """Schedules the next execution of a paused job."""

    def schedule_resume(self, delay_seconds: float) -> None: ...

    def cancel_scheduled_resume(self) -> None: ...


class FileScheduler:
    """
    Pending resume stored as a due time in a YAML file.

    Scheduling replaces any earlier pending resume, so at most one exists.
    Whoever drives executions (`drivedup copy --follow`, or `drivedup resume`
    from cron) polls `pending()`/`is_due()`.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = datetime.now):
        self.path = path
        self._clock = clock

    def schedule_resume(self, delay_seconds: float) -> None:
        due_at = self._clock() + timedelta(seconds=delay_seconds)
        atomic_write(self.path, yaml.dump({"due_at": due_at.isoformat()}, default_flow_style=False))
        logger.info("Resume scheduled for %s", due_at.isoformat(timespec="seconds"))

    def cancel_scheduled_resume(self) -> None:
        if self.path.exists():
            self.path.unlink(missing_ok=True)
            logger.info("Pending resume cancelled")

    def pending(self) -> Optional[datetime]:
        """Due time of the pending resume, or None."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return datetime.fromisoformat(str(data["due_at"]))
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable resume marker %s: %s", self.path, e)
            return None

    def is_due(self) -> bool:
        due_at = self.pending()
        return due_at is not None and due_at <= self._clock()

    def seconds_until_due(self) -> Optional[float]:
        due_at = self.pending()
        if due_at is None:
            return None
        return max(0.0, (due_at - self._clock()).total_seconds())
