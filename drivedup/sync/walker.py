# drivedup Tree Walker
# Resumable breadth-first traversal shared by the copy and verify pipelines

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from drivedup.exceptions import RemoteError
from drivedup.jobs.audit import AuditLog, Severity
from drivedup.remote.base import ListPage, ListStatus, RemoteRef, RemoteTree
from drivedup.sync.budget import TimeBudget
from drivedup.sync.queue import Stage, Task
from drivedup.sync.state import CopyCounters, JobKind, JobState, VerifyCounters

logger = logging.getLogger(__name__)

StateCallback = Callable[[JobState], None]


class WalkOutcome(str, Enum):
    """How a walk ended."""

    COMPLETED = "completed"
    SUSPENDED = "suspended"


@dataclass
class WalkStats:
    """What happened during one execution (not persisted)."""

    copied: int = 0
    skipped: int = 0
    item_errors: int = 0
    listing_failures: int = 0
    folders_created: int = 0
    tasks_completed: int = 0


class TreeWalker:
    """
    Drives the work queue of a job until it is empty or the budget runs out.

    Each task enumerates its source folder's files, then its subfolders. The
    budget is checked before every item and before every listing call; the
    task's cursor and offset always point at the next item to process, so
    the state can be saved at any of those points and resumed exactly.

    Subclasses implement `process_file` and `process_folder`.
    """

    kind: JobKind
    label: str = "Walk"

    def __init__(
        self,
        remote: RemoteTree,
        state: JobState,
        budget: TimeBudget,
        audit: AuditLog,
        *,
        listing_retries: int = 0,
        progress_every: int = 20,
        on_progress: Optional[StateCallback] = None,
        on_checkpoint: Optional[StateCallback] = None,
    ):
        """
        Initialize walker.

        Args:
            remote: Remote tree to read (and, for copies, write).
            state: Job state; its queue and counters are updated in place.
            budget: Deadline of this execution.
            audit: Audit log for per-item and listing problems.
            listing_retries: Extra attempts for a failed listing before its
                stage is abandoned.
            progress_every: Call `on_progress` every N counted items.
            on_progress: Progress callback (status refresh).
            on_checkpoint: Called after every stage transition with the state
                to persist.
        """
        if state.kind != self.kind:
            raise ValueError(f"{type(self).__name__} cannot run a {state.kind.value} job")
        self.remote = remote
        self.state = state
        self.budget = budget
        self.audit = audit
        self.listing_retries = listing_retries
        self.progress_every = max(1, progress_every)
        self.on_progress = on_progress
        self.on_checkpoint = on_checkpoint
        self.stats = WalkStats()

    # -- traversal ----------------------------------------------------------

    def run(self) -> WalkOutcome:
        """Process tasks until the queue is empty or the budget expires."""
        queue = self.state.queue
        while queue:
            task = queue.head
            assert task is not None

            if task.stage == Stage.FILES:
                if not self._walk_stage(task):
                    return WalkOutcome.SUSPENDED
                task.advance()
                self._checkpoint()

            if not self._walk_stage(task):
                return WalkOutcome.SUSPENDED
            queue.complete_head()
            self.stats.tasks_completed += 1
            self._checkpoint()

        return WalkOutcome.COMPLETED

    def _list(self, task: Task) -> ListPage:
        if task.stage == Stage.FILES:
            return self.remote.list_files(task.source_id, task.cursor)
        return self.remote.list_folders(task.source_id, task.cursor)

    def _walk_stage(self, task: Task) -> bool:
        """
        Enumerate the current stage of `task` from its recorded position.

        Returns:
            True when the stage is finished (or abandoned), False when the
            budget expired.
        """
        subject = f"{self.label}-{task.stage.value.title()}"
        failures = 0

        while True:
            if self.budget.expired():
                return False

            page = self._list(task)

            if page.status == ListStatus.STALE_CURSOR and task.cursor is not None:
                self.audit.log(
                    self.state.job_row,
                    Severity.WARN,
                    subject,
                    f"Cursor expired for folder {task.source_id}. Restarting its enumeration.",
                )
                self._rewind_stage(task)
                continue

            if not page.ok:
                failures += 1
                if failures <= self.listing_retries:
                    logger.warning(
                        "Listing %s of %s failed (attempt %d): %s",
                        task.stage.value,
                        task.source_id,
                        failures,
                        page.error,
                    )
                    continue
                self.stats.listing_failures += 1
                self.audit.log(
                    self.state.job_row,
                    Severity.WARN,
                    subject,
                    f"INCOMPLETE: listing of folder {task.source_id} failed ({page.error}). "
                    f"Remaining {task.stage.value.lower()} skipped; re-run verification.",
                )
                return True
            failures = 0

            items = page.items
            for index in range(task.offset, len(items)):
                if self.budget.expired():
                    task.offset = index
                    return False
                task.offset = index
                if task.stage == Stage.FILES:
                    self.process_file(task, items[index])
                    self._maybe_report_progress()
                else:
                    self.process_folder(task, items[index])

            if not page.has_more:
                return True
            task.set_position(page.next_cursor, 0)

    def _rewind_stage(self, task: Task) -> None:
        """Undo the counters and child tasks of the current stage before it restarts."""
        counters = self.state.counters
        known = counters.to_dict()
        for name, amount in task.tally.items():
            if name in known:
                setattr(counters, name, getattr(counters, name) - amount)
        if task.enqueued:
            self.state.queue.drop_tail(task.enqueued)
        task.reset_stage()

    # -- helpers for subclasses ---------------------------------------------

    def _count(self, task: Task, name: str) -> None:
        counters = self.state.counters
        setattr(counters, name, getattr(counters, name) + 1)
        task.tally[name] = task.tally.get(name, 0) + 1

    def _enqueue(self, task: Task, source: RemoteRef, dest: RemoteRef) -> None:
        self.state.queue.push(Task(source_id=source.id, dest_id=dest.id))
        task.enqueued += 1

    def _log(self, severity: Severity, subject: str, message: str) -> None:
        self.audit.log(self.state.job_row, severity, subject, message)

    def _checkpoint(self) -> None:
        if self.on_checkpoint is not None:
            self.on_checkpoint(self.state)

    def _maybe_report_progress(self) -> None:
        if self.on_progress is None:
            return
        value = self.progress_value()
        if value and value % self.progress_every == 0:
            self.on_progress(self.state)

    # -- subclass interface -------------------------------------------------

    def process_file(self, task: Task, file: RemoteRef) -> None:
        raise NotImplementedError

    def process_folder(self, task: Task, folder: RemoteRef) -> None:
        raise NotImplementedError

    def progress_value(self) -> int:
        raise NotImplementedError


class CopyWalker(TreeWalker):
    """Mirrors each source folder into its destination, skipping existing names."""

    kind = JobKind.COPY
    label = "Copy"

    @property
    def counters(self) -> CopyCounters:
        assert isinstance(self.state.counters, CopyCounters)
        return self.state.counters

    def process_file(self, task: Task, file: RemoteRef) -> None:
        try:
            if self.remote.find_file(task.dest_id, file.name) is None:
                self.remote.copy_file(file, task.dest_id, file.name)
                self.stats.copied += 1
            else:
                self.stats.skipped += 1
        except RemoteError as e:
            self.stats.item_errors += 1
            self._log(Severity.ERROR, file.name, e.message)
        self._count(task, "total_processed")

    def process_folder(self, task: Task, folder: RemoteRef) -> None:
        try:
            dest = self.remote.find_folder(task.dest_id, folder.name)
            if dest is None:
                dest = self.remote.create_folder(task.dest_id, folder.name)
                self.stats.folders_created += 1
        except RemoteError as e:
            self.stats.item_errors += 1
            self._log(Severity.ERROR, folder.name, e.message)
            return
        self._enqueue(task, folder, dest)

    def progress_value(self) -> int:
        return self.counters.total_processed


class VerifyWalker(TreeWalker):
    """Checks that every source file and folder exists by name in the destination."""

    kind = JobKind.VERIFY
    label = "Verify"

    @property
    def counters(self) -> VerifyCounters:
        assert isinstance(self.state.counters, VerifyCounters)
        return self.state.counters

    def process_file(self, task: Task, file: RemoteRef) -> None:
        try:
            present = self.remote.find_file(task.dest_id, file.name) is not None
        except RemoteError as e:
            self.stats.item_errors += 1
            self._log(Severity.ERROR, file.name, e.message)
            self._count(task, "checked")
            return

        self._count(task, "checked")
        if not present:
            self._count(task, "mismatches")
            self._log(Severity.MISSING, file.name, "File missing in destination")

    def process_folder(self, task: Task, folder: RemoteRef) -> None:
        try:
            dest = self.remote.find_folder(task.dest_id, folder.name)
        except RemoteError as e:
            self.stats.item_errors += 1
            self._log(Severity.ERROR, folder.name, e.message)
            return

        if dest is None:
            # The missing subtree is not descended into
            self._count(task, "mismatches")
            self._log(Severity.MISSING_DIR, folder.name, "Folder missing in destination")
            return
        self._enqueue(task, folder, dest)

    def progress_value(self) -> int:
        return self.counters.checked


WALKERS: dict[JobKind, type[TreeWalker]] = {
    JobKind.COPY: CopyWalker,
    JobKind.VERIFY: VerifyWalker,
}


def create_walker(
    remote: RemoteTree,
    state: JobState,
    budget: TimeBudget,
    audit: AuditLog,
    **kwargs,
) -> TreeWalker:
    """Create the walker matching the kind of `state`."""
    return WALKERS[state.kind](remote, state, budget, audit, **kwargs)
