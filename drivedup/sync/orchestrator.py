# drivedup Job Orchestrator
# Picks the job to run, drives its walker and reports status to the job sheet

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from drivedup.config.schema import RuntimeConfig
from drivedup.exceptions import InvalidJobError, JobBusyError, RemoteError
from drivedup.jobs.audit import AuditLog, Severity
from drivedup.jobs.scheduler import ResumeScheduler
from drivedup.jobs.sheet import JobRow, JobSheet
from drivedup.remote.base import RemoteTree
from drivedup.sync.budget import TimeBudget
from drivedup.sync.state import CheckpointManager, CopyCounters, JobKind, JobState, VerifyCounters
from drivedup.sync.walker import WalkOutcome, WalkStats, create_walker

logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    """Result of one orchestrator invocation."""

    COMPLETED = "completed"
    SUSPENDED = "suspended"
    FAILED = "failed"
    NO_PENDING_JOBS = "no_pending_jobs"
    IDLE = "idle"


@dataclass
class RunReport:
    """What an invocation did, for display by the CLI."""

    outcome: RunOutcome
    kind: Optional[JobKind] = None
    job_row: Optional[int] = None
    status: str = ""
    counters: dict[str, int] = field(default_factory=dict)
    queue_length: int = 0
    stats: Optional[WalkStats] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome != RunOutcome.FAILED


# -- status strings written to the job sheet ---------------------------------


def status_field(kind: JobKind) -> str:
    """Job sheet column a job of `kind` reports into."""
    return "status" if kind == JobKind.COPY else "verification"


def running_status(state: JobState) -> str:
    counters = state.counters
    if isinstance(counters, CopyCounters):
        return f"Processing... ({counters.total_processed} processed)"
    return f"Verifying... ({counters.checked} checked)"


def paused_status(state: JobState) -> str:
    counters = state.counters
    if isinstance(counters, CopyCounters):
        return f"Pausing... ({counters.total_processed} processed)"
    return f"Verifying... ({counters.checked} checked, paused)"


def done_status(state: JobState) -> str:
    counters = state.counters
    if isinstance(counters, CopyCounters):
        return f"Done. ({counters.total_processed} files processed)"
    assert isinstance(counters, VerifyCounters)
    if counters.mismatches:
        return f"Done. {counters.checked} checked. {counters.mismatches} ISSUES (See Logs)"
    return f"Done. {counters.checked} checked. Perfect Match."


def reset_job(checkpoints: CheckpointManager, scheduler: ResumeScheduler, audit: AuditLog) -> bool:
    """
    Clear the checkpoint slot and cancel the pending resume.

    Needs no remote tree, so a job can be reset while its backend is unreachable.

    Returns:
        True if a checkpoint was cleared.
    """
    cleared = checkpoints.clear()
    scheduler.cancel_scheduled_resume()
    if cleared:
        audit.log(None, Severity.INFO, "Job", "Checkpoint cleared by reset")
    return cleared


class JobOrchestrator:
    """
    Runs at most one job at a time.

    A job lives in the checkpoint slot from its start until it completes or
    is reset. Every invocation either resumes that job or starts the next
    pending copy from the job sheet, works until the time budget runs out,
    and schedules its own resumption.
    """

    def __init__(
        self,
        runtime: RuntimeConfig,
        remote: RemoteTree,
        sheet: JobSheet,
        checkpoints: CheckpointManager,
        scheduler: ResumeScheduler,
        audit: AuditLog,
        *,
        budget_factory: Optional[Callable[[float], TimeBudget]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            runtime: Budget and traversal settings.
            remote: Remote tree to work on.
            sheet: Job sheet (job descriptors and status cells).
            checkpoints: The single job slot.
            scheduler: Schedules resumptions of a paused job.
            audit: Audit log.
            budget_factory: Creates the budget of an execution from the
                configured limit. Defaults to a wall-clock TimeBudget.
        """
        self.runtime = runtime
        self.remote = remote
        self.sheet = sheet
        self.checkpoints = checkpoints
        self.scheduler = scheduler
        self.audit = audit
        self.budget_factory = budget_factory or TimeBudget

    # -- operator commands --------------------------------------------------

    def start_or_resume(self) -> RunReport:
        """Resume the job in flight, or start the next pending copy job."""
        while True:
            state = self.checkpoints.load()
            if state is None:
                return self._start_next_copy()

            if not self._is_marked_done(state):
                return self._run(state)

            # Finished earlier but the slot was not released
            logger.info("Releasing finished %s job of row %d", state.kind.value, state.job_row)
            self.checkpoints.clear()
            self.scheduler.cancel_scheduled_resume()
            if state.kind == JobKind.VERIFY:
                return RunReport(outcome=RunOutcome.IDLE, kind=state.kind, job_row=state.job_row)

    def verify(self, row: int) -> RunReport:
        """
        Start verifying the copy recorded in a job row.

        Raises:
            JobBusyError: If any job holds the checkpoint slot.
            InvalidJobError: If the row has no source id or destination URL.
        """
        if self.checkpoints.load() is not None:
            raise JobBusyError(
                "A job (copy or verify) is already in progress. Wait for it to finish or reset it."
            )

        job = self.sheet.get(row)
        if job is None:
            raise InvalidJobError(f"Job row {row} does not exist")
        if not job.source_id or not job.destination_url:
            raise InvalidJobError(f"Job row {row} needs a source id and a destination URL")

        try:
            dest_id = self.remote.parse_folder_url(job.destination_url)
        except RemoteError as e:
            self.sheet.update(row, verification=f"Error: {e.message}")
            raise InvalidJobError(f"Invalid destination URL in row {row}: {e.message}") from e

        self.sheet.update(row, verification="Initializing Verification...")
        state = JobState.new_verify(row, job.source_id, dest_id)
        self.checkpoints.save(state)
        return self._run(state)

    def reset(self) -> bool:
        """
        Abandon the job in flight. The partial destination is left as is.

        Returns:
            True if a checkpoint was cleared.
        """
        return reset_job(self.checkpoints, self.scheduler, self.audit)

    # -- internals ----------------------------------------------------------

    def _is_marked_done(self, state: JobState) -> bool:
        job = self.sheet.get(state.job_row)
        if job is None:
            return False
        return getattr(job, status_field(state.kind)).startswith("Done")

    def _start_next_copy(self) -> RunReport:
        job = self.sheet.find_pending()
        if job is None:
            return RunReport(outcome=RunOutcome.NO_PENDING_JOBS)

        try:
            state = self._setup_copy(job)
        except RemoteError as e:
            status = f"Error: {e.message}"
            self.sheet.update(job.row, status=status)
            self.audit.log(job.row, Severity.ERROR, job.source_id, f"Error accessing source folder: {e.message}")
            return RunReport(
                outcome=RunOutcome.FAILED,
                kind=JobKind.COPY,
                job_row=job.row,
                status=status,
                error=e.message,
            )
        return self._run(state)

    def _setup_copy(self, job: JobRow) -> JobState:
        """
        Create the destination root and persist the initial state.

        Raises:
            RemoteError: If the source folder is inaccessible or the
                destination cannot be created. Nothing is persisted.
        """
        self.sheet.update(job.row, status="Initializing...")
        source = self.remote.get_folder(job.source_id)
        if source.id == self.remote.root_id:
            # The destination would be created inside the tree being copied
            raise RemoteError("Cannot duplicate the root folder into itself")
        dest_name = f"{source.name}{self.runtime.destination_suffix}"
        dest = self.remote.find_folder(self.remote.root_id, dest_name)
        if dest is None:
            dest = self.remote.create_folder(self.remote.root_id, dest_name)

        self.sheet.update(job.row, destination_url=self.remote.folder_url(dest.id))
        state = JobState.new_copy(job.row, source.id, dest.id)
        self.checkpoints.save(state)
        self.audit.log(job.row, Severity.INFO, source.name, f"Copy started into {dest_name!r}")
        return state

    def _set_status(self, state: JobState, value: str) -> None:
        try:
            self.sheet.update(state.job_row, **{status_field(state.kind): value})
        except InvalidJobError:
            logger.warning("Job row %d no longer exists; status %r not written", state.job_row, value)

    def _report(self, outcome: RunOutcome, state: JobState, status: str, **kwargs) -> RunReport:
        return RunReport(
            outcome=outcome,
            kind=state.kind,
            job_row=state.job_row,
            status=status,
            counters=state.counters.to_dict(),
            queue_length=len(state.queue),
            **kwargs,
        )

    def _run(self, state: JobState) -> RunReport:
        budget = self.budget_factory(self.runtime.time_limit_seconds)
        walker = create_walker(
            self.remote,
            state,
            budget,
            self.audit,
            listing_retries=self.runtime.listing_retries,
            progress_every=self.runtime.progress_every,
            on_progress=lambda s: self._set_status(s, running_status(s)),
            on_checkpoint=self.checkpoints.save,
        )
        self._set_status(state, running_status(state))

        try:
            outcome = walker.run()
        except Exception as e:
            # Keep the in-memory position so the next invocation resumes here
            message = f"Error: {e}"
            self._set_status(state, message)
            self.audit.log(state.job_row, Severity.CRITICAL, walker.label, repr(e))
            logger.exception("%s job of row %d failed", state.kind.value, state.job_row)
            self.checkpoints.save(state)
            return self._report(RunOutcome.FAILED, state, message, stats=walker.stats, error=str(e))

        if outcome == WalkOutcome.SUSPENDED:
            self.checkpoints.save(state)
            self.scheduler.schedule_resume(self.runtime.resume_delay_seconds)
            status = paused_status(state)
            self._set_status(state, status)
            return self._report(RunOutcome.SUSPENDED, state, status, stats=walker.stats)

        self.scheduler.cancel_scheduled_resume()
        status = done_status(state)
        self._set_status(state, status)
        self.checkpoints.clear()
        self.audit.log(state.job_row, Severity.INFO, "Job", f"{walker.label} completed. {status}")
        return self._report(RunOutcome.COMPLETED, state, status, stats=walker.stats)
