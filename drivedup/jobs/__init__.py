# drivedup Jobs Module
# Job sheet, resume scheduler and audit log used by the orchestrator

from drivedup.jobs.audit import AuditLog, LogEntry, Severity
from drivedup.jobs.scheduler import FileScheduler, ResumeScheduler
from drivedup.jobs.sheet import JobRow, JobSheet

__all__ = [
    # Sheet
    "JobRow",
    "JobSheet",
    # Scheduler
    "ResumeScheduler",
    "FileScheduler",
    # Audit
    "AuditLog",
    "LogEntry",
    "Severity",
]
