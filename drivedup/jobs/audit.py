# drivedup Audit Log
# Append-only CSV record of everything an operator needs to follow up on

import csv
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

HEADER = ["Timestamp", "Job Row", "Type", "File/Folder", "Message"]


class Severity(str, Enum):
    """Type column of an audit row."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    MISSING = "MISSING"
    MISSING_DIR = "MISSING_DIR"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
    Severity.MISSING: logging.WARNING,
    Severity.MISSING_DIR: logging.WARNING,
}


@dataclass(frozen=True)
class LogEntry:
    """One audit row."""

    timestamp: datetime
    job_row: Optional[int]
    severity: Severity
    subject: str
    message: str

    def to_row(self) -> list[str]:
        return [
            self.timestamp.isoformat(timespec="seconds"),
            "" if self.job_row is None else str(self.job_row),
            self.severity.value,
            self.subject,
            self.message,
        ]

    @classmethod
    def from_row(cls, row: list[str]) -> "LogEntry":
        timestamp, job_row, severity, subject, message = row
        return cls(
            timestamp=datetime.fromisoformat(timestamp),
            job_row=int(job_row) if job_row else None,
            severity=Severity(severity),
            subject=subject,
            message=message,
        )


class AuditLog:
    """
    Append-only audit log in a CSV file.

    The header row is written whenever the file is (re)created. Rows are
    mirrored to the `logging` module.
    """

    def __init__(self, path: Path):
        self.path = path

    def append(self, entry: LogEntry) -> None:
        logger.log(
            _LOG_LEVELS[entry.severity],
            "[row %s] %s %s: %s",
            entry.job_row,
            entry.severity.value,
            entry.subject,
            entry.message,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                if is_new:
                    writer.writerow(HEADER)
                writer.writerow(entry.to_row())
        except OSError as e:
            # An unwritable audit log must not stop the job
            logger.error("Failed to write audit log %s: %s", self.path, e)

    def log(self, job_row: Optional[int], severity: Severity, subject: str, message: str) -> LogEntry:
        """Append a row stamped with the current time."""
        entry = LogEntry(datetime.now(), job_row, severity, subject, message)
        self.append(entry)
        return entry

    def entries(self) -> list[LogEntry]:
        """Read back all rows."""
        return self.tail(None)

    def tail(self, lines: Optional[int] = 50) -> list[LogEntry]:
        """Read back the last `lines` rows (all rows if None)."""
        if not self.path.exists():
            return []

        rows: deque[LogEntry] = deque(maxlen=lines)
        with open(self.path, encoding="utf-8", newline="") as f:
            reader = csv.reader(f)
            for row in reader:
                if row == HEADER or len(row) != len(HEADER):
                    continue
                try:
                    rows.append(LogEntry.from_row(row))
                except ValueError:
                    continue
        return list(rows)
