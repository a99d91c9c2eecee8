# drivedup Job Sheet
# YAML job list: what to copy and the status the engine reports back

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from drivedup.exceptions import InvalidJobError
from drivedup.utils.paths import atomic_write

PENDING_STATUSES = ("", "Pending")
FIELDS = ("source_id", "status", "destination_url", "verification")


@dataclass
class JobRow:
    """One job descriptor. Rows are numbered from 1."""

    row: int
    source_id: str = ""
    status: str = ""
    destination_url: str = ""
    verification: str = ""

    @property
    def is_pending(self) -> bool:
        return bool(self.source_id) and self.status.strip() in PENDING_STATUSES

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        del data["row"]
        return data

    @classmethod
    def from_dict(cls, row: int, data: dict[str, Any]) -> "JobRow":
        """Create from dictionary, tolerating missing or non-string cells."""
        values = {}
        for name in FIELDS:
            value = data.get(name)
            values[name] = "" if value is None else str(value)
        return cls(row=row, **values)


class JobSheet:
    """
    Job list stored as YAML.

    The file is re-read on every call so that edits made by an operator
    between executions are picked up.

        jobs:
          - source_id: <folder id>
            status: ""
            destination_url: ""
            verification: ""
    """

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return []
        jobs = data.get("jobs") if isinstance(data, dict) else None
        if jobs is None:
            return []
        if not isinstance(jobs, list):
            raise InvalidJobError(f"'jobs' must be a list in {self.path}")
        return [job if isinstance(job, dict) else {} for job in jobs]

    def _write(self, jobs: list[dict[str, Any]]) -> None:
        atomic_write(
            self.path,
            yaml.dump({"jobs": jobs}, default_flow_style=False, sort_keys=False, allow_unicode=True),
        )

    def rows(self) -> list[JobRow]:
        return [JobRow.from_dict(index, job) for index, job in enumerate(self._read(), start=1)]

    def get(self, row: int) -> Optional[JobRow]:
        jobs = self._read()
        if row < 1 or row > len(jobs):
            return None
        return JobRow.from_dict(row, jobs[row - 1])

    def find_pending(self) -> Optional[JobRow]:
        """First row with a source id and an empty or pending status."""
        for job in self.rows():
            if job.is_pending:
                return job
        return None

    def update(self, row: int, **fields: str) -> JobRow:
        """
        Write cells of a row.

        Raises:
            InvalidJobError: If the row does not exist.
            KeyError: If a field name is unknown.
        """
        unknown = set(fields) - set(FIELDS)
        if unknown:
            raise KeyError(f"Unknown job fields: {', '.join(sorted(unknown))}")

        jobs = self._read()
        if row < 1 or row > len(jobs):
            raise InvalidJobError(f"Job row {row} does not exist")

        jobs[row - 1] = {**JobRow.from_dict(row, jobs[row - 1]).to_dict(), **fields}
        self._write(jobs)
        return JobRow.from_dict(row, jobs[row - 1])

    def add(self, source_id: str) -> JobRow:
        """Append a pending job for `source_id`."""
        if not source_id.strip():
            raise InvalidJobError("source_id is required")
        jobs = self._read()
        job = JobRow(row=len(jobs) + 1, source_id=source_id.strip())
        jobs.append(job.to_dict())
        self._write(jobs)
        return job
