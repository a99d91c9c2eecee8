# drivedup Job State
# In-memory job state and its persistence in the single checkpoint slot

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from drivedup.sync.queue import Stage, Task, WorkQueue
from drivedup.utils.paths import atomic_write

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = "1.0"


class JobKind(str, Enum):
    """Pipeline a job runs through."""

    COPY = "COPY"
    VERIFY = "VERIFY"


@dataclass
class CopyCounters:
    """Progress of a copy job."""

    total_processed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total_processed": self.total_processed}


@dataclass
class VerifyCounters:
    """Progress of a verification job."""

    checked: int = 0
    mismatches: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"checked": self.checked, "mismatches": self.mismatches}


Counters = Union[CopyCounters, VerifyCounters]


@dataclass
class JobState:
    """
    Complete state of the job in flight.

    The queue and counters are mutated in place while a walker runs; a save
    always writes the whole snapshot.
    """

    kind: JobKind
    job_row: int
    queue: WorkQueue = field(default_factory=WorkQueue)
    counters: Counters = field(default_factory=CopyCounters)

    def __post_init__(self) -> None:
        expected = CopyCounters if self.is_copy else VerifyCounters
        if not isinstance(self.counters, expected):
            raise TypeError(f"{self.kind.value} job requires {expected.__name__}")

    @classmethod
    def new_copy(cls, job_row: int, source_id: str, dest_id: str) -> "JobState":
        """Create the state of a fresh copy job."""
        return cls(
            kind=JobKind.COPY,
            job_row=job_row,
            queue=WorkQueue([Task(source_id, dest_id)]),
            counters=CopyCounters(),
        )

    @classmethod
    def new_verify(cls, job_row: int, source_id: str, dest_id: str) -> "JobState":
        """Create the state of a fresh verification job."""
        return cls(
            kind=JobKind.VERIFY,
            job_row=job_row,
            queue=WorkQueue([Task(source_id, dest_id)]),
            counters=VerifyCounters(),
        )

    @property
    def is_copy(self) -> bool:
        return self.kind == JobKind.COPY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": CHECKPOINT_VERSION,
            "kind": self.kind.value,
            "job_row": self.job_row,
            "counters": self.counters.to_dict(),
            "queue": self.queue.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "JobState":
        """
        Create from dictionary, validating its shape.

        Raises:
            ValidationError: If the data is not a well-formed checkpoint.
        """
        record = CheckpointRecord.model_validate(data)
        if isinstance(record.counters, CopyCounterRecord):
            counters: Counters = CopyCounters(total_processed=record.counters.total_processed)
        else:
            counters = VerifyCounters(checked=record.counters.checked, mismatches=record.counters.mismatches)
        return cls(
            kind=record.kind,
            job_row=record.job_row,
            queue=WorkQueue.from_list([task.model_dump() for task in record.queue]),
            counters=counters,
        )


# -- checkpoint schema ------------------------------------------------------


class TaskRecord(BaseModel):
    """Persisted shape of a task."""

    model_config = ConfigDict(extra="forbid")

    source_id: str = Field(min_length=1)
    dest_id: str = Field(min_length=1)
    stage: Stage = Stage.FILES
    cursor: Optional[str] = None
    offset: int = Field(default=0, ge=0)
    tally: dict[str, int] = Field(default_factory=dict)
    enqueued: int = Field(default=0, ge=0)


class CopyCounterRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_processed: int = Field(ge=0)


class VerifyCounterRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    checked: int = Field(ge=0)
    mismatches: int = Field(ge=0)


class CheckpointRecord(BaseModel):
    """Persisted shape of a job state."""

    version: Literal["1.0"] = CHECKPOINT_VERSION
    kind: JobKind
    job_row: int = Field(ge=1)
    counters: Union[CopyCounterRecord, VerifyCounterRecord]
    queue: list[TaskRecord]
    saved_at: Optional[str] = None

    @model_validator(mode="after")
    def counters_match_kind(self) -> "CheckpointRecord":
        expected = CopyCounterRecord if self.kind == JobKind.COPY else VerifyCounterRecord
        if not isinstance(self.counters, expected):
            raise ValueError(f"counters do not match job kind {self.kind.value}")
        return self


class CheckpointManager:
    """
    Manages the single persisted job slot.

    Each save replaces the whole file through an atomic rename, so a reader
    sees either the previous snapshot or the new one.
    """

    def __init__(self, path: Path):
        """
        Initialize checkpoint manager.

        Args:
            path: Path of the checkpoint file.
        """
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[JobState]:
        """
        Load the persisted job state.

        Returns:
            JobState, or None if there is no checkpoint or it is unreadable.
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable checkpoint %s: %s", self.path, e)
            return None

        if data is None:
            return None

        try:
            return JobState.from_dict(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed checkpoint %s: %s", self.path, e)
            return None

    def save(self, state: JobState) -> None:
        """Overwrite the checkpoint with a full snapshot of `state`."""
        data = state.to_dict()
        data["saved_at"] = datetime.now().isoformat()
        atomic_write(
            self.path,
            yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True),
        )

    def clear(self) -> bool:
        """Delete the checkpoint. Returns True if one existed."""
        if not self.path.exists():
            return False
        self.path.unlink(missing_ok=True)
        return True
