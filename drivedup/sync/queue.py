# drivedup Work Queue
# Pending subtree tasks with resumable listing positions

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Stage(str, Enum):
    """Which children of a task's folder are being enumerated."""

    FILES = "FILES"
    FOLDERS = "FOLDERS"


@dataclass
class Task:
    """
    One source folder waiting to be mirrored into its destination folder.

    `cursor` is the backend token of the page being enumerated in the current
    stage (None for the first page) and `offset` the index of the next
    unprocessed item on that page.

    `tally` holds the counter increments made during the current stage and
    `enqueued` the number of child tasks it appended, so that a stage whose
    enumeration has to restart can be rolled back first.
    """

    source_id: str
    dest_id: str
    stage: Stage = Stage.FILES
    cursor: Optional[str] = None
    offset: int = 0
    tally: dict[str, int] = field(default_factory=dict)
    enqueued: int = 0

    def set_position(self, cursor: Optional[str], offset: int) -> None:
        """Record where enumeration of the current stage continues."""
        self.cursor = cursor
        self.offset = offset

    def reset_position(self) -> None:
        self.set_position(None, 0)

    def reset_stage(self) -> None:
        """Forget all progress made in the current stage."""
        self.reset_position()
        self.tally = {}
        self.enqueued = 0

    def advance(self) -> None:
        """Move from FILES to FOLDERS, starting a fresh enumeration."""
        if self.stage != Stage.FILES:
            raise ValueError(f"Cannot advance task in stage {self.stage.value}")
        self.stage = Stage.FOLDERS
        self.reset_stage()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "source_id": self.source_id,
            "dest_id": self.dest_id,
            "stage": self.stage.value,
        }
        if self.cursor is not None:
            data["cursor"] = self.cursor
        if self.offset:
            data["offset"] = self.offset
        if self.tally:
            data["tally"] = dict(self.tally)
        if self.enqueued:
            data["enqueued"] = self.enqueued
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create from dictionary."""
        return cls(
            source_id=data["source_id"],
            dest_id=data["dest_id"],
            stage=Stage(data.get("stage", Stage.FILES.value)),
            cursor=data.get("cursor"),
            offset=data.get("offset", 0),
            tally=dict(data.get("tally") or {}),
            enqueued=data.get("enqueued", 0),
        )


class WorkQueue:
    """
    FIFO of tasks.

    New tasks are appended at the tail. The head is the only active task and
    is removed only once its FOLDERS stage has finished.
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        self._tasks: deque[Task] = deque(tasks or ())

    def __len__(self) -> int:
        return len(self._tasks)

    def __bool__(self) -> bool:
        return bool(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    @property
    def head(self) -> Optional[Task]:
        """The active task, or None when the queue is empty."""
        return self._tasks[0] if self._tasks else None

    def push(self, task: Task) -> None:
        self._tasks.append(task)

    def complete_head(self) -> Task:
        """Remove the active task after both of its stages finished."""
        if not self._tasks:
            raise IndexError("complete_head on empty queue")
        if self._tasks[0].stage != Stage.FOLDERS:
            raise ValueError("Head task has not reached the FOLDERS stage")
        return self._tasks.popleft()

    def drop_tail(self, count: int) -> list[Task]:
        """Remove the `count` most recently pushed tasks, never the head."""
        if count < 0 or (count and count >= len(self._tasks)):
            raise ValueError(f"Cannot drop {count} of {len(self._tasks)} tasks")
        return [self._tasks.pop() for _ in range(count)]

    def to_list(self) -> list[dict[str, Any]]:
        return [task.to_dict() for task in self._tasks]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> "WorkQueue":
        return cls(Task.from_dict(item) for item in data)
