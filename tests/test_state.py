# drivedup State Tests
# Tests for the work queue, job state and checkpoint slot

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from conftest import TickingClock
from drivedup.sync.budget import TimeBudget
from drivedup.sync.queue import Stage, Task, WorkQueue
from drivedup.sync.state import CheckpointManager, CopyCounters, JobKind, JobState, VerifyCounters


class TestTask:
    """Tests for Task."""

    def test_new_task_starts_at_files(self):
        """Test a fresh task enumerates files from the first page."""
        task = Task("src", "dst")
        assert task.stage == Stage.FILES
        assert task.cursor is None
        assert task.offset == 0

    def test_advance_resets_position(self):
        """Test moving to FOLDERS forgets the files position."""
        task = Task("src", "dst", cursor="c", offset=3, tally={"total_processed": 5}, enqueued=0)
        task.advance()
        assert task.stage == Stage.FOLDERS
        assert task.cursor is None
        assert task.offset == 0
        assert task.tally == {}

    def test_advance_twice_fails(self):
        """Test FOLDERS is the last stage."""
        task = Task("src", "dst", stage=Stage.FOLDERS)
        with pytest.raises(ValueError):
            task.advance()

    def test_to_dict_omits_defaults(self):
        """Test a fresh task serializes compactly."""
        assert Task("src", "dst").to_dict() == {"source_id": "src", "dest_id": "dst", "stage": "FILES"}

    def test_from_dict(self):
        """Test restoring a task mid-page."""
        task = Task.from_dict(
            {"source_id": "src", "dest_id": "dst", "stage": "FOLDERS", "cursor": "c", "offset": 4, "enqueued": 2}
        )
        assert task.stage == Stage.FOLDERS
        assert task.cursor == "c"
        assert task.offset == 4
        assert task.enqueued == 2


class TestWorkQueue:
    """Tests for WorkQueue."""

    def test_fifo_order(self):
        """Test tasks are appended at the tail."""
        queue = WorkQueue([Task("a", "A")])
        queue.push(Task("b", "B"))
        queue.push(Task("c", "C"))
        assert [task.source_id for task in queue] == ["a", "b", "c"]
        assert queue.head.source_id == "a"

    def test_empty_queue(self):
        queue = WorkQueue()
        assert not queue
        assert queue.head is None
        with pytest.raises(IndexError):
            queue.complete_head()

    def test_complete_head_requires_folders_stage(self):
        """Test the head is only removed after both stages."""
        queue = WorkQueue([Task("a", "A"), Task("b", "B")])
        with pytest.raises(ValueError):
            queue.complete_head()

        queue.head.advance()
        assert queue.complete_head().source_id == "a"
        assert queue.head.source_id == "b"

    def test_drop_tail(self):
        """Test dropping the most recently pushed tasks."""
        queue = WorkQueue([Task("a", "A"), Task("b", "B"), Task("c", "C")])
        dropped = queue.drop_tail(2)
        assert [task.source_id for task in dropped] == ["c", "b"]
        assert len(queue) == 1
        assert queue.drop_tail(0) == []

    def test_drop_tail_never_drops_head(self):
        """Test the active task cannot be dropped."""
        queue = WorkQueue([Task("a", "A"), Task("b", "B")])
        with pytest.raises(ValueError):
            queue.drop_tail(2)
        with pytest.raises(ValueError):
            queue.drop_tail(-1)

    def test_from_list(self):
        """Test restoring a queue keeps order and positions."""
        queue = WorkQueue.from_list(
            [
                {"source_id": "a", "dest_id": "A", "stage": "FOLDERS", "offset": 1},
                {"source_id": "b", "dest_id": "B", "stage": "FILES"},
            ]
        )
        assert [task.source_id for task in queue] == ["a", "b"]
        assert queue.head.offset == 1


class TestJobState:
    """Tests for JobState."""

    def test_new_copy(self):
        """Test a copy job starts with the root task."""
        state = JobState.new_copy(3, "src", "dst")
        assert state.kind == JobKind.COPY
        assert state.is_copy
        assert state.job_row == 3
        assert state.counters == CopyCounters(total_processed=0)
        assert [(task.source_id, task.dest_id) for task in state.queue] == [("src", "dst")]

    def test_new_verify(self):
        """Test a verify job has verification counters."""
        state = JobState.new_verify(2, "src", "dst")
        assert state.kind == JobKind.VERIFY
        assert state.counters == VerifyCounters()
        assert not state.is_copy

    def test_counters_must_match_kind(self):
        """Test a copy job cannot hold verification counters."""
        with pytest.raises(TypeError):
            JobState(kind=JobKind.COPY, job_row=1, counters=VerifyCounters())

    def test_to_dict(self):
        """Test the serialized shape."""
        state = JobState.new_verify(4, "src", "dst")
        state.counters.checked = 9
        state.counters.mismatches = 1
        data = state.to_dict()
        assert data["version"] == "1.0"
        assert data["kind"] == "VERIFY"
        assert data["job_row"] == 4
        assert data["counters"] == {"checked": 9, "mismatches": 1}
        assert data["queue"] == [{"source_id": "src", "dest_id": "dst", "stage": "FILES"}]

    def test_from_dict_rejects_wrong_counters(self):
        """Test copy checkpoints need copy counters."""
        data = JobState.new_copy(1, "src", "dst").to_dict()
        data["counters"] = {"checked": 1, "mismatches": 0}
        with pytest.raises(ValidationError):
            JobState.from_dict(data)

    def test_from_dict_rejects_unknown_version(self):
        data = JobState.new_copy(1, "src", "dst").to_dict()
        data["version"] = "2.0"
        with pytest.raises(ValidationError):
            JobState.from_dict(data)


class TestCheckpointManager:
    """Tests for the checkpoint slot."""

    def test_save_and_load(self, temp_dir: Path):
        """Test a saved state is restored with its position."""
        manager = CheckpointManager(temp_dir / "checkpoint.yaml")
        state = JobState.new_copy(2, "src", "dst")
        state.counters.total_processed = 17
        state.queue.head.set_position("cursor-1", 3)
        state.queue.push(Task("child", "child-dest"))

        manager.save(state)
        loaded = manager.load()

        assert loaded is not None
        assert loaded.kind == JobKind.COPY
        assert loaded.job_row == 2
        assert loaded.counters.total_processed == 17
        assert loaded.queue.head.cursor == "cursor-1"
        assert loaded.queue.head.offset == 3
        assert [task.source_id for task in loaded.queue] == ["src", "child"]

    def test_save_records_time(self, temp_dir: Path):
        """Test saves are stamped."""
        manager = CheckpointManager(temp_dir / "checkpoint.yaml")
        manager.save(JobState.new_copy(1, "src", "dst"))
        with open(manager.path, encoding="utf-8") as f:
            assert "saved_at" in yaml.safe_load(f)

    def test_save_leaves_no_temp_files(self, temp_dir: Path):
        """Test atomic saves clean up after themselves."""
        manager = CheckpointManager(temp_dir / "checkpoint.yaml")
        manager.save(JobState.new_copy(1, "src", "dst"))
        manager.save(JobState.new_copy(1, "src", "dst"))
        assert [p.name for p in temp_dir.iterdir()] == ["checkpoint.yaml"]

    def test_load_missing(self, temp_dir: Path):
        """Test no checkpoint means no job."""
        manager = CheckpointManager(temp_dir / "checkpoint.yaml")
        assert manager.exists() is False
        assert manager.load() is None

    def test_load_malformed_yaml(self, temp_dir: Path):
        """Test unreadable checkpoints are treated as absent."""
        path = temp_dir / "checkpoint.yaml"
        path.write_text("kind: [unclosed\n", encoding="utf-8")
        assert CheckpointManager(path).load() is None

    def test_load_wrong_shape(self, temp_dir: Path):
        """Test structurally invalid checkpoints are treated as absent."""
        path = temp_dir / "checkpoint.yaml"
        path.write_text("kind: COPY\njob_row: 0\nqueue: nope\n", encoding="utf-8")
        assert CheckpointManager(path).load() is None

    def test_load_empty(self, temp_dir: Path):
        path = temp_dir / "checkpoint.yaml"
        path.write_text("", encoding="utf-8")
        assert CheckpointManager(path).load() is None

    def test_clear(self, temp_dir: Path):
        """Test clearing reports whether a checkpoint existed."""
        manager = CheckpointManager(temp_dir / "checkpoint.yaml")
        manager.save(JobState.new_copy(1, "src", "dst"))
        assert manager.clear() is True
        assert manager.exists() is False
        assert manager.clear() is False


class TestTimeBudget:
    """Tests for TimeBudget."""

    def test_expires_at_deadline(self):
        """Test the budget expires once the clock reaches the deadline."""
        clock = TickingClock(start=100.0, step=1.0)
        budget = TimeBudget(3, clock=clock)
        assert budget.expired() is False  # 101
        assert budget.expired() is False  # 102
        assert budget.expired() is True  # 103

    def test_remaining_never_negative(self):
        clock = TickingClock(step=10.0)
        budget = TimeBudget(5, clock=clock)
        assert budget.remaining() == 0.0

    def test_elapsed(self):
        clock = TickingClock(step=2.0)
        budget = TimeBudget(60, clock=clock)
        assert budget.elapsed() == 2.0

    def test_invalid_limit(self):
        """Test a budget must be positive."""
        with pytest.raises(ValueError):
            TimeBudget(0)
