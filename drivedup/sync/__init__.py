# drivedup Sync Module
# Resumable traversal engine and the components it is built from

from drivedup.sync.budget import TimeBudget
from drivedup.sync.orchestrator import JobOrchestrator, RunOutcome, RunReport, reset_job
from drivedup.sync.queue import Stage, Task, WorkQueue
from drivedup.sync.state import CheckpointManager, CopyCounters, JobKind, JobState, VerifyCounters
from drivedup.sync.walker import CopyWalker, TreeWalker, VerifyWalker, WalkOutcome, WalkStats

__all__ = [
    # Queue
    "Stage",
    "Task",
    "WorkQueue",
    # State
    "JobKind",
    "JobState",
    "CopyCounters",
    "VerifyCounters",
    "CheckpointManager",
    # Budget
    "TimeBudget",
    # Walker
    "TreeWalker",
    "CopyWalker",
    "VerifyWalker",
    "WalkOutcome",
    "WalkStats",
    # Orchestrator
    "JobOrchestrator",
    "RunOutcome",
    "RunReport",
    "reset_job",
]
