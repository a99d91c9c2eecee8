"""drivedup - resumable folder tree duplication and verification.

Mirrors a remote folder tree into a new destination folder (or verifies an
existing copy) in time-boxed executions that checkpoint their work queue and
resume where they stopped.
"""

__version__ = "1.0.0"
__author__ = "Equitania Software GmbH"
__email__ = "info@equitania.de"

__all__ = [
    "__version__",
    "JobOrchestrator",
    "RunReport",
    "CopyWalker",
    "VerifyWalker",
    "CheckpointManager",
    "JobState",
    "Task",
    "WorkQueue",
    "TimeBudget",
    "LocalTree",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("JobOrchestrator", "RunReport"):
        from drivedup.sync import orchestrator

        return getattr(orchestrator, name)
    if name in ("CopyWalker", "VerifyWalker"):
        from drivedup.sync import walker

        return getattr(walker, name)
    if name in ("CheckpointManager", "JobState"):
        from drivedup.sync import state

        return getattr(state, name)
    if name in ("Task", "WorkQueue"):
        from drivedup.sync import queue

        return getattr(queue, name)
    if name == "TimeBudget":
        from drivedup.sync.budget import TimeBudget

        return TimeBudget
    if name == "LocalTree":
        from drivedup.remote.local import LocalTree

        return LocalTree
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
