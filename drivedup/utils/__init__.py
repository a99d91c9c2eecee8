# drivedup Utilities Module
# Helper functions for path handling

from drivedup.utils.paths import (
    atomic_write,
    ensure_dir,
    expand_path,
    safe_copy,
)

__all__ = [
    "expand_path",
    "safe_copy",
    "ensure_dir",
    "atomic_write",
]
