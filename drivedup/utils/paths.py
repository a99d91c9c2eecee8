# drivedup Path Utilities
# Safe file operations with atomic writes

import os
import shutil
import tempfile
from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """
    Expand ~ and environment variables in path.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded Path object.
    """
    path_str = os.path.expandvars(os.path.expanduser(str(path)))
    return Path(path_str).resolve()


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.

    Returns:
        The path that was ensured.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_copy(source: Path, dest: Path, *, preserve_metadata: bool = True) -> None:
    """
    Atomically copy a file.

    Copies into a temporary file next to the destination and renames it into
    place, so an interrupted copy never leaves a partial file under the
    destination name.

    Args:
        source: Source file.
        dest: Destination file.
        preserve_metadata: Whether to preserve file metadata (default True).

    Raises:
        FileNotFoundError: If source doesn't exist.
        IsADirectoryError: If source is a directory.
    """
    if not source.exists():
        raise FileNotFoundError(f"Source does not exist: {source}")
    if source.is_dir():
        raise IsADirectoryError(f"Source is a directory: {source}")

    ensure_dir(dest.parent)

    fd, temp_path = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)
    try:
        if preserve_metadata:
            shutil.copy2(source, temp_path)
        else:
            shutil.copy(source, temp_path)
        os.replace(temp_path, dest)
    except OSError:
        # Cleanup on failure
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def atomic_write(path: Path, content: str | bytes, *, encoding: str = "utf-8") -> None:
    """
    Atomically write content to file.

    Uses a temporary file and atomic rename.

    Args:
        path: Target file path.
        content: Content to write (str or bytes).
        encoding: Encoding for string content (default utf-8).
    """
    ensure_dir(path.parent)

    # Create temp file in same directory for atomic rename
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if isinstance(content, str):
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        # Atomic rename
        os.replace(temp_path, path)
    except Exception:
        # Cleanup on failure
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
