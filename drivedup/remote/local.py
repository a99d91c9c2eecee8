# drivedup Local Tree Backend
# A directory on disk used as the remote store

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from drivedup.exceptions import RemoteError
from drivedup.remote.base import ListPage, RefKind, RemoteRef
from drivedup.utils.paths import ensure_dir, expand_path, safe_copy

logger = logging.getLogger(__name__)

ROOT_ID = "."


class LocalTree:
    """
    Remote tree backed by a local directory.

    Object ids are POSIX paths relative to the store root ("." is the root).
    Listings are sorted by name and paginated; a cursor records the kind of
    listing, the index of the next page and when it was issued, and goes stale
    once it is older than `cursor_ttl`.
    """

    def __init__(
        self,
        root: Path,
        *,
        page_size: int = 100,
        cursor_ttl: Optional[float] = 3600.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize local tree.

        Args:
            root: Directory holding the store. Created if missing.
            page_size: Items per listing page.
            cursor_ttl: Cursor lifetime in seconds. None = never expires.
            clock: Wall clock used to issue and age cursors.
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.root = ensure_dir(expand_path(root))
        self.page_size = page_size
        self.cursor_ttl = cursor_ttl
        self._clock = clock

    @property
    def root_id(self) -> str:
        return ROOT_ID

    def _path(self, ref_id: str) -> Path:
        """Map an id to a path inside the store."""
        rel = PurePosixPath(ref_id)
        if rel.is_absolute() or ".." in rel.parts:
            raise RemoteError(f"Invalid id: {ref_id}")
        return self.root.joinpath(*rel.parts)

    def _child_id(self, folder_id: str, name: str) -> str:
        if folder_id == ROOT_ID:
            return name
        return f"{folder_id}/{name}"

    @staticmethod
    def _check_name(name: str) -> None:
        if not name or "/" in name or os.sep in name or name in (".", ".."):
            raise RemoteError(f"Invalid name: {name!r}")

    # -- listing ------------------------------------------------------------

    def _encode_cursor(self, kind: RefKind, offset: int) -> str:
        return f"{kind.value}:{offset}:{self._clock():.3f}"

    def _decode_cursor(self, kind: RefKind, cursor: str) -> Optional[int]:
        """Return the offset encoded in a cursor, or None if it is stale."""
        try:
            cursor_kind, offset, issued_at = cursor.split(":")
            offset_value = int(offset)
            issued = float(issued_at)
        except ValueError:
            return None
        if cursor_kind != kind.value or offset_value < 0:
            return None
        if self.cursor_ttl is not None and self._clock() - issued > self.cursor_ttl:
            return None
        return offset_value

    def _list(self, kind: RefKind, folder_id: str, cursor: Optional[str]) -> ListPage:
        offset = 0
        if cursor is not None:
            decoded = self._decode_cursor(kind, cursor)
            if decoded is None:
                return ListPage.stale(f"Cursor expired or invalid: {cursor}")
            offset = decoded

        try:
            folder = self._path(folder_id)
            entries = sorted(os.scandir(folder), key=lambda e: e.name)
        except (OSError, RemoteError) as e:
            return ListPage.failed(str(e))

        children: list[RemoteRef] = []
        for entry in entries:
            if entry.is_symlink():
                continue
            if kind == RefKind.FOLDER and entry.is_dir():
                children.append(RemoteRef(self._child_id(folder_id, entry.name), entry.name, RefKind.FOLDER))
            elif kind == RefKind.FILE and entry.is_file():
                # In-flight copies from safe_copy
                if entry.name.startswith(".") and entry.name.endswith(".tmp"):
                    continue
                children.append(RemoteRef(self._child_id(folder_id, entry.name), entry.name, RefKind.FILE))

        end = offset + self.page_size
        has_more = end < len(children)
        return ListPage(
            items=children[offset:end],
            next_cursor=self._encode_cursor(kind, end) if has_more else None,
            has_more=has_more,
        )

    def list_files(self, folder_id: str, cursor: Optional[str] = None) -> ListPage:
        return self._list(RefKind.FILE, folder_id, cursor)

    def list_folders(self, folder_id: str, cursor: Optional[str] = None) -> ListPage:
        return self._list(RefKind.FOLDER, folder_id, cursor)

    # -- lookups ------------------------------------------------------------

    def _find(self, folder_id: str, name: str, kind: RefKind) -> Optional[RemoteRef]:
        folder = self._path(folder_id)
        try:
            # Exact, case-sensitive match even on case-insensitive filesystems
            names = os.listdir(folder)
        except OSError as e:
            raise RemoteError(f"Cannot list {folder_id}: {e}") from e
        if name not in names:
            return None
        path = folder / name
        if path.is_symlink():
            return None
        if kind == RefKind.FOLDER and path.is_dir():
            return RemoteRef(self._child_id(folder_id, name), name, RefKind.FOLDER)
        if kind == RefKind.FILE and path.is_file():
            return RemoteRef(self._child_id(folder_id, name), name, RefKind.FILE)
        return None

    def find_file(self, folder_id: str, name: str) -> Optional[RemoteRef]:
        return self._find(folder_id, name, RefKind.FILE)

    def find_folder(self, folder_id: str, name: str) -> Optional[RemoteRef]:
        return self._find(folder_id, name, RefKind.FOLDER)

    def get_folder(self, folder_id: str) -> RemoteRef:
        path = self._path(folder_id)
        if not path.is_dir():
            raise RemoteError(f"Folder not found: {folder_id}")
        return RemoteRef(folder_id, self.get_name(folder_id), RefKind.FOLDER)

    def get_name(self, ref_id: str) -> str:
        if ref_id == ROOT_ID:
            return self.root.name
        return PurePosixPath(ref_id).name

    # -- mutations ----------------------------------------------------------

    def copy_file(self, file: RemoteRef, dest_folder_id: str, name: str) -> RemoteRef:
        self._check_name(name)
        source = self._path(file.id)
        dest_folder = self._path(dest_folder_id)
        if not dest_folder.is_dir():
            raise RemoteError(f"Destination folder not found: {dest_folder_id}")
        try:
            safe_copy(source, dest_folder / name)
        except OSError as e:
            raise RemoteError(f"Copy failed: {e}") from e
        logger.debug("Copied %s -> %s/%s", file.id, dest_folder_id, name)
        return RemoteRef(self._child_id(dest_folder_id, name), name, RefKind.FILE)

    def create_folder(self, parent_id: str, name: str) -> RemoteRef:
        self._check_name(name)
        path = self._path(parent_id) / name
        try:
            path.mkdir()
        except OSError as e:
            raise RemoteError(f"Cannot create folder {name!r}: {e}") from e
        return RemoteRef(self._child_id(parent_id, name), name, RefKind.FOLDER)

    # -- urls ---------------------------------------------------------------

    def folder_url(self, folder_id: str) -> str:
        return self._path(folder_id).as_uri()

    def parse_folder_url(self, url: str) -> str:
        """Map a file:// URL (or a plain path) inside the store back to an id."""
        parsed = urlparse(url)
        raw = unquote(parsed.path) if parsed.scheme == "file" else url
        path = expand_path(raw)
        try:
            rel = path.relative_to(self.root)
        except ValueError as e:
            raise RemoteError(f"Not inside the store {self.root}: {url}") from e
        return rel.as_posix() if rel.parts else ROOT_ID
