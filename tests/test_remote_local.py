# drivedup Local Tree Tests
# Tests for the directory-backed remote tree

from pathlib import Path

import pytest

from conftest import ManualClock, build_tree
from drivedup.exceptions import RemoteError
from drivedup.remote.base import ListStatus, RefKind, RemoteRef, RemoteTree
from drivedup.remote.local import LocalTree


def _list_all(remote: LocalTree, folder_id: str, kind: RefKind) -> list[str]:
    names = []
    cursor = None
    while True:
        if kind == RefKind.FILE:
            page = remote.list_files(folder_id, cursor)
        else:
            page = remote.list_folders(folder_id, cursor)
        assert page.ok
        names.extend(item.name for item in page.items)
        if not page.has_more:
            return names
        cursor = page.next_cursor


class TestLocalTreeListing:
    """Tests for paginated listings."""

    def test_implements_remote_tree(self, remote: LocalTree):
        """Test LocalTree satisfies the RemoteTree protocol."""
        assert isinstance(remote, RemoteTree)

    def test_files_and_folders_are_separate(self, store: Path, remote: LocalTree):
        """Test files and subfolders are listed by separate calls."""
        build_tree(store, {"F": {"a.txt": "a", "Sub": {}}})

        files = remote.list_files("F")
        folders = remote.list_folders("F")
        assert [item.name for item in files.items] == ["a.txt"]
        assert files.items[0].kind == RefKind.FILE
        assert [item.name for item in folders.items] == ["Sub"]
        assert folders.items[0].id == "F/Sub"
        assert folders.items[0].is_folder

    def test_pagination(self, store: Path, remote: LocalTree):
        """Test pages of page_size items linked by cursors."""
        build_tree(store, {"F": {f"{n}.txt": n for n in "abcde"}})

        first = remote.list_files("F")
        assert [item.name for item in first.items] == ["a.txt", "b.txt"]
        assert first.has_more is True
        assert first.next_cursor is not None

        assert _list_all(remote, "F", RefKind.FILE) == [f"{n}.txt" for n in "abcde"]

    def test_last_page_has_no_cursor(self, store: Path, remote: LocalTree):
        """Test the final page carries no cursor."""
        build_tree(store, {"F": {"a.txt": "a"}})
        page = remote.list_files("F")
        assert page.has_more is False
        assert page.next_cursor is None

    def test_empty_folder(self, store: Path, remote: LocalTree):
        """Test listing an empty folder."""
        build_tree(store, {"F": {}})
        page = remote.list_files("F")
        assert page.ok
        assert page.items == []

    def test_temp_files_hidden(self, store: Path, remote: LocalTree):
        """Test in-flight copy files are not listed."""
        build_tree(store, {"F": {"a.txt": "a", ".a.txt.x1y2.tmp": "partial"}})
        assert _list_all(remote, "F", RefKind.FILE) == ["a.txt"]

    def test_missing_folder_is_transient_error(self, remote: LocalTree):
        """Test a listing failure is reported, not raised."""
        page = remote.list_files("does-not-exist")
        assert page.status == ListStatus.TRANSIENT_ERROR
        assert page.error

    def test_invalid_id_is_transient_error(self, remote: LocalTree):
        """Test ids escaping the store are rejected."""
        page = remote.list_folders("../outside")
        assert page.status == ListStatus.TRANSIENT_ERROR


class TestLocalTreeCursors:
    """Tests for cursor expiry."""

    def test_expired_cursor_is_stale(self, store: Path):
        """Test a cursor older than its TTL is stale."""
        clock = ManualClock()
        remote = LocalTree(store, page_size=1, cursor_ttl=10, clock=clock)
        build_tree(store, {"F": {"a.txt": "a", "b.txt": "b"}})

        cursor = remote.list_files("F").next_cursor
        clock.advance(11)

        page = remote.list_files("F", cursor)
        assert page.status == ListStatus.STALE_CURSOR
        assert page.items == []

    def test_fresh_cursor_works(self, store: Path):
        """Test a cursor within its TTL resumes the listing."""
        clock = ManualClock()
        remote = LocalTree(store, page_size=1, cursor_ttl=10, clock=clock)
        build_tree(store, {"F": {"a.txt": "a", "b.txt": "b"}})

        cursor = remote.list_files("F").next_cursor
        clock.advance(5)
        page = remote.list_files("F", cursor)
        assert [item.name for item in page.items] == ["b.txt"]

    def test_cursor_never_expires_without_ttl(self, store: Path):
        """Test cursor_ttl=None disables expiry."""
        clock = ManualClock()
        remote = LocalTree(store, page_size=1, cursor_ttl=None, clock=clock)
        build_tree(store, {"F": {"a.txt": "a", "b.txt": "b"}})

        cursor = remote.list_files("F").next_cursor
        clock.advance(10**9)
        assert remote.list_files("F", cursor).ok

    def test_garbage_cursor_is_stale(self, store: Path, remote: LocalTree):
        """Test unparseable cursors are stale."""
        build_tree(store, {"F": {}})
        assert remote.list_files("F", "nonsense").status == ListStatus.STALE_CURSOR

    def test_cursor_of_other_kind_is_stale(self, store: Path, remote: LocalTree):
        """Test a file cursor cannot resume a folder listing."""
        build_tree(store, {"F": {f"{n}.txt": n for n in "abc"}})
        cursor = remote.list_files("F").next_cursor
        assert remote.list_folders("F", cursor).status == ListStatus.STALE_CURSOR


class TestLocalTreeOperations:
    """Tests for lookups and mutations."""

    def test_find_file(self, store: Path, remote: LocalTree):
        """Test lookup by exact name."""
        build_tree(store, {"F": {"a.txt": "a", "Sub": {}}})
        assert remote.find_file("F", "a.txt") == RemoteRef("F/a.txt", "a.txt", RefKind.FILE)
        assert remote.find_file("F", "missing.txt") is None
        assert remote.find_file("F", "Sub") is None

    def test_find_is_case_sensitive(self, store: Path, remote: LocalTree):
        """Test names differing in case do not match."""
        build_tree(store, {"F": {"Report.txt": "r"}})
        assert remote.find_file("F", "report.txt") is None

    def test_find_folder(self, store: Path, remote: LocalTree):
        """Test folder lookup ignores files of that name."""
        build_tree(store, {"F": {"Sub": {}, "file": "x"}})
        assert remote.find_folder("F", "Sub").id == "F/Sub"
        assert remote.find_folder("F", "file") is None

    def test_find_in_missing_folder_raises(self, remote: LocalTree):
        """Test lookups in a missing folder raise RemoteError."""
        with pytest.raises(RemoteError):
            remote.find_file("nope", "a.txt")

    def test_copy_file(self, store: Path, remote: LocalTree):
        """Test copying a file into another folder."""
        build_tree(store, {"F": {"a.txt": "content"}, "G": {}})
        source = remote.find_file("F", "a.txt")

        copied = remote.copy_file(source, "G", "a.txt")
        assert copied.id == "G/a.txt"
        assert (store / "G" / "a.txt").read_text(encoding="utf-8") == "content"

    def test_copy_into_missing_folder(self, store: Path, remote: LocalTree):
        """Test copying into a missing folder raises RemoteError."""
        build_tree(store, {"F": {"a.txt": "a"}})
        with pytest.raises(RemoteError, match="Destination folder not found"):
            remote.copy_file(remote.find_file("F", "a.txt"), "G", "a.txt")

    def test_copy_missing_source(self, store: Path, remote: LocalTree):
        """Test copying a vanished file raises RemoteError."""
        build_tree(store, {"G": {}})
        with pytest.raises(RemoteError, match="Copy failed"):
            remote.copy_file(RemoteRef("F/gone.txt", "gone.txt"), "G", "gone.txt")

    def test_create_folder(self, store: Path, remote: LocalTree):
        """Test creating a folder."""
        build_tree(store, {"F": {}})
        created = remote.create_folder("F", "New")
        assert created == RemoteRef("F/New", "New", RefKind.FOLDER)
        assert (store / "F" / "New").is_dir()

    def test_create_existing_folder_raises(self, store: Path, remote: LocalTree):
        """Test creating a folder that exists raises RemoteError."""
        build_tree(store, {"F": {"Sub": {}}})
        with pytest.raises(RemoteError):
            remote.create_folder("F", "Sub")

    def test_create_folder_in_root(self, remote: LocalTree, store: Path):
        """Test root-level ids carry no prefix."""
        assert remote.create_folder(remote.root_id, "Top").id == "Top"
        assert (store / "Top").is_dir()

    def test_invalid_names_rejected(self, store: Path, remote: LocalTree):
        """Test names with separators are rejected."""
        build_tree(store, {"F": {}})
        with pytest.raises(RemoteError, match="Invalid name"):
            remote.create_folder("F", "a/b")

    def test_get_folder(self, store: Path, remote: LocalTree):
        """Test folder metadata lookup."""
        build_tree(store, {"F": {"Sub": {}}})
        assert remote.get_folder("F/Sub") == RemoteRef("F/Sub", "Sub", RefKind.FOLDER)
        with pytest.raises(RemoteError, match="Folder not found"):
            remote.get_folder("F/missing")


class TestLocalTreeUrls:
    """Tests for destination URLs."""

    def test_url_round_trip(self, store: Path, remote: LocalTree):
        """Test a folder URL parses back to its id."""
        build_tree(store, {"F duplicate": {"Sub": {}}})
        url = remote.folder_url("F duplicate/Sub")
        assert url.startswith("file://")
        assert remote.parse_folder_url(url) == "F duplicate/Sub"

    def test_plain_path_accepted(self, store: Path, remote: LocalTree):
        """Test a filesystem path inside the store is accepted."""
        build_tree(store, {"F": {}})
        assert remote.parse_folder_url(str(store / "F")) == "F"

    def test_outside_store_rejected(self, temp_dir: Path, remote: LocalTree):
        """Test URLs outside the store raise RemoteError."""
        with pytest.raises(RemoteError, match="Not inside the store"):
            remote.parse_folder_url((temp_dir / "elsewhere").as_uri())
