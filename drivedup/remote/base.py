# drivedup Remote Tree Interface
# Capability interface and result types for remote folder trees

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class RefKind(str, Enum):
    """Kind of a remote object."""

    FILE = "file"
    FOLDER = "folder"


class ListStatus(str, Enum):
    """Outcome of a listing call."""

    OK = "ok"
    STALE_CURSOR = "stale_cursor"
    TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class RemoteRef:
    """A file or folder in the remote tree."""

    id: str
    name: str
    kind: RefKind = RefKind.FILE

    @property
    def is_folder(self) -> bool:
        return self.kind == RefKind.FOLDER


@dataclass
class ListPage:
    """
    One page of a paginated listing.

    `next_cursor` resumes the listing after this page and is only set when
    `has_more` is True. Failed listings carry no items and describe the
    failure in `error`.
    """

    status: ListStatus = ListStatus.OK
    items: list[RemoteRef] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ListStatus.OK

    @classmethod
    def stale(cls, error: str) -> "ListPage":
        """Listing was resumed with an expired or invalid cursor."""
        return cls(status=ListStatus.STALE_CURSOR, error=error)

    @classmethod
    def failed(cls, error: str) -> "ListPage":
        """Listing failed for any other reason."""
        return cls(status=ListStatus.TRANSIENT_ERROR, error=error)


@runtime_checkable
class RemoteTree(Protocol):
    """
    Operations the walkers need from a remote storage backend.

    Listing methods report failures through `ListPage.status` and never raise
    for them. Per-item methods raise `RemoteError`.
    """

    @property
    def root_id(self) -> str:
        """Folder under which new job destinations are created."""
        ...

    def list_files(self, folder_id: str, cursor: Optional[str] = None) -> ListPage: ...

    def list_folders(self, folder_id: str, cursor: Optional[str] = None) -> ListPage: ...

    def find_file(self, folder_id: str, name: str) -> Optional[RemoteRef]: ...

    def find_folder(self, folder_id: str, name: str) -> Optional[RemoteRef]: ...

    def copy_file(self, file: RemoteRef, dest_folder_id: str, name: str) -> RemoteRef: ...

    def create_folder(self, parent_id: str, name: str) -> RemoteRef: ...

    def get_folder(self, folder_id: str) -> RemoteRef: ...

    def get_name(self, ref_id: str) -> str: ...

    def folder_url(self, folder_id: str) -> str: ...

    def parse_folder_url(self, url: str) -> str: ...
