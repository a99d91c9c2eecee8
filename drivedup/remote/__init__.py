# drivedup Remote Module
# Remote tree interface and backend factory

from pathlib import Path

from drivedup.config.schema import BackendConfig, BackendType
from drivedup.remote.base import ListPage, ListStatus, RefKind, RemoteRef, RemoteTree
from drivedup.remote.local import LocalTree

__all__ = [
    "ListPage",
    "ListStatus",
    "RefKind",
    "RemoteRef",
    "RemoteTree",
    "LocalTree",
    "create_remote",
]


def create_remote(backend: BackendConfig) -> RemoteTree:
    """
    Create the remote tree selected in the configuration.

    Args:
        backend: Backend configuration.

    Returns:
        RemoteTree implementation.
    """
    if backend.type == BackendType.DRIVE:
        # Imported lazily: the Drive client libraries are an optional extra
        from drivedup.remote.drive import DriveTree

        return DriveTree.from_credentials(
            Path(backend.credentials_file),
            Path(backend.token_file),
            page_size=backend.page_size,
            max_retries=backend.max_retries,
        )

    return LocalTree(
        Path(backend.local_root),
        page_size=backend.page_size,
        cursor_ttl=backend.cursor_ttl_seconds,
    )
