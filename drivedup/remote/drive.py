# drivedup Google Drive Backend
# Remote tree on Google Drive v3 through google-api-python-client

import logging
import random
import re
import time
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any, Optional

import httplib2
from google.auth.exceptions import TransportError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from drivedup.exceptions import RemoteError
from drivedup.remote.base import ListPage, RefKind, RemoteRef

logger = logging.getLogger(__name__)

FOLDER_MIME = "application/vnd.google-apps.folder"
SHORTCUT_MIME = "application/vnd.google-apps.shortcut"
SCOPES = ["https://www.googleapis.com/auth/drive"]
FOLDER_URL = "https://drive.google.com/drive/folders/{}"
ID_PATTERN = re.compile(r"[-\w]{25,}")

# Rate limiting and server-side errors worth retrying
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}

# Other 403 reasons (cannotCopyFile, insufficientFilePermissions) are final
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded"}

# Failures below the HTTP layer, including token refreshes
TRANSPORT_ERRORS = (OSError, httplib2.HttpLib2Error, TransportError)


def _status(error: HttpError) -> Optional[int]:
    return getattr(error.resp, "status", None)


def _reasons(error: HttpError) -> set[str]:
    details = error.error_details if isinstance(error.error_details, list) else []
    return {d["reason"] for d in details if isinstance(d, dict) and "reason" in d}


def _is_retryable(error: HttpError) -> bool:
    status = _status(error)
    if status == 403:
        return bool(_reasons(error) & RATE_LIMIT_REASONS)
    return status in RETRYABLE_STATUSES


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


def _quote(value: str) -> str:
    """Escape a value for a Drive query string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def load_credentials(credentials_file: Path, token_file: Path) -> Any:
    """
    Load authorized user credentials, running the installed-app flow if needed.

    Args:
        credentials_file: OAuth client secrets JSON.
        token_file: Cached authorized user token, rewritten after authorization.

    Returns:
        google.oauth2.credentials.Credentials
    """
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials
    from google_auth_oauthlib.flow import InstalledAppFlow

    creds = None
    if token_file.exists():
        creds = Credentials.from_authorized_user_file(str(token_file), SCOPES)

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    elif not creds or not creds.valid:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_file), SCOPES)
        creds = flow.run_local_server(port=0)

    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(creds.to_json(), encoding="utf-8")
    return creds


class DriveTree:
    """
    Remote tree on Google Drive.

    Listing cursors are Drive page tokens. A request that is rejected while
    resuming from a page token is reported as a stale cursor.
    """

    def __init__(
        self,
        service: Any,
        *,
        page_size: int = 100,
        max_retries: int = 5,
        base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Drive tree.

        Args:
            service: Drive v3 service resource from googleapiclient.
            page_size: Items per listing page.
            max_retries: Retries for rate-limited or failed calls.
            base_delay: Base delay of the exponential backoff in seconds.
            sleep: Sleep function used between retries.
        """
        self.service = service
        self.page_size = page_size
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

    @classmethod
    def from_credentials(cls, credentials_file: Path, token_file: Path, **kwargs: Any) -> "DriveTree":
        """Build a Drive service from stored OAuth credentials."""
        creds = load_credentials(credentials_file, token_file)
        service = build("drive", "v3", credentials=creds, cache_discovery=False)
        return cls(service, **kwargs)

    @property
    def root_id(self) -> str:
        return "root"

    def _execute(self, request_factory: Callable[[], Any]) -> Any:
        """
        Execute a request, retrying rate limits, server errors and transport
        failures with exponential backoff and jitter.

        Raises:
            HttpError: For a non-retryable status, or once retries run out.
            OSError, httplib2.HttpLib2Error, TransportError: Once retries run out.
        """
        for attempt in range(self.max_retries + 1):
            try:
                return request_factory().execute()
            except HttpError as error:
                if not _is_retryable(error) or attempt == self.max_retries:
                    raise
                failure: Exception = error
            except TRANSPORT_ERRORS as error:
                if attempt == self.max_retries:
                    raise
                failure = error

            delay = self.base_delay * (2**attempt) + random.uniform(0, 1)
            logger.warning(
                "Drive API error (attempt %d/%d): %s; retrying in %.1fs",
                attempt + 1,
                self.max_retries + 1,
                _describe(failure),
                delay,
            )
            self._sleep(delay)
        raise AssertionError("unreachable")

    def _call(self, request_factory: Callable[[], Any], what: str) -> Any:
        try:
            return self._execute(request_factory)
        except HttpError as error:
            raise RemoteError(f"{what}: {error}", status=_status(error)) from error
        except TRANSPORT_ERRORS as error:
            raise RemoteError(f"{what}: {_describe(error)}") from error

    # -- listing ------------------------------------------------------------

    def _list(self, folder_id: str, query: str, kind: RefKind, cursor: Optional[str]) -> ListPage:
        def request() -> Any:
            return self.service.files().list(
                q=f"'{_quote(folder_id)}' in parents and trashed = false and {query}",
                spaces="drive",
                fields="nextPageToken, files(id, name, mimeType)",
                orderBy="name",
                pageSize=self.page_size,
                pageToken=cursor,
                includeItemsFromAllDrives=True,
                supportsAllDrives=True,
            )

        try:
            response = self._execute(request)
        except HttpError as error:
            if cursor is not None and _status(error) in (400, 404):
                return ListPage.stale(f"Page token rejected: {error}")
            return ListPage.failed(str(error))
        except TRANSPORT_ERRORS as error:
            return ListPage.failed(_describe(error))

        items = [RemoteRef(f["id"], f["name"], kind) for f in response.get("files", [])]
        next_token = response.get("nextPageToken")
        return ListPage(items=items, next_cursor=next_token, has_more=bool(next_token))

    def list_files(self, folder_id: str, cursor: Optional[str] = None) -> ListPage:
        query = f"mimeType != '{FOLDER_MIME}' and mimeType != '{SHORTCUT_MIME}'"
        return self._list(folder_id, query, RefKind.FILE, cursor)

    def list_folders(self, folder_id: str, cursor: Optional[str] = None) -> ListPage:
        return self._list(folder_id, f"mimeType = '{FOLDER_MIME}'", RefKind.FOLDER, cursor)

    # -- lookups ------------------------------------------------------------

    def _find(self, folder_id: str, name: str, kind: RefKind) -> Optional[RemoteRef]:
        mime = f"mimeType = '{FOLDER_MIME}'" if kind == RefKind.FOLDER else f"mimeType != '{FOLDER_MIME}'"

        def request(page_token: Optional[str]) -> Any:
            return self.service.files().list(
                q=f"'{_quote(folder_id)}' in parents and trashed = false and name = '{_quote(name)}' and {mime}",
                spaces="drive",
                fields="nextPageToken, files(id, name, mimeType)",
                pageSize=self.page_size,
                pageToken=page_token,
                includeItemsFromAllDrives=True,
                supportsAllDrives=True,
            )

        page_token: Optional[str] = None
        while True:
            response = self._call(partial(request, page_token), f"Lookup of {name!r} failed")
            # Drive name queries ignore case
            for f in response.get("files", []):
                if f["name"] == name:
                    return RemoteRef(f["id"], f["name"], kind)
            page_token = response.get("nextPageToken")
            if not page_token:
                return None

    def find_file(self, folder_id: str, name: str) -> Optional[RemoteRef]:
        return self._find(folder_id, name, RefKind.FILE)

    def find_folder(self, folder_id: str, name: str) -> Optional[RemoteRef]:
        return self._find(folder_id, name, RefKind.FOLDER)

    def get_folder(self, folder_id: str) -> RemoteRef:
        meta = self._call(
            lambda: self.service.files().get(fileId=folder_id, fields="id, name, mimeType", supportsAllDrives=True),
            f"Cannot access folder {folder_id}",
        )
        if meta.get("mimeType") != FOLDER_MIME:
            raise RemoteError(f"Not a folder: {folder_id}")
        return RemoteRef(meta["id"], meta["name"], RefKind.FOLDER)

    def get_name(self, ref_id: str) -> str:
        meta = self._call(
            lambda: self.service.files().get(fileId=ref_id, fields="name", supportsAllDrives=True),
            f"Cannot read name of {ref_id}",
        )
        return meta["name"]

    # -- mutations ----------------------------------------------------------

    def copy_file(self, file: RemoteRef, dest_folder_id: str, name: str) -> RemoteRef:
        copied = self._call(
            lambda: self.service.files().copy(
                fileId=file.id,
                body={"name": name, "parents": [dest_folder_id]},
                fields="id, name",
                supportsAllDrives=True,
            ),
            f"Copy of {name!r} failed",
        )
        return RemoteRef(copied["id"], copied["name"], RefKind.FILE)

    def create_folder(self, parent_id: str, name: str) -> RemoteRef:
        created = self._call(
            lambda: self.service.files().create(
                body={"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]},
                fields="id, name",
                supportsAllDrives=True,
            ),
            f"Cannot create folder {name!r}",
        )
        return RemoteRef(created["id"], created["name"], RefKind.FOLDER)

    # -- urls ---------------------------------------------------------------

    def folder_url(self, folder_id: str) -> str:
        return FOLDER_URL.format(folder_id)

    def parse_folder_url(self, url: str) -> str:
        match = ID_PATTERN.search(url)
        if not match:
            raise RemoteError(f"No folder id in URL: {url}")
        return match.group(0)
