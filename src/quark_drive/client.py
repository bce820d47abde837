"""Main DriveClient class for interacting with the Quark cloud drive."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from quark_drive._internal.protocol import ProtocolClient
from quark_drive.auth import TokenProvider
from quark_drive.config import DriveConfig
from quark_drive.download import DownloadResolver
from quark_drive.folders import ROOT_FID, FolderManager
from quark_drive.models import AccountInfo, FileNode, UploadResult
from quark_drive.upload import ProgressCallback, UploadPipeline, http_date

logger = logging.getLogger(__name__)


class DriveClient:
    """Cookie-authenticated client for the Quark cloud drive.

    Supports both context manager and manual session patterns.

    Example (context manager - recommended):
        with DriveClient(cookie) as client:
            folder_id = client.find_or_create_folder("/Backups")
            client.upload_file("vault.bak", data, folder_id)

    Example (manual session):
        client = DriveClient(cookie)
        nodes = client.list_files()
        client.close()
    """

    def __init__(
        self,
        cookie: str,
        config: DriveConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
        token_provider: TokenProvider | None = None,
        clock: Callable[[], str] = http_date,
        now_ms: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            cookie: Raw ``Cookie`` header value of a logged-in drive session
            config: Endpoint configuration (defaults to DriveConfig())
            http_client: Optional httpx.Client to send requests with
            token_provider: Signs object storage requests; defaults to the
                drive's upload-auth endpoint
            clock: HTTP-date factory for object storage requests
            now_ms: Millisecond timestamp factory for pre-upload negotiation
        """
        self._protocol = ProtocolClient(cookie, config, http_client=http_client)
        self._folders = FolderManager(self._protocol)
        self._uploads = UploadPipeline(
            self._protocol, token_provider, clock=clock, now_ms=now_ms
        )
        self._downloads = DownloadResolver(self._protocol)

    def __enter__(self) -> DriveClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit context manager."""
        self.close()

    @property
    def config(self) -> DriveConfig:
        return self._protocol.config

    @property
    def cookie(self) -> str:
        return self._protocol.cookie

    def update_cookie(self, cookie: str) -> None:
        """Replace the credentials used by subsequent requests."""
        self._protocol.cookie = cookie

    def update_config(self, **overrides: Any) -> DriveConfig:
        """Merge overrides into the config for subsequent requests.

        Uploads already in flight keep the config they started with.
        """
        self._protocol.config = self._protocol.config.with_overrides(**overrides)
        logger.info(f"Drive config updated: {sorted(overrides)}")
        return self._protocol.config

    def validate_cookie(self) -> AccountInfo:
        """Check whether the cookie is accepted. Never raises."""
        return self._protocol.validate_cookie()

    def list_files(self, folder_id: str = ROOT_FID) -> list[FileNode]:
        """List up to 50 entries of a folder.

        Raises:
            ProtocolError: If the service rejects the request
            NetworkError: On transport failure
        """
        return self._folders.list_files(folder_id)

    def create_folder(self, name: str, parent_id: str = ROOT_FID) -> str:
        """Create a folder and return its fid. Not idempotent."""
        return self._folders.create_folder(name, parent_id)

    def find_or_create_folder(self, path: str) -> str:
        """Resolve ``a/b/c`` from the root, creating missing segments."""
        return self._folders.find_or_create_folder(path)

    def find_file(self, folder_id: str, name: str) -> FileNode | None:
        return self._folders.find_file(folder_id, name)

    def delete_file(self, file_id: str) -> None:
        """Move a file or folder to the trash."""
        self._folders.delete_file(file_id)

    def upload_file(
        self,
        name: str,
        data: bytes,
        parent_id: str = ROOT_FID,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload bytes as a new file and return its fid.

        Args:
            name: File name in the drive
            data: Whole file content
            parent_id: Destination folder fid
            on_progress: Called with non-decreasing percentages ending at 100

        Raises:
            UploadError: If the object storage legs fail
            ProtocolError: If a drive API step is rejected
            NetworkError: On transport failure
        """
        return self._uploads.upload(name, data, parent_id, on_progress)

    def upload_to_folder(
        self,
        name: str,
        data: bytes,
        folder_path: str,
        *,
        replace: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Upload into a folder path, creating it if needed.

        Args:
            name: File name in the drive
            data: Whole file content
            folder_path: Slash-separated folder path from the root
            replace: Trash an existing file with the same name first
            on_progress: Progress observer for the upload itself

        Returns:
            UploadResult describing the stored file
        """
        folder_id = self._folders.find_or_create_folder(folder_path)
        if replace:
            existing = self._folders.find_file(folder_id, name)
            if existing is not None:
                logger.info(f"Replacing {name} ({existing.fid}) in {folder_path}")
                self._folders.delete_file(existing.fid)

        job = self._uploads.start(name, data, folder_id, on_progress)
        file_id = job.run()
        return UploadResult(
            file_id=file_id,
            folder_id=folder_id,
            name=name,
            size=len(job.data),
            instant=job.instant,
        )

    def get_download_url(self, file_id: str) -> str:
        """Resolve a time-limited direct download URL."""
        return self._downloads.get_download_url(file_id)

    def download_file(self, file_id: str) -> bytes:
        """Download a file's bytes.

        Raises:
            ProtocolError: If the URL cannot be resolved
            NetworkError: On transport failure or a non-2xx response
        """
        return self._downloads.download_file(file_id)

    def close(self) -> None:
        """Close the client and clean up resources."""
        self._protocol.close()
