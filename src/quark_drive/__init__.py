"""Quark Drive - A Python client for the Quark cloud drive.

Example usage:
    from quark_drive import DriveClient

    # Using context manager (recommended)
    with DriveClient(cookie) as client:
        folder_id = client.find_or_create_folder("/Backups/vault")
        fid = client.upload_file("vault.bak", data, folder_id)
        data = client.download_file(fid)

    # Adapting to a changed service without a new release
    client = DriveClient(cookie)
    client.update_config(oss_domain=".pds.quark.cn", part_size=8 * 1024 * 1024)
    client.close()
"""

from quark_drive.auth import RemoteTokenProvider, TokenProvider
from quark_drive.client import DriveClient
from quark_drive.config import DriveConfig, Endpoints, load_config, load_cookie
from quark_drive.exceptions import (
    CommitError,
    DriveError,
    NetworkError,
    PartUploadError,
    ProtocolError,
    UploadError,
    UploadParameterError,
)
from quark_drive.models import AccountInfo, FileNode, UploadResult, UploadSession
from quark_drive.upload import UploadJob, UploadPipeline, UploadState

__version__ = "0.1.0"

__all__ = [
    # Main client
    "DriveClient",
    # Configuration
    "DriveConfig",
    "Endpoints",
    "load_config",
    "load_cookie",
    # Upload internals that callers may swap or inspect
    "TokenProvider",
    "RemoteTokenProvider",
    "UploadPipeline",
    "UploadJob",
    "UploadState",
    # Models
    "AccountInfo",
    "FileNode",
    "UploadResult",
    "UploadSession",
    # Exceptions
    "DriveError",
    "NetworkError",
    "ProtocolError",
    "UploadError",
    "UploadParameterError",
    "PartUploadError",
    "CommitError",
]
