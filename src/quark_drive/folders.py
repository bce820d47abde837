"""Path-based folder operations on top of the drive API."""

from __future__ import annotations

import logging

from quark_drive._internal.protocol import ProtocolClient
from quark_drive.config import Endpoints
from quark_drive.exceptions import ProtocolError
from quark_drive.models import FileNode

logger = logging.getLogger(__name__)

ROOT_FID = "0"


class FolderManager:
    """List, create, resolve and trash drive nodes.

    Every call re-fetches from the service; nothing is cached. ``create_folder``
    is not idempotent, and ``find_or_create_folder`` is a list-then-create
    sequence, so concurrent calls on the same path can create duplicates.
    """

    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def list_files(self, folder_id: str = ROOT_FID) -> list[FileNode]:
        """List the first page (50 entries) of a folder, folders first."""
        envelope = self._protocol.request(
            Endpoints.LIST_FILES,
            "GET",
            query={
                "pdir_fid": folder_id,
                "_page": "1",
                "_size": "50",
                "_fetch_total": "1",
                "_fetch_sub_dirs": "0",
                "_sort": "file_type:asc,updated_at:desc",
            },
        )
        data = envelope.get("data") or {}
        return [FileNode.from_raw(item) for item in data.get("list") or []]

    def create_folder(self, name: str, parent_id: str = ROOT_FID) -> str:
        """Create a folder and return its fid."""
        envelope = self._protocol.request(
            Endpoints.CREATE_FOLDER,
            "POST",
            {
                "pdir_fid": parent_id,
                "file_name": name,
                "dir_path": "",
                "dir_init_lock": False,
            },
        )
        fid = (envelope.get("data") or {}).get("fid")
        if not fid:
            raise ProtocolError(f"Create folder '{name}' returned no fid")
        logger.info(f"Created folder {name} ({fid}) under {parent_id}")
        return str(fid)

    def find_or_create_folder(self, path: str) -> str:
        """Resolve a slash-separated path from the root, creating missing folders.

        Matching is exact and case-sensitive. Returns the fid of the deepest
        folder; an empty path resolves to the root.
        """
        current = ROOT_FID
        for segment in (part for part in path.split("/") if part):
            existing = next(
                (
                    node
                    for node in self.list_files(current)
                    if node.is_dir and node.name == segment
                ),
                None,
            )
            if existing is not None:
                current = existing.fid
            else:
                current = self.create_folder(segment, current)
        return current

    def find_file(self, folder_id: str, name: str) -> FileNode | None:
        """Return the first non-folder entry named ``name`` in a folder."""
        for node in self.list_files(folder_id):
            if not node.is_dir and node.name == name:
                return node
        return None

    def delete_file(self, file_id: str) -> None:
        """Move a node to the trash."""
        self._protocol.request(
            Endpoints.DELETE_FILE,
            "POST",
            {"action_type": 2, "filelist": [file_id], "exclude_fids": []},
        )
        logger.info(f"Moved {file_id} to trash")
