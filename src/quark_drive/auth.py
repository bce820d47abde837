"""Per-request object storage authorization.

The drive service holds the object storage signing secret. The client sends it
each canonical string-to-sign and gets back a ready ``Authorization`` value.
"""

from __future__ import annotations

from typing import Protocol

from quark_drive._internal.protocol import ProtocolClient
from quark_drive.config import Endpoints
from quark_drive.exceptions import ProtocolError
from quark_drive.models import UploadSession


class TokenProvider(Protocol):
    """Signs one canonical string for the given upload session."""

    def __call__(self, canonical: str, session: UploadSession) -> str: ...


class RemoteTokenProvider:
    """TokenProvider backed by the drive's upload-auth endpoint."""

    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def __call__(self, canonical: str, session: UploadSession) -> str:
        envelope = self._protocol.request(
            Endpoints.UPLOAD_AUTH,
            "POST",
            {
                "auth_info": session.auth_info,
                "auth_meta": canonical,
                "task_id": session.task_id,
            },
        )
        auth_key = (envelope.get("data") or {}).get("auth_key")
        if not auth_key:
            raise ProtocolError(f"Upload auth for task {session.task_id} returned no auth_key")
        return str(auth_key)
