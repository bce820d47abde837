"""Signed-URL download."""

from __future__ import annotations

import logging

from quark_drive._internal.protocol import ProtocolClient
from quark_drive.config import Endpoints
from quark_drive.exceptions import NetworkError, ProtocolError

logger = logging.getLogger(__name__)


class DownloadResolver:
    """Resolves a fid to a time-limited URL and fetches its bytes."""

    def __init__(self, protocol: ProtocolClient) -> None:
        self._protocol = protocol

    def get_download_url(self, file_id: str) -> str:
        envelope = self._protocol.request(Endpoints.DOWNLOAD, "POST", {"fids": [file_id]})
        entries = envelope.get("data")
        if not isinstance(entries, list) or not entries:
            raise ProtocolError(f"No download data returned for {file_id}")
        first = entries[0]
        url = first.get("download_url") if isinstance(first, dict) else None
        if not url:
            raise ProtocolError(f"No download_url returned for {file_id}")
        logger.debug(f"Resolved download URL for {file_id}: {url[:100]}...")
        return str(url)

    def download_file(self, file_id: str) -> bytes:
        """Download a file's content.

        The resolved URL is pre-authorized by the drive, so the request carries
        only the cookie and browser identity headers.

        Raises:
            ProtocolError: If the URL cannot be resolved
            NetworkError: On transport failure or a non-2xx response
        """
        url = self.get_download_url(file_id)
        config = self._protocol.config
        response = self._protocol.fetch(
            "GET",
            url,
            headers={
                "Cookie": self._protocol.cookie,
                "Referer": config.referer,
                "Origin": config.origin,
                "User-Agent": config.user_agent,
                "Accept": "*/*",
                "Accept-Language": config.accept_language,
            },
        )
        if not response.is_success:
            detail = response.text[:200]
            logger.error(f"Download of {file_id} failed: HTTP {response.status_code} {detail}")
            raise NetworkError(
                f"Download failed: HTTP {response.status_code} - {detail}",
                status_code=response.status_code,
            )
        logger.info(f"Downloaded {file_id} ({len(response.content)} bytes)")
        return response.content
