"""Low-level HTTP client for the drive API envelope protocol."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from quark_drive.config import DriveConfig
from quark_drive.exceptions import NetworkError, ProtocolError
from quark_drive.models import AccountInfo

logger = logging.getLogger(__name__)

SUCCESS_CODES = (0, "OK")


class ProtocolClient:
    """Issues cookie-authenticated requests and unwraps response envelopes.

    Holds one ``httpx.Client``; pass ``http_client`` to supply your own (for
    example one built on ``httpx.MockTransport``), in which case the caller
    owns its lifetime.
    """

    def __init__(
        self,
        cookie: str,
        config: DriveConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.cookie = cookie
        self.config = config or DriveConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(follow_redirects=True, timeout=None)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _base_headers(self) -> dict[str, str]:
        return {
            "Cookie": self.cookie,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": self.config.accept_language,
            "Referer": self.config.referer,
            "User-Agent": self.config.user_agent,
            "Origin": self.config.origin,
        }

    def request(
        self,
        path: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Call a drive API endpoint and return the parsed envelope.

        Args:
            path: Endpoint path relative to ``config.api_base``
            method: "GET" or "POST"
            body: JSON payload, only sent with POST
            query: Extra query parameters, merged after the platform params

        Returns:
            The decoded ``{code, message, data, metadata}`` envelope

        Raises:
            NetworkError: On transport failure
            ProtocolError: If the body is not JSON or the code is not success
        """
        params = dict(self.config.common_params)
        if query:
            params.update(query)

        headers = self._base_headers()
        content: bytes | None = None
        if method == "POST" and body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode()

        url = f"{self.config.api_base}{path}"
        logger.debug(f"{method} {path}")
        try:
            response = self._client.request(
                method, url, params=params, headers=headers, content=content
            )
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        text = response.text
        try:
            envelope = json.loads(text)
        except ValueError as e:
            raise ProtocolError(f"Failed to parse response: {text[:200]}") from e
        if not isinstance(envelope, dict):
            raise ProtocolError(f"Unexpected response shape: {text[:200]}")

        code = envelope.get("code")
        # false == 0 in Python, so booleans never count as success
        if code is not None and (isinstance(code, bool) or code not in SUCCESS_CODES):
            message = envelope.get("message") or f"Request failed (code: {code})"
            logger.warning(f"{method} {path} rejected: code={code} message={message}")
            raise ProtocolError(message, code=code)
        return envelope

    def fetch(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        content: bytes | None = None,
    ) -> httpx.Response:
        """Send a raw request outside the envelope protocol.

        Status codes are left to the caller; only transport failures raise.
        """
        try:
            return self._client.request(method, url, headers=headers, content=content)
        except httpx.RequestError as e:
            raise NetworkError(f"{method} {url.split('?')[0]} failed: {e}") from e

    def validate_cookie(self) -> AccountInfo:
        """Check the cookie against the account-info endpoint.

        Advisory only: every failure resolves to ``AccountInfo(valid=False)``.
        """
        headers = {
            "Cookie": self.cookie,
            "Accept": "application/json, text/plain, */*",
            "Referer": self.config.referer,
            "User-Agent": self.config.user_agent,
        }
        try:
            response = self._client.get(
                self.config.account_info_url,
                params={"fr": "pc", "platform": "pc"},
                headers=headers,
            )
            if response.status_code != 200:
                logger.info(f"Cookie check returned HTTP {response.status_code}")
                return AccountInfo(valid=False)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"Cookie check failed: {e}")
            return AccountInfo(valid=False)

        if not isinstance(payload, dict):
            return AccountInfo(valid=False)
        data = payload.get("data")
        if (payload.get("success") is True or payload.get("code") == "OK") and data:
            nickname = data.get("nickname") if isinstance(data, dict) else None
            return AccountInfo(valid=True, nickname=nickname or self.config.default_nickname)
        return AccountInfo(valid=False)
