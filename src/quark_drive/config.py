"""Drive endpoint configuration.

The drive API is reverse engineered and the service changes undocumented
parameters from time to time, so every value a request depends on lives in
``DriveConfig`` and can be overridden per client instance.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from dotenv import load_dotenv

DEFAULT_API_BASE = "https://drive-pc.quark.cn/1/clouddrive"
DEFAULT_ACCOUNT_INFO_URL = "https://pan.quark.cn/account/info"
DEFAULT_REFERER = "https://pan.quark.cn/"
DEFAULT_ORIGIN = "https://pan.quark.cn"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/126.0.0.0 Safari/537.36"
)
DEFAULT_OSS_DOMAIN = ".pds.quark.cn"
DEFAULT_OSS_USER_AGENT = "aliyun-sdk-js/1.0.0 Chrome 126.0.0.0 on Windows 10 64-bit"
DEFAULT_PART_SIZE = 4 * 1024 * 1024


class Endpoints:
    """Drive API paths, relative to ``DriveConfig.api_base``."""

    CREATE_FOLDER = "/file"
    LIST_FILES = "/file/sort"
    DELETE_FILE = "/file/delete"
    PRE_UPLOAD = "/file/upload/pre"
    UPDATE_HASH = "/file/update/hash"
    UPLOAD_AUTH = "/file/upload/auth"
    UPLOAD_FINISH = "/file/upload/finish"
    DOWNLOAD = "/file/download"


@dataclass(frozen=True)
class DriveConfig:
    """Static request parameters for one client instance."""

    api_base: str = DEFAULT_API_BASE
    account_info_url: str = DEFAULT_ACCOUNT_INFO_URL
    referer: str = DEFAULT_REFERER
    origin: str = DEFAULT_ORIGIN
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "zh-CN,zh;q=0.9"
    oss_domain: str = DEFAULT_OSS_DOMAIN
    oss_user_agent: str = DEFAULT_OSS_USER_AGENT
    part_size: int = DEFAULT_PART_SIZE
    common_params: Mapping[str, str] = field(
        default_factory=lambda: {"pr": "ucpro", "fr": "pc"}
    )
    default_nickname: str = "Quark User"

    def __post_init__(self) -> None:
        if self.part_size <= 0:
            raise ValueError(f"part_size must be positive, got {self.part_size}")
        object.__setattr__(self, "common_params", MappingProxyType(dict(self.common_params)))

    def with_overrides(self, **changes: Any) -> DriveConfig:
        """Return a copy with the given fields replaced.

        Raises:
            TypeError: If a key is not a DriveConfig field
            ValueError: If the resulting config is invalid
        """
        return dataclasses.replace(self, **changes)


# Environment variable -> (field name, converter)
_ENV_FIELDS: dict[str, tuple[str, Any]] = {
    "QUARK_API_BASE": ("api_base", str),
    "QUARK_ACCOUNT_INFO_URL": ("account_info_url", str),
    "QUARK_REFERER": ("referer", str),
    "QUARK_ORIGIN": ("origin", str),
    "QUARK_USER_AGENT": ("user_agent", str),
    "QUARK_OSS_DOMAIN": ("oss_domain", str),
    "QUARK_OSS_USER_AGENT": ("oss_user_agent", str),
    "QUARK_PART_SIZE": ("part_size", int),
}


def load_config(env: Mapping[str, str] | None = None) -> DriveConfig:
    """Construct a DriveConfig from environment variables.

    Reads a ``.env`` file first when ``env`` is not given. Optional variables:
        QUARK_API_BASE, QUARK_ACCOUNT_INFO_URL, QUARK_REFERER, QUARK_ORIGIN,
        QUARK_USER_AGENT, QUARK_OSS_DOMAIN, QUARK_OSS_USER_AGENT,
        QUARK_PART_SIZE (bytes).

    Returns:
        DriveConfig with defaults for every unset variable.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    overrides: dict[str, Any] = {}
    for var, (name, convert) in _ENV_FIELDS.items():
        value = env.get(var)
        if value:
            overrides[name] = convert(value)
    return DriveConfig(**overrides)


def load_cookie(env: Mapping[str, str] | None = None) -> str | None:
    """Return the cookie string from ``QUARK_COOKIE``, if set."""
    if env is None:
        load_dotenv()
        env = os.environ
    return env.get("QUARK_COOKIE") or None
