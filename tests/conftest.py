"""Pytest fixtures for quark_drive tests."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
from helpers import FIXED_DATE, FIXED_MS, TEST_COOKIE, FakeDrive

from quark_drive import DriveClient, DriveConfig


@pytest.fixture
def fake_drive() -> FakeDrive:
    """Create an empty in-memory drive."""
    return FakeDrive()


@pytest.fixture
def http_client(fake_drive: FakeDrive) -> Iterator[httpx.Client]:
    """httpx client routed to the fake drive."""
    with fake_drive.http_client() as client:
        yield client


@pytest.fixture
def small_parts_config() -> DriveConfig:
    """Config with a 4-byte default part size to force multipart uploads."""
    return DriveConfig(part_size=4)


@pytest.fixture
def client(http_client: httpx.Client) -> Iterator[DriveClient]:
    """DriveClient against the fake drive with a frozen clock."""
    with DriveClient(
        TEST_COOKIE,
        http_client=http_client,
        clock=lambda: FIXED_DATE,
        now_ms=lambda: FIXED_MS,
    ) as drive_client:
        yield drive_client


@pytest.fixture
def progress() -> list[int]:
    """Collects emitted progress values."""
    return []
