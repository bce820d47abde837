"""Chunked upload to the drive's object storage.

One upload runs as a strictly sequential state machine, along one of::

    HASHING -> NEGOTIATED -> DEDUP_COMPLETE -> COMPLETE
    HASHING -> NEGOTIATED -> PART_UPLOADING* -> COMMITTING -> FINISHING -> COMPLETE

Any step may fail, which moves the job to FAILED and re-raises. A failed
multipart upload is not aborted; orphaned parts are left to the service.

The whole file is held in memory: both hashes must be known before the dedup
check, which precedes any byte transfer.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import time
from collections.abc import Callable, Iterator
from email.utils import formatdate
from enum import Enum
from typing import Any

from quark_drive._internal.protocol import ProtocolClient
from quark_drive.auth import RemoteTokenProvider, TokenProvider
from quark_drive.config import DriveConfig, Endpoints
from quark_drive.exceptions import CommitError, PartUploadError, UploadParameterError
from quark_drive.models import UploadSession

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
XML_CONTENT_TYPE = "application/xml"

ProgressCallback = Callable[[int], None]


class UploadState(Enum):
    PENDING = "pending"
    HASHING = "hashing"
    NEGOTIATED = "negotiated"
    DEDUP_COMPLETE = "dedup_complete"
    PART_UPLOADING = "part_uploading"
    COMMITTING = "committing"
    FINISHING = "finishing"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.PENDING: frozenset({UploadState.HASHING}),
    UploadState.HASHING: frozenset({UploadState.NEGOTIATED}),
    UploadState.NEGOTIATED: frozenset(
        {UploadState.DEDUP_COMPLETE, UploadState.PART_UPLOADING, UploadState.COMMITTING}
    ),
    UploadState.DEDUP_COMPLETE: frozenset({UploadState.COMPLETE}),
    UploadState.PART_UPLOADING: frozenset(
        {UploadState.PART_UPLOADING, UploadState.COMMITTING}
    ),
    UploadState.COMMITTING: frozenset({UploadState.FINISHING}),
    UploadState.FINISHING: frozenset({UploadState.COMPLETE}),
    UploadState.COMPLETE: frozenset(),
    UploadState.FAILED: frozenset(),
}


def http_date() -> str:
    """Current time as an RFC 7231 date, e.g. ``Sat, 17 Oct 2026 08:00:00 GMT``."""
    return formatdate(usegmt=True)


def iter_parts(data: bytes, part_size: int) -> Iterator[tuple[int, bytes]]:
    """Yield ``(part_number, chunk)`` pairs, numbered from 1.

    Every chunk but the last is exactly ``part_size`` bytes. Empty input
    yields nothing.
    """
    if part_size <= 0:
        raise ValueError(f"part_size must be positive, got {part_size}")
    for index, offset in enumerate(range(0, len(data), part_size), start=1):
        yield index, data[offset : offset + part_size]


def build_part_canonical(
    session: UploadSession,
    part_number: int,
    date: str,
    oss_user_agent: str,
    content_type: str = OCTET_STREAM,
) -> str:
    """String-to-sign for one part PUT. Content-MD5 is left empty."""
    return (
        f"PUT\n"
        f"\n"
        f"{content_type}\n"
        f"{date}\n"
        f"x-oss-date:{date}\n"
        f"x-oss-user-agent:{oss_user_agent}\n"
        f"/{session.bucket}/{session.obj_key}"
        f"?partNumber={part_number}&uploadId={session.upload_id}"
    )


def build_commit_canonical(
    session: UploadSession,
    md5_b64: str,
    callback_b64: str,
    date: str,
    oss_user_agent: str,
) -> str:
    """String-to-sign for the CompleteMultipartUpload POST."""
    return (
        f"POST\n"
        f"{md5_b64}\n"
        f"{XML_CONTENT_TYPE}\n"
        f"{date}\n"
        f"x-oss-callback:{callback_b64}\n"
        f"x-oss-date:{date}\n"
        f"x-oss-user-agent:{oss_user_agent}\n"
        f"/{session.bucket}/{session.obj_key}?uploadId={session.upload_id}"
    )


def build_complete_xml(etags: list[str]) -> str:
    """CompleteMultipartUpload body listing parts 1..N in upload order."""
    parts = "".join(
        f"<Part><PartNumber>{number}</PartNumber><ETag>{etag}</ETag></Part>"
        for number, etag in enumerate(etags, start=1)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<CompleteMultipartUpload>{parts}</CompleteMultipartUpload>"
    )


def content_md5(body: bytes) -> str:
    return base64.b64encode(hashlib.md5(body).digest()).decode("ascii")


def encode_callback(callback: dict[str, Any]) -> str:
    """Base64 of the compact JSON form of the server's opaque callback payload."""
    raw = json.dumps(callback, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


class ProgressReporter:
    """Forwards integer percentages to an observer, never going backwards."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self.last = 0
        self._emitted = False

    def emit(self, percent: float) -> None:
        value = max(0, min(100, int(percent)))
        if self._emitted and value < self.last:
            return
        self.last = value
        self._emitted = True
        if self._callback is not None:
            self._callback(value)


class UploadJob:
    """A single ``upload_file`` invocation and its negotiated session."""

    def __init__(
        self,
        pipeline: UploadPipeline,
        name: str,
        data: bytes,
        parent_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._config: DriveConfig = pipeline.protocol.config
        self.name = name
        self.data = bytes(data)
        self.parent_id = parent_id
        self.progress = ProgressReporter(on_progress)
        self.state = UploadState.PENDING
        self.session: UploadSession | None = None
        self.md5 = ""
        self.sha1 = ""
        self.instant = False

    def _transition(self, new_state: UploadState) -> None:
        if new_state is not UploadState.FAILED and new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal upload transition {self.state.name} -> {new_state.name}")
        logger.debug(f"[{self.name}] {self.state.name} -> {new_state.name}")
        self.state = new_state

    def run(self) -> str:
        """Execute the upload and return the drive fid of the file."""
        if self.state is not UploadState.PENDING:
            raise RuntimeError(f"Upload job already ran (state {self.state.name})")
        try:
            return self._run()
        except Exception:
            self._transition(UploadState.FAILED)
            raise

    def _run(self) -> str:
        self._transition(UploadState.HASHING)
        self.md5 = hashlib.md5(self.data).hexdigest()
        self.sha1 = hashlib.sha1(self.data).hexdigest()
        self.progress.emit(5)

        session = self._negotiate()
        self.session = session
        self._transition(UploadState.NEGOTIATED)
        self.progress.emit(10)

        if self._submit_hash(session):
            self.instant = True
            self._transition(UploadState.DEDUP_COMPLETE)
            logger.info(f"Instant upload of {self.name} ({len(self.data)} bytes) as {session.fid}")
            self._transition(UploadState.COMPLETE)
            self.progress.emit(100)
            return session.fid

        if not session.has_storage_params:
            raise UploadParameterError(
                f"Pre-upload for {self.name} returned no upload_id, obj_key or bucket"
            )

        total = len(self.data)
        sent = 0
        for part_number, chunk in iter_parts(self.data, session.part_size):
            self._transition(UploadState.PART_UPLOADING)
            session.etags.append(self._upload_part(session, part_number, chunk))
            sent += len(chunk)
            self.progress.emit(10 + min(70, int(sent / total * 70)))

        self._transition(UploadState.COMMITTING)
        self._commit(session)
        self.progress.emit(85)

        self._transition(UploadState.FINISHING)
        self._finish(session)
        self.progress.emit(95)

        self._transition(UploadState.COMPLETE)
        logger.info(
            f"Uploaded {self.name} ({total} bytes, {len(session.etags)} parts) as {session.fid}"
        )
        self.progress.emit(100)
        return session.fid

    def _negotiate(self) -> UploadSession:
        now = self._pipeline.now_ms()
        envelope = self._pipeline.protocol.request(
            Endpoints.PRE_UPLOAD,
            "POST",
            {
                "ccp_hash_update": True,
                # Advertised to the service; parts are still sent one at a time.
                "parallel_upload": True,
                "pdir_fid": self.parent_id,
                "dir_name": "",
                "size": len(self.data),
                "file_name": self.name,
                "format_type": OCTET_STREAM,
                "l_updated_at": now,
                "l_created_at": now,
            },
        )
        session = UploadSession.from_envelope(envelope, self._config.part_size)
        logger.debug(
            f"[{self.name}] task={session.task_id} fid={session.fid} "
            f"part_size={session.part_size}"
        )
        return session

    def _submit_hash(self, session: UploadSession) -> bool:
        envelope = self._pipeline.protocol.request(
            Endpoints.UPDATE_HASH,
            "POST",
            {"task_id": session.task_id, "md5": self.md5, "sha1": self.sha1},
        )
        return bool((envelope.get("data") or {}).get("finish"))

    def _object_url(self, session: UploadSession, query: str) -> str:
        return f"https://{session.bucket}{self._config.oss_domain}/{session.obj_key}?{query}"

    def _upload_part(self, session: UploadSession, part_number: int, chunk: bytes) -> str:
        date = self._pipeline.clock()
        oss_user_agent = self._config.oss_user_agent
        canonical = build_part_canonical(session, part_number, date, oss_user_agent)
        authorization = self._pipeline.token_provider(canonical, session)

        response = self._pipeline.protocol.fetch(
            "PUT",
            self._object_url(
                session, f"partNumber={part_number}&uploadId={session.upload_id}"
            ),
            headers={
                "Authorization": authorization,
                "Content-Type": OCTET_STREAM,
                "x-oss-date": date,
                "x-oss-user-agent": oss_user_agent,
            },
            content=chunk,
        )
        if not response.is_success:
            logger.error(
                f"[{self.name}] part {part_number} rejected: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
            raise PartUploadError(part_number, response.status_code)
        return response.headers.get("ETag", "")

    def _commit(self, session: UploadSession) -> None:
        date = self._pipeline.clock()
        oss_user_agent = self._config.oss_user_agent
        body = build_complete_xml(session.etags).encode("utf-8")
        md5_b64 = content_md5(body)
        callback_b64 = encode_callback(session.callback)
        canonical = build_commit_canonical(session, md5_b64, callback_b64, date, oss_user_agent)
        authorization = self._pipeline.token_provider(canonical, session)

        response = self._pipeline.protocol.fetch(
            "POST",
            self._object_url(session, f"uploadId={session.upload_id}"),
            headers={
                "Authorization": authorization,
                "Content-MD5": md5_b64,
                "Content-Type": XML_CONTENT_TYPE,
                "x-oss-callback": callback_b64,
                "x-oss-date": date,
                "x-oss-user-agent": oss_user_agent,
            },
            content=body,
        )
        if not response.is_success:
            logger.error(
                f"[{self.name}] commit rejected: HTTP {response.status_code} {response.text[:200]}"
            )
            raise CommitError(response.status_code, response.text[:200])

    def _finish(self, session: UploadSession) -> None:
        self._pipeline.protocol.request(
            Endpoints.UPLOAD_FINISH,
            "POST",
            {"obj_key": session.obj_key, "task_id": session.task_id},
        )


class UploadPipeline:
    """Builds and runs UploadJobs against one ProtocolClient.

    The pipeline keeps no per-upload state, so concurrent ``upload`` calls for
    different files are independent.
    """

    def __init__(
        self,
        protocol: ProtocolClient,
        token_provider: TokenProvider | None = None,
        *,
        clock: Callable[[], str] = http_date,
        now_ms: Callable[[], int] | None = None,
    ) -> None:
        self.protocol = protocol
        self.token_provider = token_provider or RemoteTokenProvider(protocol)
        self.clock = clock
        self.now_ms = now_ms or (lambda: int(time.time() * 1000))

    def start(
        self,
        name: str,
        data: bytes,
        parent_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> UploadJob:
        return UploadJob(self, name, data, parent_id, on_progress)

    def upload(
        self,
        name: str,
        data: bytes,
        parent_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Upload ``data`` as ``name`` into folder ``parent_id``; return its fid.

        Raises:
            ProtocolError: If a drive API step is rejected
            NetworkError: On transport failure
            UploadParameterError: If negotiation lacks object storage params
            PartUploadError: If a part PUT is rejected
            CommitError: If the multipart commit is rejected
        """
        return self.start(name, data, parent_id, on_progress).run()
