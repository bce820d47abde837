"""Shared test helpers for quark_drive tests."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs

import httpx

API_PREFIX = "/1/clouddrive"
DOWNLOAD_HOST = "dl.example.com"
FIXED_DATE = "Sat, 17 Oct 2026 08:00:00 GMT"
FIXED_MS = 1792224000000
TEST_COOKIE = "__pus=abc; __puus=def; __uid=42"


def envelope(data: Any = None, **extra: Any) -> dict[str, Any]:
    return {"status": 200, "code": 0, "message": "ok", "data": data, **extra}


class FakeDrive:
    """In-memory stand-in for the drive API, account API and object storage.

    Route it through ``httpx.MockTransport`` via ``http_client()``. Every
    request is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.children: dict[str, list[dict[str, Any]]] = {"0": []}
        self.blobs: dict[str, bytes] = {}
        self.content_by_md5: dict[str, bytes] = {}
        self.auth_metas: list[str] = []
        self.part_status: dict[int, int] = {}
        self.commit_status = 200
        self.server_part_size: int | None = None
        self.omit_storage_params = False
        self.account_response = httpx.Response(
            200, json={"success": True, "code": "OK", "data": {"nickname": "tester"}}
        )
        self._tasks: dict[str, dict[str, Any]] = {}
        self._next_id = 0

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def calls(self, path: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.path in (path, API_PREFIX + path) and (method is None or r.method == method)
        ]

    def oss_requests(self, method: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.host.endswith(".pds.quark.cn") and (method is None or r.method == method)
        ]

    def parts_for(self, fid: str) -> dict[int, bytes]:
        """Part bodies received for the upload that produced ``fid``."""
        for task in self._tasks.values():
            if task["fid"] == fid:
                return dict(task["parts"])
        raise KeyError(fid)

    def add_node(self, parent: str, name: str, *, is_dir: bool, size: int = 0) -> str:
        fid = self._new_id("fid")
        self.children[parent].append(
            {
                "fid": fid,
                "file_name": name,
                "size": size,
                "created_at": 1760000000000,
                "updated_at": 1760000000000,
                "file_type": 0 if is_dir else 1,
                "dir": is_dir,
            }
        )
        if is_dir:
            self.children[fid] = []
        return fid

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}{self._next_id}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host.endswith(".pds.quark.cn"):
            return self._object_storage(request)
        if host == DOWNLOAD_HOST:
            fid = request.url.params["fid"]
            if fid not in self.blobs:
                return httpx.Response(403, text="expired")
            return httpx.Response(200, content=self.blobs[fid])
        if request.url.path == "/account/info":
            return self.account_response

        path = request.url.path.removeprefix(API_PREFIX)
        body = json.loads(request.content) if request.content else {}
        route = getattr(self, "_api_" + path.strip("/").replace("/", "_"), None)
        if route is None:
            return httpx.Response(404, json={"code": 404, "message": f"no route {path}"})
        return httpx.Response(200, json=route(request, body))

    def _api_file(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        fid = self.add_node(body["pdir_fid"], body["file_name"], is_dir=True)
        return envelope({"finish": True, "fid": fid})

    def _api_file_sort(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        parent = request.url.params["pdir_fid"]
        items = self.children.get(parent, [])
        return envelope({"list": list(items)}, metadata={"_total": len(items)})

    def _api_file_delete(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        doomed = set(body["filelist"])
        for items in self.children.values():
            items[:] = [item for item in items if item["fid"] not in doomed]
        return envelope({"task_id": "del-task", "finish": True})

    def _api_file_upload_pre(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        task_id = self._new_id("task")
        fid = self._new_id("fid")
        self._tasks[task_id] = {"fid": fid, "body": body, "parts": {}}
        data: dict[str, Any] = {"task_id": task_id, "fid": fid, "finish": False}
        if not self.omit_storage_params:
            data.update(
                bucket="ul-zb",
                obj_key=f"objects/{fid}",
                upload_id=f"UPLOAD{task_id}",
                upload_url="http://pds.quark.cn",
                auth_info="opaque-auth-info",
                callback={
                    "callbackUrl": "https://auth-cdn.example/upload/callback",
                    "callbackBody": "bucket=${bucket}&object=${object}&size=${size}",
                },
            )
        metadata = {"part_size": self.server_part_size} if self.server_part_size else {}
        return envelope(data, metadata=metadata)

    def _api_file_update_hash(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        task = self._tasks[body["task_id"]]
        task["md5"] = body["md5"]
        finish = body["md5"] in self.content_by_md5
        if finish:
            self.blobs[task["fid"]] = self.content_by_md5[body["md5"]]
        return envelope({"finish": finish, "fid": task["fid"]})

    def _api_file_upload_auth(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        self.auth_metas.append(body["auth_meta"])
        return envelope({"auth_key": f"OSS signed-{len(self.auth_metas)}"})

    def _api_file_upload_finish(
        self, request: httpx.Request, body: dict[str, Any]
    ) -> dict[str, Any]:
        task = self._tasks[body["task_id"]]
        parts = task["parts"]
        content = b"".join(parts[number] for number in sorted(parts))
        self.blobs[task["fid"]] = content
        self.content_by_md5[task["md5"]] = content
        return envelope({"finish": True, "fid": task["fid"]})

    def _api_file_download(self, request: httpx.Request, body: dict[str, Any]) -> dict[str, Any]:
        return envelope(
            [
                {"fid": fid, "download_url": f"https://{DOWNLOAD_HOST}/get?fid={fid}&sig=x"}
                for fid in body["fids"]
            ]
        )

    def _object_storage(self, request: httpx.Request) -> httpx.Response:
        query = parse_qs(request.url.query.decode())
        task = self._tasks[query["uploadId"][0].removeprefix("UPLOAD")]
        if request.method == "PUT":
            number = int(query["partNumber"][0])
            status = self.part_status.get(number, 200)
            if status != 200:
                return httpx.Response(
                    status, text="<Error><Code>SignatureDoesNotMatch</Code></Error>"
                )
            task["parts"][number] = request.content
            return httpx.Response(200, headers={"ETag": f'"ETAG-{number}"'})
        if self.commit_status != 200:
            return httpx.Response(
                self.commit_status, text="<Error><Code>InvalidPart</Code></Error>"
            )
        return httpx.Response(200, json={"Status": "OK"})
