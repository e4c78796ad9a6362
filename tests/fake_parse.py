"""
In-process stand-in for the Parse REST API, served through httpx.MockTransport.

Supports the subset ParseClient uses: class queries (equality ``where``,
single-key ``order``, ``limit``/``skip``), create, update with the atomic
``Increment`` operator, delete, ``/batch`` deletes and ``/schemas``.
"""
from __future__ import annotations

import itertools
import json
import threading

import httpx

MASTER_ONLY = {"User", "Sequence"}


class FakeParseServer:
    def __init__(self, mount: str = "/parse", master_key: str = "master") -> None:
        self.mount = mount
        self.master_key = master_key
        self.classes: dict[str, dict[str, dict]] = {}
        self.schemas: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.offline = False
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # -------------------------- helpers --------------------------
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def objects(self, class_name: str) -> list[dict]:
        return list(self.classes.get(class_name, {}).values())

    def seed(self, class_name: str, **fields) -> dict:
        with self._lock:
            return self._insert(class_name, fields)

    def _insert(self, class_name: str, fields: dict) -> dict:
        seq = next(self._ids)
        obj = dict(fields)
        obj["objectId"] = f"obj{seq:05d}"
        obj["createdAt"] = f"2024-01-01T00:00:{seq:05d}Z"
        self.classes.setdefault(class_name, {})[obj["objectId"]] = obj
        return obj

    @staticmethod
    def _error(status: int, code: int, message: str) -> httpx.Response:
        return httpx.Response(status, json={"code": code, "error": message})

    def _is_master(self, request: httpx.Request) -> bool:
        return request.headers.get("X-Parse-Master-Key") == self.master_key

    # -------------------------- dispatch --------------------------
    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("parse offline", request=request)
        path = request.url.path
        if path.startswith(self.mount):
            path = path[len(self.mount) :]
        parts = [p for p in path.split("/") if p]
        body = json.loads(request.content) if request.content else None
        with self._lock:
            if parts[0] == "schemas":
                return self._create_schema(request, parts[1], body)
            if parts[0] == "batch":
                return self._batch(request, body)
            class_name = parts[1]
            if class_name in MASTER_ONLY and not self._is_master(request):
                return self._error(403, 119, "unauthorized: master key is required")
            if request.method == "GET":
                return self._find(class_name, request.url.params)
            if request.method == "POST":
                obj = self._insert(class_name, body or {})
                return httpx.Response(201, json={"objectId": obj["objectId"], "createdAt": obj["createdAt"]})
            if request.method == "PUT":
                return self._update(class_name, parts[2], body or {})
            if request.method == "DELETE":
                return self._delete(class_name, parts[2])
        return self._error(400, 1, "unsupported")

    def _find(self, class_name: str, params) -> httpx.Response:
        where = json.loads(params.get("where") or "{}")
        rows = [
            dict(obj)
            for obj in self.classes.get(class_name, {}).values()
            if all(obj.get(key) == value for key, value in where.items())
        ]
        order = params.get("order")
        if order:
            key = order.lstrip("-")
            rows.sort(key=lambda obj: (obj.get(key) is None, obj.get(key)), reverse=order.startswith("-"))
        skip = int(params.get("skip") or 0)
        limit = int(params.get("limit") or 100)
        return httpx.Response(200, json={"results": rows[skip : skip + limit]})

    def _update(self, class_name: str, object_id: str, data: dict) -> httpx.Response:
        obj = self.classes.get(class_name, {}).get(object_id)
        if obj is None:
            return self._error(404, 101, "Object not found.")
        response = {"updatedAt": "2024-01-02T00:00:00Z"}
        for key, value in data.items():
            if isinstance(value, dict) and value.get("__op") == "Increment":
                obj[key] = (obj.get(key) or 0) + value.get("amount", 1)
                response[key] = obj[key]
            else:
                obj[key] = value
        return httpx.Response(200, json=response)

    def _delete(self, class_name: str, object_id: str) -> httpx.Response:
        if self.classes.get(class_name, {}).pop(object_id, None) is None:
            return self._error(404, 101, "Object not found.")
        return httpx.Response(200, json={})

    def _batch(self, request: httpx.Request, body: dict) -> httpx.Response:
        results = []
        for op in body.get("requests", []):
            sub_path = op["path"][len(self.mount) :] if op["path"].startswith(self.mount) else op["path"]
            _, class_name, object_id = [p for p in sub_path.split("/") if p]
            if class_name in MASTER_ONLY and not self._is_master(request):
                results.append({"error": {"code": 119, "error": "unauthorized"}})
                continue
            if self.classes.get(class_name, {}).pop(object_id, None) is None:
                results.append({"error": {"code": 101, "error": "Object not found."}})
            else:
                results.append({"success": {}})
        return httpx.Response(200, json=results)

    def _create_schema(self, request: httpx.Request, class_name: str, body: dict) -> httpx.Response:
        if not self._is_master(request):
            return self._error(403, 119, "unauthorized: master key is required")
        if class_name in self.schemas:
            return self._error(400, 103, f"Class {class_name} already exists.")
        self.schemas[class_name] = body
        return httpx.Response(200, json=body)
