from __future__ import annotations

import json

import httpx

from .config_types import ClientConfig
from .errors import ApiError
from .transport import ApiResult, Transport


class CraftClient:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._t = Transport(cfg, transport=transport)

    def close(self) -> None:
        self._t.close()

    def login(self, *, username: str, password: str, timeout: float | None = None) -> ApiResult:
        return self._t.request(
            "POST", "/login", json_body={"username": username, "password": password}, timeout=timeout
        )

    def command(self, command: str, *, timeout: float | None = None) -> ApiResult:
        return self._t.request("POST", "/command", json_body={"command": command}, timeout=timeout)

    def task(self, task: str, *, timeout: float | None = None) -> ApiResult:
        return self._t.request("POST", "/task", json_body={"task": task}, timeout=timeout)

    def make_backup(self, *, timeout: float | None = None) -> ApiResult:
        return self._t.request("POST", "/backup", timeout=timeout)

    def restore(self, filename: str, *, timeout: float | None = None) -> ApiResult:
        return self._t.request("POST", "/restore", json_body={"filename": filename}, timeout=timeout)

    def list_backups(self, *, timeout: float | None = None) -> list[str]:
        result = self._t.request("GET", "/backups", timeout=timeout)
        if not result.ok:
            raise ApiError(result.status_code, f"GET /backups failed with {result.status_code}", result.body or None)
        try:
            data = json.loads(result.body or "[]")
        except ValueError as e:
            raise ApiError(result.status_code, "GET /backups returned invalid JSON", result.body[:1000]) from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiError(result.status_code, "GET /backups returned no list", result.body[:1000])
        return [str(name) for name in data]
