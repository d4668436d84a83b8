from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import AuthError, NetworkError, RequestTimeout
from .config_types import ClientConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResult:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._cfg = cfg
        headers = {"User-Agent": f"craftctl/{cfg.client_version or '0.0.0'}"}
        if cfg.token:
            headers["Authorization"] = f"Bearer {cfg.token}"

        self._client = httpx.Client(
            base_url=cfg.base_url.rstrip("/"),
            timeout=cfg.timeout_s,
            headers=headers,
            verify=cfg.verify_tls,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._cfg.token)

    def close(self) -> None:
        self._client.close()

    def request(
            self,
            method: str,
            path: str,
            *,
            json_body: Any | None = None,
            timeout: float | None = None,
    ) -> ApiResult:
        # Exactly one attempt: no retries on any outcome.
        kwargs: dict[str, Any] = {"json": json_body}
        if timeout is not None:
            kwargs["timeout"] = timeout
        log.debug("%s %s", method, path)
        try:
            r = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeout(f"timeout error: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"error making request: {e}") from e

        log.debug("%s %s -> %s", method, path, r.status_code)
        if self.authenticated and r.status_code in (401, 403):
            raise AuthError(r.status_code, "session expired: login again", r.text[:1000] or None)
        return ApiResult(status_code=r.status_code, body=r.text)
