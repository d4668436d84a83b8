from __future__ import annotations

from importlib import metadata

from craftctl_client import CraftClient
from craftctl_client.config_types import ClientConfig

from .config import AppConfig


def cli_version() -> str:
    try:
        return metadata.version("craftctl")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def make_client(cfg: AppConfig, *, token: str | None = None, timeout_s: float | None = None) -> CraftClient:
    return CraftClient(
        ClientConfig(
            base_url=cfg.base_url(),
            token=token or None,
            timeout_s=timeout_s if timeout_s is not None else cfg.command_timeout_s,
            verify_tls=cfg.verify_tls,
            client_version=cli_version(),
        )
    )
