from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from typing import Any

from platformdirs import user_config_dir

APP_NAME = "craftctl"
CONFIG_FILENAME = "config.toml"
ENV_CONFIG_PATH = "CRAFTCTL_CONFIG"

PORT_MIN = 1
PORT_MAX = 65535


class ConfigError(ValueError):
    """Invalid configuration value."""


@dataclass(frozen=True)
class AppConfig:
    host: str = "localhost"
    port: int = 0
    time_offset_min: int = 0
    verify_tls: bool = False
    login_timeout_s: float = 5.0
    command_timeout_s: float = 15.0
    task_timeout_s: float = 120.0
    # when the task overlay starts saying the task is still running
    task_notice_s: float = 30.0
    scrollback_limit: int = 1000

    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"

    def validate(self) -> AppConfig:
        if not self.host.strip():
            raise ConfigError("you must specify a host")
        if self.port == 0:
            raise ConfigError("you must specify a port")
        if self.port < PORT_MIN or self.port > PORT_MAX:
            raise ConfigError("port out of range")
        for name in ("login_timeout_s", "command_timeout_s", "task_timeout_s", "task_notice_s"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.scrollback_limit < 0:
            raise ConfigError("scrollback_limit must be >= 0")
        return self


def config_path() -> str:
    env_value = os.getenv(ENV_CONFIG_PATH, "").strip()
    if env_value:
        return env_value
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def default_config() -> AppConfig:
    return AppConfig()


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    host = str(data.get("host") or "").strip()
    if host:
        cfg = replace(cfg, host=host)
    if "verify_tls" in data:
        value = data["verify_tls"]
        if not isinstance(value, bool):
            raise ConfigError("verify_tls must be true or false")
        cfg = replace(cfg, verify_tls=value)
    for key in ("time_offset_min", "scrollback_limit"):
        if key in data:
            try:
                cfg = replace(cfg, **{key: int(data[key])})
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be an integer") from e
    for key in ("login_timeout_s", "command_timeout_s", "task_timeout_s", "task_notice_s"):
        if key in data:
            try:
                cfg = replace(cfg, **{key: float(data[key])})
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be a number") from e
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return default_config()
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    return from_toml(data)


def apply_overrides(
        cfg: AppConfig,
        *,
        host: str | None = None,
        port: int | None = None,
        time_offset_min: int | None = None,
        verify_tls: bool | None = None,
) -> AppConfig:
    changes: dict[str, Any] = {}
    if host:
        changes["host"] = host.strip()
    if port is not None:
        changes["port"] = port
    if time_offset_min is not None:
        changes["time_offset_min"] = time_offset_min
    if verify_tls is not None:
        changes["verify_tls"] = verify_tls
    return replace(cfg, **changes)
