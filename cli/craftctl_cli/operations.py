"""Backend operations and the worker-side function that performs them.

An operation is a frozen bag of request parameters. ``perform`` turns one
into exactly one backend call and maps the outcome to a message for the
state machine; it never touches UI state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Union

from craftctl_client import ApiResult, AuthError, CraftClient, CraftClientError

from .config import AppConfig
from .formatting import backup_items
from .http import make_client
from .messages import (
    BackupsFailed,
    BackupsFetched,
    CommandOutput,
    LoginFailed,
    LoginSucceeded,
    Message,
    SessionExpired,
    TaskFinished,
)

log = logging.getLogger(__name__)

KIND_LOGIN = "login"
KIND_COMMAND = "command"
KIND_TASK = "task"
KIND_LISTING = "listing"


@dataclass(frozen=True)
class Login:
    username: str
    password: str = ""
    kind = KIND_LOGIN

    def __repr__(self) -> str:
        return f"Login(username={self.username!r})"


@dataclass(frozen=True)
class SendCommand:
    command: str
    label: str
    kind = KIND_COMMAND


@dataclass(frozen=True)
class RunTask:
    name: str
    title: str
    kind = KIND_TASK

    @property
    def overlay_label(self) -> str:
        return f"Running task {self.name}"


@dataclass(frozen=True)
class MakeBackup:
    title: str = "Make backup"
    kind = KIND_TASK

    @property
    def overlay_label(self) -> str:
        return "Making backup"


@dataclass(frozen=True)
class RestoreBackup:
    filename: str
    title: str = "Restore backup"
    kind = KIND_TASK

    @property
    def overlay_label(self) -> str:
        return "Restoring backup"


@dataclass(frozen=True)
class FetchBackups:
    kind = KIND_LISTING


Operation = Union[Login, SendCommand, RunTask, MakeBackup, RestoreBackup, FetchBackups]
TaskOperation = Union[RunTask, MakeBackup, RestoreBackup]

ClientFactory = Callable[..., CraftClient]


def timeout_for(op: Operation, cfg: AppConfig) -> float:
    if op.kind == KIND_LOGIN:
        return cfg.login_timeout_s
    if op.kind == KIND_TASK:
        return cfg.task_timeout_s
    return cfg.command_timeout_s


def failure_message(op: Operation, error: str) -> Message:
    """The message an operation produces when it could not complete."""
    if isinstance(op, Login):
        return LoginFailed(error)
    if isinstance(op, SendCommand):
        return CommandOutput(op.label, error, operation=op)
    if isinstance(op, FetchBackups):
        return BackupsFailed(error)
    return TaskFinished(title=op.title, message=error, success=False, operation=op)


def perform(
        op: Operation,
        cfg: AppConfig,
        token: str | None = None,
        *,
        client_factory: ClientFactory = make_client,
) -> Message:
    timeout = timeout_for(op, cfg)
    client = client_factory(cfg, token=token, timeout_s=timeout)
    try:
        return _handle(op, client, cfg, timeout)
    except AuthError as exc:
        log.info("%r: %s (%s)", op, exc, exc.status_code)
        return SessionExpired()
    except CraftClientError as exc:
        log.warning("%r: %s", op, exc)
        return failure_message(op, str(exc))
    finally:
        client.close()


def _handle(op: Operation, client: CraftClient, cfg: AppConfig, timeout: float) -> Message:
    if isinstance(op, Login):
        return _login_result(op, client.login(username=op.username, password=op.password, timeout=timeout))
    if isinstance(op, SendCommand):
        result = client.command(op.command, timeout=timeout)
        if result.ok:
            return CommandOutput(op.label, result.body, operation=op)
        return CommandOutput(op.label, _error_text(result), operation=op)
    if isinstance(op, RunTask):
        return _task_result(op, client.task(op.name, timeout=timeout), "Task complete")
    if isinstance(op, MakeBackup):
        return _task_result(op, client.make_backup(timeout=timeout), "Backup complete")
    if isinstance(op, RestoreBackup):
        return _task_result(op, client.restore(op.filename, timeout=timeout), "Backup restored")
    if isinstance(op, FetchBackups):
        names = client.list_backups(timeout=timeout)
        return BackupsFetched(backup_items(names, offset_min=cfg.time_offset_min))
    raise TypeError(f"unknown operation {op!r}")


def _login_result(op: Login, result: ApiResult) -> Message:
    if not result.ok:
        return LoginFailed(f"bad credentials ({result.status_code})")
    token = result.body.strip()
    if not token:
        return LoginFailed("login returned no token")
    return LoginSucceeded(username=op.username, token=token)


def _task_result(op: TaskOperation, result: ApiResult, done_text: str) -> TaskFinished:
    if result.ok:
        return TaskFinished(op.title, f"{result.status_code} {done_text}", True, operation=op)
    return TaskFinished(op.title, _error_text(result), False, operation=op)


def _error_text(result: ApiResult) -> str:
    body = result.body.strip()
    if body:
        return f"error {result.status_code}: {body}"
    return f"error {result.status_code}"
