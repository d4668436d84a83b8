"""Classify console input into navigation shortcuts, tasks and plain commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .operations import MakeBackup, Operation, RunTask, SendCommand

TASK_PREFIX = "!"
EMPTY_LABEL = "(empty)"
STOP_REJECTED = "You can't stop the server"

TARGET_BACKUPS = "backups"

NAVIGATION_ALIASES: dict[str, str] = {
    "restore": TARGET_BACKUPS,
}


@dataclass(frozen=True)
class Navigation:
    target: str


@dataclass(frozen=True)
class Task:
    name: str


@dataclass(frozen=True)
class PlainCommand:
    text: str

    @property
    def label(self) -> str:
        return self.text if self.text else EMPTY_LABEL


Route = Union[Navigation, Task, PlainCommand]


def classify(
        text: str,
        *,
        prefix: str = TASK_PREFIX,
        aliases: dict[str, str] | None = None,
) -> Route:
    aliases = NAVIGATION_ALIASES if aliases is None else aliases
    if prefix and text.startswith(prefix):
        name = text[len(prefix):]
        if name in aliases:
            return Navigation(aliases[name])
        return Task(name)
    return PlainCommand(text)


def is_command_safe(command: str) -> bool:
    # "stop", "list stop" and friends would take the server down
    return "stop" not in command.split()


def operation_for(route: Task | PlainCommand, raw: str) -> Operation:
    """Pick the backend call for a routed input; ``raw`` is what the user typed."""
    if isinstance(route, Task):
        if route.name == "backup":
            return MakeBackup(title=raw)
        return RunTask(name=route.name, title=raw)
    return SendCommand(command=route.text, label=route.label)
