"""Messages consumed by the screen state machine and the effects it emits.

Messages come from two places: the terminal (keys, resizes, ticks, mouse
scrolls) and worker threads finishing a backend call. Effects are what the
event loop has to do after a transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from .formatting import BackupItem

if TYPE_CHECKING:
    from .operations import Operation

QUIT_KEY = "ctrl+c"


# --- terminal events ---

@dataclass(frozen=True)
class KeyPressed:
    key: str
    character: str | None = None

    @property
    def printable(self) -> str | None:
        if self.character and self.character.isprintable() and len(self.character) == 1:
            return self.character
        return None


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    now: float


@dataclass(frozen=True)
class Scrolled:
    delta: int


# --- results posted back by workers ---

@dataclass(frozen=True)
class LoginSucceeded:
    username: str
    token: str = field(repr=False)


@dataclass(frozen=True)
class LoginFailed:
    error: str


@dataclass(frozen=True)
class CommandOutput:
    label: str
    output: str
    # the request this answers, matched by identity
    operation: Operation | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class TaskFinished:
    title: str
    message: str
    success: bool
    # None for outcomes made up locally, such as a canceled restore
    operation: Operation | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class BackupsFetched:
    items: tuple[BackupItem, ...]


@dataclass(frozen=True)
class BackupsFailed:
    error: str


@dataclass(frozen=True)
class SessionExpired:
    reason: str = "session expired: login again"


Message = Union[
    KeyPressed,
    Resized,
    Tick,
    Scrolled,
    LoginSucceeded,
    LoginFailed,
    CommandOutput,
    TaskFinished,
    BackupsFetched,
    BackupsFailed,
    SessionExpired,
]


# --- effects ---

@dataclass(frozen=True)
class Issue:
    operation: Operation
    token: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class Post:
    message: Message


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[Issue, Post, Quit]
