"""Screen state machine.

Each screen is a frozen dataclass; ``step`` feeds one message to the active
screen and returns the next screen plus the effects the event loop has to
run. No Textual imports here: everything can be driven from plain tests.

Transitions::

    Login ──auth ok──> Console ──!task──> Await(return=Console)
                          │                      │ any key once finished
                          │<─────────────────────┘
                          ├──!restore / F1──> BackupBrowser(return=Console)
                          │                      ├─ enter ─> Await(return=Console)
                          │<──────── escape ─────┘
    any screen with a session ──SessionExpired──> Login
    any screen ──ctrl+c──> Quit
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Union

from .config import AppConfig
from .formatting import BackupItem
from .messages import (
    QUIT_KEY,
    BackupsFailed,
    BackupsFetched,
    CommandOutput,
    Effect,
    Issue,
    KeyPressed,
    LoginFailed,
    LoginSucceeded,
    Message,
    Post,
    Quit,
    Resized,
    Scrolled,
    SessionExpired,
    TaskFinished,
    Tick,
)
from .operations import FetchBackups, Login, Operation, RestoreBackup, TaskOperation
from .router import STOP_REJECTED, Navigation, Task, classify, is_command_safe, operation_for
from .scrollback import CommandHistory, Scrollback

log = logging.getLogger(__name__)

FIELD_LIMIT = 16
INPUT_LIMIT = 128
SCROLL_STEP = 3
SPINNER_FRAMES = ("|", "/", "-", "\\")
CANCELED_TEXT = "Operation canceled by user"
RESTORE_TITLE = "Restore backup"


def viewport_size(width: int, height: int) -> tuple[int, int]:
    """Scrollback area left inside the console frame and below the prompt."""
    return max(10, width - 12), max(1, height - 6)


@dataclass(frozen=True)
class Session:
    token: str
    username: str


@dataclass(frozen=True)
class PendingOperation:
    kind: str
    operation: Operation


@dataclass(frozen=True)
class LoginState:
    config: AppConfig
    username: str = ""
    password: str = ""
    focus_username: bool = True
    error: str = ""
    notice: str = ""
    pending: bool = False
    width: int = 80
    height: int = 24

    def cleared(self) -> LoginState:
        return replace(self, username="", password="", focus_username=True, pending=False)


@dataclass(frozen=True)
class ConsoleState:
    config: AppConfig
    session: Session
    scrollback: Scrollback
    history: CommandHistory = field(default_factory=CommandHistory)
    input: str = ""
    pending: PendingOperation | None = None
    width: int = 80
    height: int = 24

    @classmethod
    def open(cls, config: AppConfig, session: Session, width: int, height: int) -> ConsoleState:
        view_w, view_h = viewport_size(width, height)
        scrollback = Scrollback(width=view_w, height=view_h, limit=config.scrollback_limit)
        return cls(config=config, session=session, scrollback=scrollback, width=width, height=height)

    def resized(self, width: int, height: int) -> ConsoleState:
        view_w, view_h = viewport_size(width, height)
        return replace(self, width=width, height=height, scrollback=self.scrollback.resize(view_w, view_h))


@dataclass(frozen=True)
class BackupBrowserState:
    session: Session
    return_screen: ConsoleState
    items: tuple[BackupItem, ...] = ()
    cursor: int = 0
    loading: bool = True
    error: str = ""
    width: int = 80
    height: int = 24

    @property
    def config(self) -> AppConfig:
        return self.return_screen.config

    @property
    def selected(self) -> BackupItem | None:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None


@dataclass(frozen=True)
class AwaitState:
    operation: TaskOperation
    label: str
    notice_after_s: float
    return_screen: ConsoleState
    outcome: TaskFinished | None = None
    started_at: float | None = None
    now: float | None = None
    frame: int = 0
    width: int = 80
    height: int = 24

    @classmethod
    def wrap(cls, screen: ConsoleState, op: TaskOperation) -> AwaitState:
        return cls(
            operation=op,
            label=op.overlay_label,
            notice_after_s=screen.config.task_notice_s,
            return_screen=screen,
            width=screen.width,
            height=screen.height,
        )

    @property
    def config(self) -> AppConfig:
        return self.return_screen.config

    @property
    def session(self) -> Session:
        return self.return_screen.session

    @property
    def done(self) -> bool:
        return self.outcome is not None

    @property
    def elapsed(self) -> float:
        if self.started_at is None or self.now is None:
            return 0.0
        return self.now - self.started_at

    @property
    def deadline(self) -> float | None:
        if self.started_at is None:
            return None
        return self.started_at + self.notice_after_s

    @property
    def overdue(self) -> bool:
        return not self.done and self.deadline is not None and self.now is not None and self.now >= self.deadline

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.frame % len(SPINNER_FRAMES)]


Screen = Union[LoginState, ConsoleState, BackupBrowserState, AwaitState]
Transition = tuple[Screen, list[Effect]]


def initial_screen(config: AppConfig, width: int = 80, height: int = 24) -> LoginState:
    return LoginState(config=config, width=width, height=height)


def session_of(screen: Screen) -> Session | None:
    if isinstance(screen, LoginState):
        return None
    return screen.session


def step(screen: Screen, msg: Message) -> Transition:
    if isinstance(msg, KeyPressed) and msg.key == QUIT_KEY:
        return screen, [Quit()]
    if isinstance(msg, SessionExpired) and session_of(screen) is not None:
        log.info("%s: back to login", msg.reason)
        return expire(screen, msg.reason), []
    return _UPDATERS[type(screen)](screen, msg)


def expire(screen: Screen, reason: str) -> LoginState:
    return LoginState(config=screen.config, notice=reason, width=screen.width, height=screen.height)


# --- login ---

def update_login(state: LoginState, msg: Message) -> Transition:
    if isinstance(msg, Resized):
        return replace(state, width=msg.width, height=msg.height), []
    if isinstance(msg, LoginSucceeded):
        log.info("logged in as %s", msg.username)
        session = Session(token=msg.token, username=msg.username)
        return ConsoleState.open(state.config, session, state.width, state.height), []
    if isinstance(msg, LoginFailed):
        log.info("login failed: %s", msg.error)
        return replace(state.cleared(), error=f"Can't login: {msg.error}"), []
    if not isinstance(msg, KeyPressed):
        return state, []

    if state.error:
        # any key dismisses the error screen
        return replace(state.cleared(), error=""), []
    if state.pending:
        return state, []

    if msg.key == "enter":
        return _submit_login(state)
    if msg.key == "tab":
        return replace(state, focus_username=not state.focus_username), []
    if msg.key == "backspace":
        if state.focus_username:
            return replace(state, username=state.username[:-1]), []
        return replace(state, password=state.password[:-1]), []
    char = msg.printable
    if char:
        if state.focus_username and len(state.username) < FIELD_LIMIT:
            return replace(state, username=state.username + char), []
        if not state.focus_username and len(state.password) < FIELD_LIMIT:
            return replace(state, password=state.password + char), []
    return state, []


def _submit_login(state: LoginState) -> Transition:
    if not state.username:
        return state, []
    if state.focus_username and not state.password:
        return replace(state, focus_username=False), []
    if not state.password:
        return state, []
    op = Login(username=state.username, password=state.password)
    return replace(state, pending=True, notice=""), [Issue(op)]


# --- console ---

def update_console(state: ConsoleState, msg: Message) -> Transition:
    if isinstance(msg, Resized):
        return state.resized(msg.width, msg.height), []
    if isinstance(msg, Scrolled):
        return replace(state, scrollback=state.scrollback.scroll(msg.delta)), []
    if isinstance(msg, CommandOutput):
        if state.pending is None or msg.operation is not state.pending.operation:
            log.debug("dropping stale output for %r", msg.label)
            return state, []
        return replace(state, scrollback=state.scrollback.append(msg.label, msg.output), pending=None), []
    if isinstance(msg, TaskFinished):
        log.debug("task %s appended to history", msg.title)
        return replace(state, scrollback=state.scrollback.append(msg.title, msg.message)), []
    if not isinstance(msg, KeyPressed):
        return state, []

    key = msg.key
    if key == "enter":
        return _submit_console(state)
    if key == "f1":
        return open_backups(state)
    if key == "up":
        history, text = state.history.older()
        return replace(state, history=history, input=state.input if text is None else text), []
    if key == "down":
        history, text = state.history.newer()
        return replace(state, history=history, input=state.input if text is None else text), []
    if key == "ctrl+k":
        return replace(state, scrollback=state.scrollback.scroll(-SCROLL_STEP)), []
    if key == "ctrl+j":
        return replace(state, scrollback=state.scrollback.scroll(SCROLL_STEP)), []
    if key == "pageup":
        return replace(state, scrollback=state.scrollback.page(-1)), []
    if key == "pagedown":
        return replace(state, scrollback=state.scrollback.page(1)), []
    if key == "backspace":
        return replace(state, input=state.input[:-1]), []
    char = msg.printable
    if char and len(state.input) < INPUT_LIMIT:
        return replace(state, input=state.input + char), []
    return state, []


def _submit_console(state: ConsoleState) -> Transition:
    if state.pending is not None:
        # the previous command has not answered yet
        return state, []
    text = state.input
    log.debug("user input: %r", text)
    route = classify(text)
    state = replace(state, input="", history=state.history.record(text))

    if isinstance(route, Navigation):
        return open_backups(state)
    if not isinstance(route, Task) and not is_command_safe(route.text):
        return replace(state, scrollback=state.scrollback.append(route.label, STOP_REJECTED)), []

    op = operation_for(route, text)
    effects: list[Effect] = [Issue(op, token=state.session.token)]
    if isinstance(route, Task):
        return AwaitState.wrap(state, op), effects
    return replace(state, pending=PendingOperation(op.kind, op)), effects


def open_backups(state: ConsoleState) -> Transition:
    browser = BackupBrowserState(
        session=state.session,
        return_screen=state,
        width=state.width,
        height=state.height,
    )
    return browser, [Issue(FetchBackups(), token=state.session.token)]


# --- backup browser ---

def update_browser(state: BackupBrowserState, msg: Message) -> Transition:
    if isinstance(msg, Resized):
        return replace(
            state,
            width=msg.width,
            height=msg.height,
            return_screen=state.return_screen.resized(msg.width, msg.height),
        ), []
    if isinstance(msg, BackupsFetched):
        cursor = min(state.cursor, max(0, len(msg.items) - 1))
        return replace(state, items=msg.items, cursor=cursor, loading=False, error=""), []
    if isinstance(msg, BackupsFailed):
        return replace(state, loading=False, error=msg.error), []
    if isinstance(msg, CommandOutput):
        return replace(state, return_screen=update_console(state.return_screen, msg)[0]), []
    if isinstance(msg, Scrolled):
        return _move_cursor(state, 1 if msg.delta > 0 else -1), []
    if not isinstance(msg, KeyPressed):
        return state, []

    key = msg.key
    if key == "escape":
        canceled = TaskFinished(title=RESTORE_TITLE, message=CANCELED_TEXT, success=False)
        return state.return_screen, [Post(canceled)]
    if key in ("up", "k"):
        return _move_cursor(state, -1), []
    if key in ("down", "j"):
        return _move_cursor(state, 1), []
    if key == "r" and not state.loading:
        return replace(state, loading=True, error=""), [Issue(FetchBackups(), token=state.session.token)]
    if key == "enter" and not state.loading:
        item = state.selected
        if item is None:
            return state, []
        op = RestoreBackup(filename=item.raw_id)
        # the overlay returns to the console, not to this browser
        return AwaitState.wrap(state.return_screen, op), [Issue(op, token=state.session.token)]
    return state, []


def _move_cursor(state: BackupBrowserState, delta: int) -> BackupBrowserState:
    if not state.items:
        return state
    cursor = min(max(0, state.cursor + delta), len(state.items) - 1)
    return replace(state, cursor=cursor)


# --- await overlay ---

def update_await(state: AwaitState, msg: Message) -> Transition:
    if isinstance(msg, Tick):
        started_at = msg.now if state.started_at is None else state.started_at
        frame = state.frame if state.done else state.frame + 1
        return replace(state, started_at=started_at, now=msg.now, frame=frame), []
    if isinstance(msg, Resized):
        return replace(
            state,
            width=msg.width,
            height=msg.height,
            return_screen=state.return_screen.resized(msg.width, msg.height),
        ), []
    if isinstance(msg, TaskFinished):
        if state.done or msg.operation is not state.operation:
            log.debug("dropping stale outcome for %r", msg.title)
            return state, []
        log.info("task %s done (success=%s)", msg.title, msg.success)
        return replace(state, outcome=msg), []
    if isinstance(msg, CommandOutput):
        return replace(state, return_screen=update_console(state.return_screen, msg)[0]), []
    if isinstance(msg, KeyPressed) and state.outcome is not None:
        return state.return_screen, [Post(state.outcome)]
    return state, []


_UPDATERS: dict[type, Callable[..., Transition]] = {
    LoginState: update_login,
    ConsoleState: update_console,
    BackupBrowserState: update_browser,
    AwaitState: update_await,
}
