from __future__ import annotations

from dataclasses import replace

from craftctl_client import ApiResult

from craftctl_cli.config import AppConfig
from craftctl_cli.formatting import BackupItem
from craftctl_cli.messages import (
    BackupsFailed,
    BackupsFetched,
    CommandOutput,
    Issue,
    KeyPressed,
    LoginFailed,
    LoginSucceeded,
    Post,
    Quit,
    Resized,
    Scrolled,
    SessionExpired,
    TaskFinished,
    Tick,
)
from craftctl_cli.operations import FetchBackups, Login, MakeBackup, RestoreBackup, SendCommand, perform
from craftctl_cli.router import STOP_REJECTED
from craftctl_cli.screens import (
    CANCELED_TEXT,
    FIELD_LIMIT,
    AwaitState,
    BackupBrowserState,
    ConsoleState,
    LoginState,
    Session,
    initial_screen,
    step,
    viewport_size,
)

CFG = AppConfig(host="localhost", port=8090)
SESSION = Session(token="tok", username="admin")


def _key(key: str) -> KeyPressed:
    if key == "space":
        return KeyPressed("space", " ")
    return KeyPressed(key, key if len(key) == 1 else None)


def _type(screen, text: str):
    for ch in text:
        screen, effects = step(screen, _key("space" if ch == " " else ch))
        assert effects == []
    return screen


def _console() -> ConsoleState:
    return ConsoleState.open(CFG, SESSION, 100, 30)


def _submit(screen, text: str):
    screen = _type(screen, text)
    return step(screen, _key("enter"))


# --- login ---

def test_initial_screen_is_login() -> None:
    screen = initial_screen(CFG)
    assert isinstance(screen, LoginState)
    assert screen.focus_username


def test_login_enter_moves_focus_then_submits_once() -> None:
    screen = _type(initial_screen(CFG), "admin")
    screen, effects = step(screen, _key("enter"))
    assert effects == []
    assert not screen.focus_username

    screen = _type(screen, "secret")
    screen, effects = step(screen, _key("enter"))
    assert effects == [Issue(Login(username="admin", password="secret"))]
    assert screen.pending

    # no second login while the first one is in flight
    screen, effects = step(screen, _key("enter"))
    assert effects == []


def test_login_ignores_enter_without_username_or_password() -> None:
    screen = initial_screen(CFG)
    assert step(screen, _key("enter")) == (screen, [])

    screen = _type(screen, "admin")
    screen, _ = step(screen, _key("tab"))
    screen, effects = step(screen, _key("enter"))
    assert effects == []
    assert not screen.focus_username


def test_login_fields_are_capped_and_editable() -> None:
    screen = _type(initial_screen(CFG), "x" * (FIELD_LIMIT + 4))
    assert screen.username == "x" * FIELD_LIMIT
    screen, _ = step(screen, _key("backspace"))
    assert len(screen.username) == FIELD_LIMIT - 1


def test_login_success_opens_console_with_session() -> None:
    screen = LoginState(config=CFG, username="admin", password="pw", pending=True, width=120, height=40)
    screen, effects = step(screen, LoginSucceeded(username="admin", token="jwt"))
    assert effects == []
    assert isinstance(screen, ConsoleState)
    assert screen.session == Session(token="jwt", username="admin")
    assert (screen.width, screen.height) == (120, 40)
    assert (screen.scrollback.width, screen.scrollback.height) == viewport_size(120, 40)


def test_login_failure_clears_form_and_any_key_dismisses_error() -> None:
    screen = LoginState(config=CFG, username="admin", password="pw", pending=True, focus_username=False)
    screen, _ = step(screen, LoginFailed("timeout error: connect timed out"))
    assert screen.error == "Can't login: timeout error: connect timed out"
    assert (screen.username, screen.password, screen.focus_username, screen.pending) == ("", "", True, False)

    screen, effects = step(screen, _key("q"))
    assert effects == []
    assert screen.error == ""
    assert screen.username == ""


# --- console ---

def _answer(screen: ConsoleState, output: str) -> CommandOutput:
    op = screen.pending.operation
    return CommandOutput(op.label, output, operation=op)


def _with_history(screen: ConsoleState, count: int) -> ConsoleState:
    scrollback = screen.scrollback
    for i in range(count):
        scrollback = scrollback.append(f"cmd{i}", "ok")
    return replace(screen, scrollback=scrollback)


def test_task_wraps_the_same_console_in_await() -> None:
    console = _with_history(_console(), 1)
    screen, effects = _submit(console, "!backup")

    assert isinstance(screen, AwaitState)
    assert screen.label == "Making backup"
    assert effects == [Issue(MakeBackup(title="!backup"), token="tok")]
    assert screen.return_screen.scrollback is console.scrollback
    assert screen.return_screen.session is console.session
    assert screen.return_screen.history.commands == ("!backup",)
    assert screen.return_screen.input == ""
    assert screen.notice_after_s == CFG.task_notice_s


def test_plain_command_stays_on_console_and_blocks_duplicates() -> None:
    screen, effects = _submit(_console(), "list")
    assert isinstance(screen, ConsoleState)
    assert effects == [Issue(SendCommand(command="list", label="list"), token="tok")]
    assert screen.pending is not None

    screen, effects = _submit(screen, "list")
    assert effects == []
    assert screen.input == "list"

    screen, _ = step(screen, _answer(screen, "There are 0 players"))
    assert screen.pending is None
    assert screen.scrollback.entries[-1].body == "There are 0 players"


def test_stop_is_rejected_locally() -> None:
    screen, effects = _submit(_console(), "list stop")
    assert effects == []
    assert screen.pending is None
    assert screen.scrollback.entries[-1].label == "list stop"
    assert screen.scrollback.entries[-1].body == STOP_REJECTED


def test_empty_input_is_still_sent() -> None:
    screen, effects = step(_console(), _key("enter"))
    assert effects == [Issue(SendCommand(command="", label="(empty)"), token="tok")]


def test_history_keys_refill_input() -> None:
    screen, _ = _submit(_console(), "list")
    screen, _ = step(screen, _answer(screen, "There are 0 players"))
    screen, _ = step(screen, _key("up"))
    assert screen.input == "list"
    screen, _ = step(screen, _key("down"))
    assert screen.input == ""


def test_console_scroll_keys_and_mouse() -> None:
    screen = _with_history(_console().resized(100, 10), 20)
    bottom = screen.scrollback.offset
    screen, _ = step(screen, _key("ctrl+k"))
    assert screen.scrollback.offset == bottom - 3
    screen, _ = step(screen, Scrolled(3))
    assert screen.scrollback.offset == bottom
    screen, _ = step(screen, _key("pageup"))
    assert screen.scrollback.offset == bottom - screen.scrollback.height


# --- backup browser ---

def test_restore_alias_and_f1_open_browser() -> None:
    for screen, effects in (_submit(_console(), "!restore"), step(_console(), _key("f1"))):
        assert isinstance(screen, BackupBrowserState)
        assert screen.loading
        assert effects == [Issue(FetchBackups(), token="tok")]
        assert isinstance(screen.return_screen, ConsoleState)


def _browser_with_items() -> BackupBrowserState:
    screen, _ = step(_console(), _key("f1"))
    items = (
        BackupItem("2 hours ago", "backup-2024-01-01-10-00-00.zip"),
        BackupItem("1 hour ago", "backup-2024-01-01-11-00-00.zip"),
    )
    screen, _ = step(screen, BackupsFetched(items))
    return screen


def test_browser_selection_restores_and_returns_to_console() -> None:
    browser = _browser_with_items()
    assert not browser.loading
    browser, _ = step(browser, _key("down"))
    browser, _ = step(browser, _key("down"))
    assert browser.cursor == 1

    screen, effects = step(browser, _key("enter"))
    op = RestoreBackup(filename="backup-2024-01-01-11-00-00.zip")
    assert effects == [Issue(op, token="tok")]
    assert isinstance(screen, AwaitState)
    assert screen.label == "Restoring backup"
    assert screen.return_screen is browser.return_screen


def test_browser_escape_reports_cancellation_to_console() -> None:
    browser = _browser_with_items()
    screen, effects = step(browser, _key("escape"))
    assert screen is browser.return_screen
    assert effects == [Post(TaskFinished("Restore backup", CANCELED_TEXT, False))]

    screen, _ = step(screen, effects[0].message)
    assert screen.scrollback.entries[-1].body == CANCELED_TEXT


def test_browser_refresh_and_errors() -> None:
    browser = _browser_with_items()
    browser, effects = step(browser, _key("r"))
    assert browser.loading
    assert effects == [Issue(FetchBackups(), token="tok")]
    # already loading
    assert step(browser, _key("r")) == (browser, [])

    browser, _ = step(browser, BackupsFailed("error making request: boom"))
    assert browser.error == "error making request: boom"
    assert not browser.loading


def test_browser_enter_without_items_does_nothing() -> None:
    screen, _ = step(_console(), _key("f1"))
    screen, _ = step(screen, BackupsFetched(()))
    assert step(screen, _key("enter")) == (screen, [])


# --- await overlay ---

def _await() -> AwaitState:
    screen, _ = _submit(_console(), "!backup")
    return screen


def test_await_ignores_keys_while_running() -> None:
    screen = _await()
    assert step(screen, _key("x")) == (screen, [])
    assert step(screen, _key("escape")) == (screen, [])


def test_await_ticks_animate_and_time_out_advisorily() -> None:
    screen = _await()
    screen, _ = step(screen, Tick(10.0))
    assert screen.started_at == 10.0
    first = screen.spinner
    screen, _ = step(screen, Tick(10.1))
    assert screen.spinner != first
    assert not screen.overdue
    screen, _ = step(screen, Tick(10.0 + CFG.task_notice_s))
    assert screen.overdue
    assert screen.elapsed == CFG.task_notice_s
    assert CFG.task_notice_s < CFG.task_timeout_s


def test_await_returns_outcome_on_any_key() -> None:
    screen = _await()
    outcome = TaskFinished("!backup", "error 500: disk full", False, operation=screen.operation)
    screen, _ = step(screen, outcome)
    assert screen.done

    console, effects = step(screen, _key("a"))
    assert isinstance(console, ConsoleState)
    assert effects == [Post(outcome)]


def test_await_forwards_command_output_to_console() -> None:
    screen, _ = _submit(_console(), "list")
    answer = _answer(screen, "There are 0 players")
    screen, _ = step(screen, _key("f1"))
    screen, _ = step(screen, BackupsFetched((BackupItem("now", "backup-2024-01-01-10-00-00.zip"),)))
    screen, _ = step(screen, _key("enter"))
    assert isinstance(screen, AwaitState)

    screen, _ = step(screen, answer)
    assert screen.return_screen.pending is None
    assert screen.return_screen.scrollback.entries[-1].label == "list"


def test_resize_reaches_the_wrapped_console() -> None:
    screen, _ = step(_await(), Resized(60, 20))
    assert (screen.width, screen.height) == (60, 20)
    sb = screen.return_screen.scrollback
    assert (sb.width, sb.height) == viewport_size(60, 20)


# --- global transitions ---

def test_session_expiry_preempts_overlay() -> None:
    screen, _ = step(_await(), SessionExpired())
    assert isinstance(screen, LoginState)
    assert screen.notice == "session expired: login again"
    assert (screen.username, screen.password) == ("", "")

    # a late outcome is never observed
    assert step(screen, TaskFinished("!backup", "done", True)) == (screen, [])


def test_results_from_before_a_relogin_are_ignored() -> None:
    old, _ = _submit(_console(), "list")
    old_output = _answer(old, "There are 0 players")
    browser, _ = step(old, _key("f1"))
    browser, _ = step(browser, BackupsFetched((BackupItem("now", "backup-2024-01-01-10-00-00.zip"),)))
    restoring, effects = step(browser, _key("enter"))
    old_restore = effects[0].operation

    screen, _ = step(restoring, SessionExpired())
    screen, _ = step(screen, LoginSucceeded(username="admin", token="new"))
    screen, effects = _submit(screen, "!backup")
    assert isinstance(screen, AwaitState)
    backup = effects[0].operation

    late = TaskFinished("Restore backup", "200 Backup restored", True, operation=old_restore)
    screen, _ = step(screen, late)
    assert screen.outcome is None
    screen, _ = step(screen, old_output)
    assert screen.return_screen.pending is None
    assert screen.return_screen.scrollback.entries == ()

    real = TaskFinished("!backup", "200 Backup complete", True, operation=backup)
    screen, _ = step(screen, real)
    assert screen.outcome == real


def test_output_for_an_equal_earlier_command_does_not_clear_pending() -> None:
    first, _ = _submit(_console(), "list")
    stale = _answer(first, "old")
    second, _ = step(first, _answer(first, "fresh"))
    second, _ = _submit(second, "list")
    assert second.pending.operation == first.pending.operation

    screen, _ = step(second, stale)
    assert screen.pending is second.pending
    assert [e.body for e in screen.scrollback.entries] == ["fresh"]


def test_overlay_keeps_its_first_outcome() -> None:
    screen = _await()
    outcome = TaskFinished("!backup", "200 Backup complete", True, operation=screen.operation)
    screen, _ = step(screen, outcome)
    again = TaskFinished("!backup", "error 500", False, operation=screen.operation)
    assert step(screen, again) == (screen, [])


def test_session_expiry_from_console_and_browser() -> None:
    for screen in (_console(), _browser_with_items()):
        screen, effects = step(screen, SessionExpired())
        assert isinstance(screen, LoginState)
        assert effects == []


def test_session_expiry_on_login_is_ignored() -> None:
    screen = initial_screen(CFG)
    assert step(screen, SessionExpired()) == (screen, [])


def test_ctrl_c_quits_from_every_screen() -> None:
    for screen in (initial_screen(CFG), _console(), _browser_with_items(), _await()):
        assert step(screen, _key("ctrl+c")) == (screen, [Quit()])


# --- end to end through the request issuer ---

class _FakeClient:
    def __init__(self, calls: list[str]):
        self.calls = calls

    def login(self, *, username: str, password: str, timeout=None) -> ApiResult:
        self.calls.append("login")
        return ApiResult(200, "jwt-token\n")

    def make_backup(self, *, timeout=None) -> ApiResult:
        self.calls.append("backup")
        return ApiResult(200, "")

    def close(self) -> None:
        return None


def _drive(screen, messages, calls: list[str]):
    queue = list(messages)
    while queue:
        screen, effects = step(screen, queue.pop(0))
        for effect in effects:
            if isinstance(effect, Post):
                queue.append(effect.message)
            elif isinstance(effect, Issue):
                factory = lambda *args, **kwargs: _FakeClient(calls)  # noqa: E731
                queue.append(perform(effect.operation, CFG, effect.token, client_factory=factory))
    return screen


def test_login_backup_round_trip() -> None:
    calls: list[str] = []
    screen = _type(initial_screen(CFG), "admin")
    screen, _ = step(screen, _key("tab"))
    screen = _type(screen, "pass")
    screen = _drive(screen, [_key("enter")], calls)
    assert isinstance(screen, ConsoleState)
    assert screen.session.token == "jwt-token"

    screen = _type(screen, "!backup")
    screen, effects = step(screen, _key("enter"))
    assert isinstance(screen, AwaitState)
    assert screen.label == "Making backup"

    screen = _drive(screen, [perform(effects[0].operation, CFG, effects[0].token,
                                     client_factory=lambda *a, **k: _FakeClient(calls))], calls)
    assert isinstance(screen, AwaitState)
    assert screen.outcome is not None and screen.outcome.success

    screen = _drive(screen, [_key("enter")], calls)
    assert isinstance(screen, ConsoleState)
    assert [e.label for e in screen.scrollback.entries] == ["!backup"]
    assert calls == ["login", "backup"]
