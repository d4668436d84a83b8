from __future__ import annotations

from rich import box
from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from .formatting import format_elapsed
from .screens import AwaitState, BackupBrowserState, ConsoleState, LoginState, Screen

PINK = "#f5c2e7"
TEXT = "#cdd6f4"
SURFACE1 = "#45475a"
SURFACE2 = "#585b70"
RED = "#f38ba8"
GREEN = "#a6e3a1"

COMMAND_PLACEHOLDER = "e.g. /kill player1"


def render(screen: Screen) -> RenderableType:
    if isinstance(screen, LoginState):
        return render_login(screen)
    if isinstance(screen, ConsoleState):
        return render_console(screen)
    if isinstance(screen, BackupBrowserState):
        return render_browser(screen)
    return render_await(screen)


def _centered(renderable: RenderableType, height: int) -> Align:
    return Align.center(renderable, vertical="middle", height=max(1, height))


def _field(label: str, value: str, placeholder: str, focused: bool) -> Text:
    line = Text(f"{label}  ", style=PINK)
    if value:
        line.append(value, style=TEXT)
    else:
        line.append(placeholder, style=SURFACE1)
    if focused:
        line.append("▏", style=f"bold {PINK}")
    return line


def render_login(state: LoginState) -> RenderableType:
    if state.error:
        body = Group(
            Text("Error trying to login", style=f"bold {PINK}", justify="center"),
            Text(""),
            Text(state.error, style=SURFACE2, justify="center"),
            Text(""),
            Text("Press any key to try again", style=SURFACE1, justify="center"),
        )
        return _centered(Panel(body, box=box.SIMPLE, width=max(20, min(state.width - 4, 72))), state.height)

    rows: list[RenderableType] = [
        _field("username", state.username, "username", state.focus_username),
        _field("password", "*" * len(state.password), "********", not state.focus_username),
    ]
    if state.pending:
        rows.append(Text("Logging in...", style=SURFACE2))
    elif state.notice:
        rows.append(Text(state.notice, style=SURFACE2))
    return _centered(Panel(Group(*rows), box=box.SIMPLE, padding=(1, 2), expand=False), state.height)


def render_console(state: ConsoleState) -> RenderableType:
    history = Text()
    for i, (is_label, line) in enumerate(state.scrollback.visible()):
        if i:
            history.append("\n")
        history.append(line, style=f"bold {PINK}" if is_label else SURFACE2)

    subtitle = None
    if not state.scrollback.at_bottom:
        subtitle = Text("more below (ctrl+j)", style=SURFACE1)
    panel = Panel(
        history,
        box=box.ROUNDED,
        border_style=SURFACE1,
        padding=(1, 4),
        height=max(3, state.height - 2),
        subtitle=subtitle,
    )

    prompt = Text("command", style=PINK)
    prompt.append("> ", style=PINK)
    if state.input:
        prompt.append(state.input, style=TEXT)
    else:
        prompt.append(COMMAND_PLACEHOLDER, style=SURFACE1)
    if state.pending is not None:
        prompt.append("  waiting for server...", style=SURFACE1)
    return Group(panel, prompt)


def render_browser(state: BackupBrowserState) -> RenderableType:
    rows: list[RenderableType] = [Text(" Backups ", style=f"bold {TEXT} on {PINK}"), Text("")]
    if state.loading:
        rows.append(Text("Loading backups...", style=SURFACE2))
    elif state.error:
        rows.append(Text(f"Can't list backups: {state.error}", style=RED))
    elif not state.items:
        rows.append(Text("No backups found", style=SURFACE2))
    else:
        # two lines per item
        room = max(1, (state.height - 6) // 2)
        first = min(max(0, state.cursor - room + 1), max(0, len(state.items) - room))
        for index in range(first, min(len(state.items), first + room)):
            item = state.items[index]
            selected = index == state.cursor
            marker = "│ " if selected else "  "
            rows.append(Text(marker + item.display_name, style=PINK if selected else TEXT))
            rows.append(Text(marker + item.raw_id, style=SURFACE2 if selected else SURFACE1))
    rows.append(Text(""))
    rows.append(Text("↑/↓ select • enter restore • r refresh • esc back", style=SURFACE1))
    return Panel(Group(*rows), box=box.SIMPLE, padding=(1, 2), height=max(3, state.height))


def render_await(state: AwaitState) -> RenderableType:
    if state.outcome is None:
        head = Text(f"{state.spinner} ", style="#ff5fd7")
        head.append(state.label, style=TEXT)
        rows: list[RenderableType] = [head, Text(format_elapsed(state.elapsed), style=SURFACE1, justify="center")]
        if state.overdue:
            rows.append(Text("Task still running...", style=SURFACE2, justify="center"))
    elif state.outcome.success:
        rows = [Text(":) Task complete!", style=GREEN)]
    else:
        rows = [
            Text(":( Task failed!", style=RED),
            Text(state.outcome.message, style=SURFACE2, justify="center"),
        ]
    if state.outcome is not None:
        rows.extend([Text(""), Text("Press any key to continue", style=SURFACE1, justify="center")])
    return _centered(Group(*(Align.center(row) for row in rows)), state.height)
