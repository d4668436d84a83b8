"""Console scrollback and command history.

Both are immutable: every operation returns a new instance, so a console
state can be kept as a return target while a newer one is being shown.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, replace

DEFAULT_LIMIT = 1000


def wrap_body(body: str, width: int) -> list[str]:
    """Reflow an entry body to ``width`` columns.

    Newlines are collapsed first so one entry never fragments on stray line
    breaks from the backend. Words longer than ``width`` are kept whole.
    """
    text = body.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if len(text) <= width:
        return [text] if text else []
    return textwrap.wrap(
        text,
        width=max(1, width),
        break_long_words=False,
        break_on_hyphens=False,
    )


@dataclass(frozen=True)
class ScrollbackEntry:
    label: str
    body: str


@dataclass(frozen=True)
class Scrollback:
    entries: tuple[ScrollbackEntry, ...] = ()
    width: int = 80
    height: int = 20
    offset: int = 0
    # False once the user scrolls away from the bottom
    follow: bool = True
    limit: int = DEFAULT_LIMIT

    def rows(self, width: int | None = None) -> list[tuple[bool, str]]:
        """Rendered rows as ``(is_label, text)`` pairs."""
        width = self.width if width is None else width
        out: list[tuple[bool, str]] = []
        for entry in self.entries:
            out.append((True, entry.label))
            out.extend((False, line) for line in wrap_body(entry.body, width))
            out.append((False, ""))
        return out

    def render(self, width: int | None = None) -> list[str]:
        return [text for _, text in self.rows(width)]

    @property
    def line_count(self) -> int:
        return len(self.rows())

    @property
    def max_offset(self) -> int:
        return max(0, self.line_count - self.height)

    @property
    def at_bottom(self) -> bool:
        return self.offset >= self.max_offset

    def append(self, label: str, body: str) -> Scrollback:
        entries = self.entries + (ScrollbackEntry(label, body),)
        offset = self.offset
        if self.limit and len(entries) > self.limit:
            evicted = entries[:-self.limit]
            entries = entries[-self.limit:]
            if not self.follow:
                # keep the same rows under a scrolled-up view
                dropped = sum(2 + len(wrap_body(e.body, self.width)) for e in evicted)
                offset = max(0, offset - dropped)
        return replace(self, entries=entries, offset=offset)._settle()

    def resize(self, width: int, height: int) -> Scrollback:
        return replace(self, width=max(1, width), height=max(1, height))._settle()

    def scroll(self, delta: int) -> Scrollback:
        if not delta:
            return self
        moved = replace(self, offset=min(max(0, self.offset + delta), self.max_offset))
        return replace(moved, follow=moved.at_bottom)

    def page(self, pages: int) -> Scrollback:
        return self.scroll(pages * self.height)

    def visible(self) -> list[tuple[bool, str]]:
        rows = self.rows()
        return rows[self.offset:self.offset + self.height]

    def _settle(self) -> Scrollback:
        if self.follow:
            return replace(self, offset=self.max_offset)
        return replace(self, offset=min(self.offset, self.max_offset))


@dataclass(frozen=True)
class CommandHistory:
    commands: tuple[str, ...] = ()
    cursor: int | None = None

    def record(self, command: str) -> CommandHistory:
        if not command:
            return CommandHistory(self.commands, None)
        return CommandHistory(self.commands + (command,), None)

    def older(self) -> tuple[CommandHistory, str | None]:
        if not self.commands:
            return self, None
        if self.cursor is None:
            cursor = len(self.commands) - 1
        else:
            cursor = max(0, self.cursor - 1)
        return CommandHistory(self.commands, cursor), self.commands[cursor]

    def newer(self) -> tuple[CommandHistory, str | None]:
        if self.cursor is None:
            return self, None
        cursor = self.cursor + 1
        if cursor >= len(self.commands):
            return CommandHistory(self.commands, None), ""
        return CommandHistory(self.commands, cursor), self.commands[cursor]
