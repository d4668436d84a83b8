from __future__ import annotations

import logging
import threading
import time

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from .config import AppConfig
from .messages import QUIT_KEY, Effect, Issue, KeyPressed, Message, Post, Quit, Resized, Scrolled, Tick
from .operations import Operation, failure_message, perform
from .screens import SCROLL_STEP, Screen, initial_screen, step
from .views import render

log = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.1


class CraftTUI(App):
    CSS = """
    Screen {
        layout: vertical;
    }
    #screen {
        height: 1fr;
    }
    """

    TITLE = "craftctl"

    BINDINGS = [
        Binding("ctrl+c", "quit_now", "Quit", show=False, priority=True),
    ]

    def __init__(self, config: AppConfig) -> None:
        super().__init__()
        self._config = config
        self._screen_state: Screen = initial_screen(config)

    @property
    def screen_state(self) -> Screen:
        return self._screen_state

    def compose(self) -> ComposeResult:
        yield Static(id="screen")

    def on_mount(self) -> None:
        self.set_interval(TICK_INTERVAL_S, self._send_tick)
        self.feed(Resized(self.size.width, self.size.height))
        self._redraw()

    # --- event loop side ---

    def feed(self, msg: Message) -> None:
        state, effects = step(self._screen_state, msg)
        changed = state is not self._screen_state
        self._screen_state = state
        if changed:
            self._redraw()
        for effect in effects:
            self._run_effect(effect)

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, Quit):
            self.exit()
        elif isinstance(effect, Post):
            self.call_later(self.feed, effect.message)
        elif isinstance(effect, Issue):
            threading.Thread(
                target=self._perform,
                args=(effect.operation, effect.token),
                name=f"craftctl-{effect.operation.kind}",
                daemon=True,
            ).start()

    def _redraw(self) -> None:
        self.query_one("#screen", Static).update(render(self._screen_state))

    def _send_tick(self) -> None:
        self.feed(Tick(time.monotonic()))

    def on_key(self, event: events.Key) -> None:
        event.stop()
        self.feed(KeyPressed(event.key, event.character))

    def on_resize(self, event: events.Resize) -> None:
        self.feed(Resized(event.size.width, event.size.height))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.feed(Scrolled(-SCROLL_STEP))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.feed(Scrolled(SCROLL_STEP))

    def action_quit_now(self) -> None:
        self.feed(KeyPressed(QUIT_KEY))

    # --- worker side ---

    def _perform(self, op: Operation, token: str | None) -> None:
        try:
            msg = perform(op, self._config, token)
        except Exception as exc:  # noqa: BLE001
            log.exception("%r failed", op)
            msg = failure_message(op, f"unexpected error: {exc}")
        try:
            self.call_from_thread(self.feed, msg)
        except RuntimeError:
            # the app already exited; nobody is left to read the result
            log.debug("dropping result of %r", op)


def run_tui(config: AppConfig) -> None:
    CraftTUI(config).run()
