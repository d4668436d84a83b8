from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


def info(msg: str) -> None:
    console.print(f"[bold cyan]•[/] {escape(msg)}")


def err(msg: str) -> None:
    console.print(f"[bold red]ERR[/] {escape(msg)}")
