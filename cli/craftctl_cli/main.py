from __future__ import annotations

import typer

from . import console
from .config import ConfigError, apply_overrides, load_config
from .http import cli_version
from .logging_ import setup_logging
from .tui_app import run_tui


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"craftctl {cli_version()}")
        raise typer.Exit()


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="craftctl",
        help="Terminal console for a remote game server: commands, tasks and backups.",
        add_completion=False,
    )

    @app.command()
    def _main(
            host: str | None = typer.Option(None, "-a", "--host", help="Backend host (default: localhost)."),
            port: int = typer.Option(..., "-p", "--port", help="Backend port."),
            time_offset: int | None = typer.Option(
                None, "-t", "--time-offset", help="Minutes the backend clock runs ahead of UTC, for backup times."
            ),
            verify_tls: bool | None = typer.Option(
                None, "--verify-tls/--insecure", help="Verify the backend certificate (default: insecure)."
            ),
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
            log_file: str | None = typer.Option(None, "--log-file", help="Write logs to this file."),
            version: bool = typer.Option(
                False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
            ),
    ):
        setup_logging(verbose, log_file)
        try:
            cfg = apply_overrides(
                load_config(),
                host=host,
                port=port,
                time_offset_min=time_offset,
                verify_tls=verify_tls,
            ).validate()
        except ConfigError as e:
            console.err(str(e))
            raise typer.Exit(code=2)
        if log_file:
            console.info(f"logging to {log_file}")
        run_tui(cfg)

    return app


app = _build_app()
