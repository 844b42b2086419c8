from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from typing import Callable, Optional

import typer
import uvicorn

from lyla.config.paths import settings_path
from lyla.config.settings import AppSettings
from lyla.config.store import load_settings, save_settings
from lyla.runtime.controller import SessionController
from lyla.services.api import LylaAPI
from lyla.services.schemas import Role
from lyla.state.app_state import SessionState, SessionView

cli = typer.Typer(name="lyla", help="LYLA chat client")
config_cli = typer.Typer(help="Client settings")
cli.add_typer(config_cli, name="config")

QUIT_COMMANDS = {"/quit", "/exit"}


def _settings(base_url: Optional[str]) -> AppSettings:
    settings = load_settings()
    if base_url:
        settings.server.base_url = base_url
    return settings


@cli.command()
def ui(base_url: Optional[str] = typer.Option(None, "--base-url", help="Assistant endpoint root")) -> None:
    """Open the desktop chat window."""
    from lyla.app import run

    raise typer.Exit(code=run(_settings(base_url)))


class StreamPrinter:
    """Print streamed replies to the terminal as they arrive."""

    def __init__(self, echo: Callable[..., None] = typer.echo) -> None:
        self._echo = echo
        self._printed = ""
        self._seen = 0

    def __call__(self, view: SessionView) -> None:
        if len(view.pending) > len(self._printed) and view.pending.startswith(self._printed):
            if not self._printed:
                self._echo("lyla> ", nl=False)
            self._echo(view.pending[len(self._printed) :], nl=False)
            self._printed = view.pending
        for message in view.transcript[self._seen :]:
            if message.role is not Role.ASSISTANT:
                continue
            if self._printed and message.content == self._printed:
                self._echo("")
            else:
                if self._printed:
                    self._echo("")
                self._echo(f"lyla> {message.content}")
            self._printed = ""
        self._seen = len(view.transcript)


async def _chat_loop(settings: AppSettings) -> None:
    async with LylaAPI(settings.server) as api:
        controller = SessionController(SessionState.create(), api.stream_reply, notify=typer.echo)
        controller.subscribe(StreamPrinter())
        while True:
            try:
                line = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            if line.strip() in QUIT_COMMANDS:
                break
            await controller.submit(line)


@cli.command()
def chat(base_url: Optional[str] = typer.Option(None, "--base-url", help="Assistant endpoint root")) -> None:
    """Chat from the terminal (type /quit to leave)."""
    try:
        asyncio.run(_chat_loop(_settings(base_url)))
    except KeyboardInterrupt:
        pass


@cli.command("serve-echo")
def serve_echo(
    host: str = "127.0.0.1",
    port: int = 3000,
    delay: float = typer.Option(0.05, help="Pause between streamed chunks (seconds)"),
) -> None:
    """Serve the echo endpoint for local development."""
    from lyla.devserver import create_app

    uvicorn.run(create_app(chunk_delay=delay), host=host, port=port)


@config_cli.command("show")
def config_show() -> None:
    typer.echo(json.dumps(asdict(load_settings()), indent=2, ensure_ascii=False))


@config_cli.command("path")
def config_path() -> None:
    typer.echo(str(settings_path()))


@config_cli.command("init")
def config_init(force: bool = typer.Option(False, "--force", help="Overwrite an existing file")) -> None:
    """Write the default settings file."""
    path = settings_path()
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force).")
        raise typer.Exit(code=1)
    save_settings(AppSettings(), path)
    typer.echo(str(path))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
