"""Command-line front end for streamchat."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.live import Live

from streamchat import __version__
from streamchat.config import ChatConfig, load_config
from streamchat.core.session import ConversationSession
from streamchat.llm.errors import ChatError
from streamchat.markdown.render import render_message
from streamchat.media import encode_audio, encode_image
from streamchat.types import ChatEvent, EventType, Role

console = Console()

_HISTORY_FILE = Path.home() / ".config" / "streamchat" / "prompt_history"

_HELP = """\
[bold]Commands[/bold]
  /new            start a new conversation
  /image <path>   attach an image to the next prompt
  /dictate <path> transcribe an audio file into the next prompt
  /help           show this help
  /quit           exit"""


class LiveDisplay:
    """Re-renders the streaming answer in place as the session emits events."""

    def __init__(self, con: Console):
        self.con = con
        self._live: Live | None = None

    def handle(self, event: ChatEvent) -> None:
        message = event.data.get("message")

        if event.type == EventType.MESSAGE_ADDED:
            if message.role is Role.MODEL and message.is_streaming:
                self._stop()
                self._live = Live(
                    render_message(message), console=self.con,
                    refresh_per_second=12, transient=False,
                )
                self._live.start()
            elif message.is_error:
                self.con.print(render_message(message))

        elif event.type == EventType.MESSAGE_UPDATED:
            if self._live is not None:
                self._live.update(render_message(message), refresh=True)

        elif event.type == EventType.EXCHANGE_CANCELLED:
            if self._live is not None:
                self._live.update("", refresh=True)
            self._stop()
            self.con.print("[dim](cancelled)[/dim]")

        elif event.type in (EventType.EXCHANGE_DONE, EventType.EXCHANGE_FAILED):
            self._stop()

    def _stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None


async def _ask(session: ConversationSession, prompt: str, images: list) -> bool:
    """Run one exchange to completion.  Returns False if it ended in error."""
    task = await session.submit(prompt, images)
    if task is not None:
        await asyncio.wait([task])
    last = session.messages[-1] if session.messages else None
    return last is not None and not last.is_error


async def _repl(session: ConversationSession) -> None:
    _HISTORY_FILE.parent.mkdir(parents=True, exist_ok=True)
    prompt_session: PromptSession[str] = PromptSession(
        history=FileHistory(str(_HISTORY_FILE)),
    )
    images: list[tuple[str, str]] = []
    draft = ""
    dictated = False

    while True:
        try:
            text = await prompt_session.prompt_async("> ", default=draft)
        except (EOFError, KeyboardInterrupt):
            break
        draft = ""
        stripped = text.strip()

        if stripped in ("/quit", "/exit"):
            break
        if stripped == "/help":
            console.print(_HELP)
            continue
        if stripped == "/new":
            await session.reset()
            images.clear()
            dictated = False
            console.print("[dim]New conversation[/dim]")
            continue
        if stripped.startswith("/image "):
            try:
                images.append(encode_image(stripped[len("/image "):].strip()))
            except (OSError, ValueError) as e:
                console.print(f"[red]{e}[/red]")
                continue
            console.print(f"[dim]{len(images)} image(s) attached[/dim]")
            continue
        if stripped.startswith("/dictate "):
            try:
                mime_type, data = encode_audio(stripped[len("/dictate "):].strip())
                draft = await session.transcribe(data, mime_type)
            except (OSError, ValueError, ChatError) as e:
                console.print(f"[red]Failed to transcribe audio: {e}[/red]")
                continue
            dictated = bool(draft)
            continue

        if not stripped and not images:
            continue
        task = await session.submit(text, images, from_dictation=dictated)
        images = []
        dictated = False
        if task is not None:
            await asyncio.wait([task])


async def _run(config: ChatConfig, prompt: str | None, images: list[tuple[str, str]]) -> int:
    session = ConversationSession(config)
    display = LiveDisplay(console)
    session.events.subscribe("*", display.handle)
    try:
        if prompt is not None:
            return 0 if await _ask(session, prompt, images) else 1
        await _repl(session)
        return 0
    finally:
        await session.aclose()


@click.command()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to streamchat.yaml (auto-detected from CWD or ~/.config/streamchat/)")
@click.option("--model", "-m", default=None, help="Model for chat requests")
@click.option("--system", "-s", "system_instruction", default=None,
              help="System instruction sent with every request")
@click.option("--image", "-i", "image_paths", multiple=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Image to attach to --prompt (repeatable)")
@click.option("--prompt", "-p", default=None, help="Send one prompt and exit")
@click.option("--tui", is_flag=True, help="Start the full-screen interface")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.version_option(__version__)
def main(config_path: str | None, model: str | None, system_instruction: str | None,
         image_paths: tuple[str, ...], prompt: str | None, tui: bool, verbose: bool):
    """streamchat - chat with Gemini models from the terminal."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        config, config_file = load_config(config_path)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    overrides = {}
    if model:
        overrides["model"] = model
    if system_instruction is not None:
        overrides["system_instruction"] = system_instruction
    if overrides:
        config = config.model_copy(update=overrides)

    if tui:
        from streamchat.tui.app import ChatApp

        ChatApp(config).run()
        return

    if prompt is None:
        source = str(config_file) if config_file else "defaults"
        console.print(f"[dim]streamchat v{__version__} | model: {config.model} | config: {source}[/dim]")
        if not config.has_credentials:
            console.print("[yellow]No API key: set GEMINI_API_KEY or api_key in streamchat.yaml[/yellow]")
        console.print("[dim]Type /help for commands[/dim]\n")

    images = []
    for path in image_paths:
        try:
            images.append(encode_image(path))
        except (OSError, ValueError) as e:
            raise click.ClickException(str(e)) from e

    sys.exit(asyncio.run(_run(config, prompt, images)))


if __name__ == "__main__":
    main()
