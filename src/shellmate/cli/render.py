"""CLI renderer for shellmate."""

import threading
from typing import Literal

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shellmate.core.types import CommandLogEntry, ConversationEntry, FileEntry

ConfirmationChoice = Literal["yes", "no", "explain"]

_CHOICES: dict[str, ConfirmationChoice] = {
    "y": "yes",
    "yes": "yes",
    "n": "no",
    "no": "no",
    "e": "explain",
    "explain": "explain",
}


def parse_confirmation_choice(raw: str) -> ConfirmationChoice | None:
    return _CHOICES.get(raw.strip().lower())


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self._prompt_session: PromptSession[str] | None = None
        self._print_lock = threading.Lock()

    def info(self, message: str) -> None:
        self._print(message)

    def error(self, message: str) -> None:
        self._print(f"[bold red]Error:[/bold red] {escape(message)}")

    def welcome(self, model: str = "") -> None:
        self._print("[bold blue]shellmate[/bold blue] - ask for it in plain words.")
        if model:
            self._print(f"[bold]Model:[/bold] [magenta]{escape(model)}[/magenta]")
        self._print("[dim]Type 'quit' to leave.[/dim]")

    def assistant_entry(self, entry: ConversationEntry) -> None:
        """Render the live assistant entry, including any pending command or file list."""
        if entry.command:
            self._print(f"[dim]$ {escape(entry.command)}[/dim]")
        self._print(f"[bold yellow]shellmate:[/bold yellow] {escape(entry.text)}")
        if entry.is_confirmation_request and entry.pending_command:
            self._print(f"  [bold cyan]$ {escape(entry.pending_command)}[/bold cyan]")
        if entry.command_explanation and entry.explanation_expanded:
            self._print(f"  [dim]{escape(entry.command_explanation)}[/dim]")
        if entry.show_carousel and entry.files:
            self.files(entry.files)

    def files(self, files: list[FileEntry]) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Name")
        table.add_column("Kind")
        table.add_column("Size", justify="right")
        for item in files:
            table.add_row(escape(item.name), item.category.value, item.size or "")
        with self._print_lock:
            self.console.print(table)

    def command_log(self, entries: list[CommandLogEntry]) -> None:
        if not entries:
            self._print("[dim]No commands recorded.[/dim]")
            return
        table = Table(show_header=True, header_style="bold")
        table.add_column("When")
        table.add_column("Command")
        table.add_column("Asked for")
        for entry in entries:
            table.add_row(
                f"{entry.timestamp.astimezone():%m/%d %H:%M}",
                escape(entry.command),
                escape(entry.user_prompt),
            )
        with self._print_lock:
            self.console.print(table)

    async def get_user_input(self) -> str:
        with patch_stdout(raw=True):
            return await self._session().prompt_async("> ")

    async def ask_confirmation(self) -> ConfirmationChoice:
        while True:
            with patch_stdout(raw=True):
                raw = await self._session().prompt_async("Run it? [y]es / [n]o / [e]xplain: ")
            choice = parse_confirmation_choice(raw)
            if choice is not None:
                return choice
            self._print("[dim]Please answer y, n or e.[/dim]")

    def api_key_error(self) -> None:
        self.error("API key not configured. Set SHELLMATE_API_KEY or run `shellmate set-key`.")

    def _session(self) -> PromptSession[str]:
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        return self._prompt_session

    def _print(self, message: str) -> None:
        with self._print_lock:
            self.console.print(message)
