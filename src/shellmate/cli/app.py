"""CLI application for shellmate."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from pathlib import Path

import typer
from loguru import logger

from shellmate.cli.render import ConfirmationChoice, Renderer, parse_confirmation_choice
from shellmate.config import Settings, get_settings
from shellmate.core.classifier import RequestClassifier
from shellmate.core.explainer import Explainer
from shellmate.core.generator import CommandGenerator
from shellmate.core.orchestrator import Orchestrator
from shellmate.core.search import SearchHandler
from shellmate.core.types import ConversationEntry, utcnow
from shellmate.errors import ApiKeyNotConfiguredError, StoreError
from shellmate.integrations.completion import build_completion_service, build_model_tiers
from shellmate.shell.host import BashProcessHost
from shellmate.store.command_log import CommandLogStore
from shellmate.store.preferences import CredentialStore

EXIT_WORDS = frozenset({"quit", "exit", "q"})

app = typer.Typer(
    name="shellmate",
    help="Describe a task in plain words; shellmate turns it into a shell command.",
    add_completion=False,
    rich_markup_mode="rich",
)

AskConfirmation = Callable[[], Awaitable[ConfirmationChoice]]


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Wire the session pipeline from settings; raises when no API key is available."""

    if not settings.resolved_api_key:
        raise ApiKeyNotConfiguredError("no API key in the environment or the credential store")

    completion = build_completion_service(settings)
    tiers = build_model_tiers(settings)
    user_home = Path.home()
    return Orchestrator(
        classifier=RequestClassifier(completion, tiers),
        generator=CommandGenerator(completion, tiers),
        explainer=Explainer(completion, tiers),
        host=BashProcessHost(
            shell=settings.shell,
            timeout_seconds=settings.command_timeout_seconds,
            home=user_home,
        ),
        log_store=CommandLogStore(settings.preference_store()),
        search=SearchHandler(enabled=settings.open_browser),
        home=user_home,
        log_query_days=settings.log_query_days,
    )


async def settle_turn(
    orchestrator: Orchestrator,
    renderer: Renderer,
    entry: ConversationEntry | None,
    ask: AskConfirmation,
) -> None:
    """Render the turn result and drive any confirmation until the turn is resolved."""
    while entry is not None:
        renderer.assistant_entry(entry)
        if not entry.is_confirmation_request or entry.turn_id is None:
            return
        choice = await ask()
        if choice == "explain":
            if entry.command_explanation is None:
                entry = await orchestrator.request_explanation(entry.turn_id) or orchestrator.visible_entry
            continue
        if choice == "yes":
            entry = await orchestrator.confirm(entry.turn_id)
        else:
            entry = await orchestrator.reject(entry.turn_id)


async def run_chat(orchestrator: Orchestrator, renderer: Renderer) -> None:
    while True:
        try:
            raw = await renderer.get_user_input()
        except (KeyboardInterrupt, EOFError):
            renderer.info("Goodbye!")
            return
        text = raw.strip()
        if not text:
            continue
        if text.lower() in EXIT_WORDS:
            renderer.info("Goodbye!")
            return
        entry = await orchestrator.submit(text)
        await settle_turn(orchestrator, renderer, entry, renderer.ask_confirmation)


def _orchestrator_or_exit(settings: Settings, renderer: Renderer) -> Orchestrator:
    try:
        return build_orchestrator(settings)
    except ApiKeyNotConfiguredError as exc:
        logger.warning("cli.startup.failed error={}", exc)
        renderer.api_key_error()
        raise typer.Exit(1) from exc


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        chat()


@app.command()
def chat() -> None:
    """Start an interactive session."""
    settings = get_settings(profile="chat")
    renderer = Renderer()
    orchestrator = _orchestrator_or_exit(settings, renderer)
    renderer.welcome(model=settings.command_model)
    asyncio.run(run_chat(orchestrator, renderer))


@app.command()
def run(
    text: str = typer.Argument(..., help="What you want done, in plain words."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Run commands that need confirmation without asking."),
) -> None:
    """Handle a single request and exit."""
    settings = get_settings()
    renderer = Renderer()
    orchestrator = _orchestrator_or_exit(settings, renderer)

    async def _ask() -> ConfirmationChoice:
        if yes:
            return "yes"
        while True:
            choice = parse_confirmation_choice(typer.prompt("Run it? [y]es / [n]o / [e]xplain"))
            if choice is not None:
                return choice

    async def _run_once() -> None:
        entry = await orchestrator.submit(text)
        await settle_turn(orchestrator, renderer, entry, _ask)

    asyncio.run(_run_once())


@app.command()
def log(
    days: int = typer.Option(7, "--days", "-d", min=1, help="How many days back to show."),
) -> None:
    """Show commands executed recently, most recent first."""
    settings = get_settings()
    store = CommandLogStore(settings.preference_store())
    Renderer().command_log(store.query(utcnow() - timedelta(days=days)))


@app.command("set-key")
def set_key(
    api_key: str | None = typer.Option(None, "--api-key", help="Completion provider API key; prompted if omitted."),
    clear: bool = typer.Option(False, "--clear", help="Remove the stored key instead."),
) -> None:
    """Store the API key used when SHELLMATE_API_KEY is not set."""
    settings = get_settings()
    renderer = Renderer()
    credentials = CredentialStore(settings.preference_store())
    try:
        if clear:
            credentials.clear()
            renderer.info("API key removed.")
            return
        if api_key is None:
            api_key = typer.prompt("API key", hide_input=True)
        credentials.save(api_key)
    except StoreError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    renderer.info("API key saved.")


if __name__ == "__main__":
    app()
