"""Single-session conversation state machine."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger

from shellmate.core.classifier import RequestClassifier
from shellmate.core.commands import resolve_working_directory
from shellmate.core.explainer import Explainer
from shellmate.core.generator import CommandGenerator, GenerationRefusal
from shellmate.core.parser import parse_listing_output
from shellmate.core.prompts import RUNNING_TEMPLATE
from shellmate.core.safety import confirmation_reason
from shellmate.core.search import SearchHandler
from shellmate.core.types import (
    CommandLogEntry,
    ConversationEntry,
    PendingCommand,
    RequestKind,
    SessionState,
    Turn,
    TurnOutcome,
    utcnow,
)
from shellmate.errors import CompletionError
from shellmate.logging_utils import bind_turn
from shellmate.shell.host import ProcessHost
from shellmate.store.command_log import CommandLogStore

CONFIRMATION_TEXT = "I can run the following command for you. Please review and confirm:"
ACCEPTED_TEMPLATE = "Okay, preparing to execute: {command}"
CANCELLED_TEMPLATE = "Command cancelled: {command}"
CANCELLATION_FALLBACK = "Command cancellation processed."
NO_PENDING_TEXT = "Error: No command was pending for execution."
ERROR_TEMPLATE = "Sorry, an error occurred. Details: {detail}"
LOG_HEADER_TEMPLATE = "Commands executed in the {window}:"
LOG_EMPTY_TEMPLATE = "No commands have been executed in the {window}."
LOG_DATE_FORMAT = "%m/%d"

Clock = Callable[[], datetime]


def log_window_label(days: int) -> str:
    return "last week" if days == 7 else f"last {days} days"


def format_command_log(entries: list[CommandLogEntry], *, days: int = 7) -> str:
    """Render log entries (already most recent first) for display."""
    window = log_window_label(days)
    if not entries:
        return LOG_EMPTY_TEMPLATE.format(window=window)
    lines = [f"{entry.command} - {entry.timestamp.astimezone():{LOG_DATE_FORMAT}}" for entry in entries]
    return LOG_HEADER_TEMPLATE.format(window=window) + "\n\n" + "\n".join(lines)


@dataclass
class SessionContext:
    """All mutable state for one conversation session."""

    history: list[ConversationEntry] = field(default_factory=list)
    turns: list[Turn] = field(default_factory=list)
    visible: ConversationEntry | None = None
    pending: PendingCommand | None = None
    state: SessionState = SessionState.IDLE
    turn: Turn | None = None
    original_prompt: str = ""


class Orchestrator:
    """
    Drives one turn at a time through classify, generate, gate, execute and explain.

    The full ordered history is kept for model context; ``visible_entry`` is the
    single live assistant entry a front end should show. Confirmation requests
    only ever appear in the visible view.
    """

    def __init__(
        self,
        *,
        classifier: RequestClassifier,
        generator: CommandGenerator,
        explainer: Explainer,
        host: ProcessHost,
        log_store: CommandLogStore,
        search: SearchHandler,
        home: str | Path,
        log_query_days: int = 7,
        clock: Clock = utcnow,
    ) -> None:
        self._classifier = classifier
        self._generator = generator
        self._explainer = explainer
        self._host = host
        self._log_store = log_store
        self._search = search
        self._home = str(home)
        self._log_query_days = log_query_days
        self._clock = clock
        self._lock = asyncio.Lock()
        self._ctx = SessionContext()

    @property
    def visible_entry(self) -> ConversationEntry | None:
        return self._ctx.visible

    @property
    def history(self) -> tuple[ConversationEntry, ...]:
        return tuple(self._ctx.history)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._ctx.turns)

    @property
    def state(self) -> SessionState:
        return self._ctx.state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def pending(self) -> PendingCommand | None:
        return self._ctx.pending

    async def submit(self, text: str) -> ConversationEntry | None:
        """Run one user request; returns the visible entry, or ``None`` if ignored."""
        prompt = text.strip()
        if not prompt:
            return None
        if self.busy:
            logger.warning("orchestrator.submit.ignored reason=busy")
            return None

        async with self._lock:
            if self._ctx.pending is not None:
                self._cancel_pending()

            turn = Turn(text=prompt, timestamp=self._clock())
            bind_turn(turn.id)
            self._ctx.turn = turn
            self._ctx.turns.append(turn)
            self._ctx.original_prompt = prompt
            self._append_history(ConversationEntry(role="user", text=prompt, turn_id=turn.id))
            logger.info("orchestrator.turn.start turn={} chars={}", turn.id, len(prompt))
            try:
                await self._run_turn(turn)
            finally:
                self._settle()
            return self._ctx.visible

    async def confirm(self, turn_id: str) -> ConversationEntry | None:
        """Execute the command awaiting confirmation for ``turn_id``."""
        if self.busy:
            logger.warning("orchestrator.confirm.ignored reason=busy")
            return None

        async with self._lock:
            pending = self._ctx.pending
            turn = self._ctx.turn
            if pending is None or turn is None:
                self._respond(NO_PENDING_TEXT, attach=False)
                return self._ctx.visible
            if pending.turn_id != turn_id:
                logger.warning("orchestrator.confirm.stale turn={} pending_turn={}", turn_id, pending.turn_id)
                return None

            bind_turn(turn_id)
            self._rewrite_confirmation(ACCEPTED_TEMPLATE.format(command=pending.command))
            logger.info("orchestrator.confirm.accepted command={!r}", pending.command)
            try:
                await self._execute(turn, pending.command)
            finally:
                self._settle()
            return self._ctx.visible

    async def reject(self, turn_id: str) -> ConversationEntry | None:
        """Cancel the command awaiting confirmation for ``turn_id``."""
        if self.busy:
            logger.warning("orchestrator.reject.ignored reason=busy")
            return None

        async with self._lock:
            pending = self._ctx.pending
            if pending is None:
                self._respond(CANCELLATION_FALLBACK, attach=False)
                return self._ctx.visible
            if pending.turn_id != turn_id:
                logger.warning("orchestrator.reject.stale turn={} pending_turn={}", turn_id, pending.turn_id)
                return None
            bind_turn(turn_id)
            self._cancel_pending()
            self._settle()
            return self._ctx.visible

    async def request_explanation(self, turn_id: str) -> ConversationEntry | None:
        """Attach or toggle a plain-language description of the pending command."""
        entry = self._ctx.visible
        pending = self._ctx.pending
        if (
            entry is None
            or pending is None
            or pending.turn_id != turn_id
            or not entry.is_confirmation_request
            or entry.pending_command is None
        ):
            return None
        if entry.command_explanation is not None:
            entry.explanation_expanded = not entry.explanation_expanded
            return entry
        if self.busy:
            return None

        async with self._lock:
            bind_turn(turn_id)
            explanation = await self._explainer.explain_command(entry.pending_command)
            entry.command_explanation = explanation
            entry.explanation_expanded = True
            return entry

    async def _run_turn(self, turn: Turn) -> None:
        self._ctx.state = SessionState.CLASSIFYING
        kind = await self._classifier.classify(turn.text)
        logger.info("orchestrator.turn.classified kind={}", kind)

        if kind is RequestKind.LOG_QUERY:
            since = self._clock() - timedelta(days=self._log_query_days)
            entries = self._log_store.query(since)
            self._respond(format_command_log(entries, days=self._log_query_days))
            turn.outcome = TurnOutcome.LOG_SHOWN
            return

        if kind is RequestKind.SEARCH:
            self._ctx.state = SessionState.SEARCH_HANDLED
            self._respond(self._search.handle(turn.text))
            turn.outcome = TurnOutcome.SEARCHED
            return

        self._ctx.state = SessionState.GENERATING
        try:
            result = await self._generator.generate(turn.text, self._ctx.history[:-1])
        except CompletionError as exc:
            self._fail(turn, f"Failed to generate command: {exc!s}")
            return

        if isinstance(result, GenerationRefusal):
            self._respond(result.message)
            turn.outcome = TurnOutcome.REFUSED
            return

        command = result.command
        turn.command = command
        self._ctx.pending = PendingCommand(turn_id=turn.id, command=command, created_at=self._clock())
        reason = confirmation_reason(command)
        if reason is None:
            self._ctx.state = SessionState.AUTO_EXECUTING
            self._respond(RUNNING_TEMPLATE.format(command=command))
            await self._execute(turn, command)
            return

        logger.info("orchestrator.gate.confirm command={!r} reason={}", command, reason)
        self._ctx.state = SessionState.AWAITING_CONFIRMATION
        self._show(
            ConversationEntry(
                role="assistant",
                text=CONFIRMATION_TEXT,
                turn_id=turn.id,
                pending_command=command,
                is_confirmation_request=True,
            ),
            turn,
        )
        turn.outcome = TurnOutcome.AWAITING_CONFIRMATION

    async def _execute(self, turn: Turn, command: str) -> None:
        self._ctx.state = SessionState.EXECUTING
        cwd = resolve_working_directory(command, self._home)
        result = await self._host.run(command, cwd)
        self._ctx.pending = None
        if not result.launched:
            logger.warning("orchestrator.process.not_launched command={!r}", command)
        self._log_store.append(
            CommandLogEntry(
                command=command,
                timestamp=self._clock(),
                output=result.stdout,
                error=result.stderr,
                user_prompt=self._ctx.original_prompt,
            )
        )

        self._ctx.state = SessionState.EXPLAINING
        try:
            explanation = await self._explainer.explain_outcome(
                user_prompt=self._ctx.original_prompt,
                command=command,
                output=result.stdout,
                error=result.stderr,
            )
        except CompletionError as exc:
            self._fail(turn, f"Failed to get explanation: {exc!s}")
            return

        listing = parse_listing_output(command, result.stdout, home=self._home)
        entry = ConversationEntry(
            role="assistant",
            text=explanation,
            turn_id=turn.id,
            command=command,
            files=listing.files,
            show_carousel=listing.show_carousel,
        )
        self._append_history(entry)
        self._show(entry, turn)
        turn.outcome = TurnOutcome.EXECUTED
        logger.info(
            "orchestrator.turn.executed exit_code={} files={} carousel={}",
            result.exit_code,
            len(listing.files),
            listing.show_carousel,
        )

    def _cancel_pending(self) -> None:
        pending = self._ctx.pending
        if pending is None:
            return
        self._rewrite_confirmation(CANCELLED_TEMPLATE.format(command=pending.command))
        self._ctx.pending = None
        for turn in self._ctx.turns:
            if turn.id == pending.turn_id:
                turn.outcome = TurnOutcome.CANCELLED
        logger.info("orchestrator.pending.cancelled command={!r}", pending.command)

    def _rewrite_confirmation(self, text: str) -> None:
        entry = self._ctx.visible
        if entry is None or not entry.is_confirmation_request:
            return
        entry.text = text
        entry.is_confirmation_request = False
        entry.is_actioned = True
        entry.pending_command = None

    def _respond(self, text: str, *, attach: bool = True) -> None:
        turn = self._ctx.turn if attach else None
        entry = ConversationEntry(role="assistant", text=text, turn_id=turn.id if turn else None)
        self._append_history(entry)
        self._show(entry, turn)

    def _show(self, entry: ConversationEntry, turn: Turn | None) -> None:
        self._ctx.visible = entry
        if turn is not None:
            turn.entries.append(entry)

    def _append_history(self, entry: ConversationEntry) -> None:
        self._ctx.history.append(entry)

    def _fail(self, turn: Turn, detail: str) -> None:
        logger.warning("orchestrator.turn.failed detail={}", detail)
        self._ctx.pending = None
        self._respond(ERROR_TEMPLATE.format(detail=detail))
        turn.outcome = TurnOutcome.FAILED

    def _settle(self) -> None:
        if self._ctx.pending is not None and self._ctx.state is SessionState.AWAITING_CONFIRMATION:
            return
        self._ctx.pending = None
        self._ctx.state = SessionState.IDLE
        self._ctx.original_prompt = ""
