"""Command text helpers."""

from __future__ import annotations

import os
import re
from pathlib import Path

CODE_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)
PROMPT_PREFIX = "$ "


def split_tokens(command: str) -> list[str]:
    """Split command text on whitespace, dropping empty tokens."""

    return command.split()


def short_flag_letters(command: str) -> set[str]:
    """Collect letters from single-dash flag groups such as ``-laF``."""

    letters: set[str] = set()
    for token in split_tokens(command)[1:]:
        if token.startswith("-") and not token.startswith("--"):
            letters.update(token[1:])
    return letters


def long_flags(command: str) -> set[str]:
    return {token for token in split_tokens(command)[1:] if token.startswith("--")}


def resolve_working_directory(command: str, home: str | Path | None = None) -> str:
    """Resolve the directory a command targets.

    The first positional token after the verb wins: ``~/`` expands to home,
    absolute paths are kept, anything else is taken relative to home. With no
    positional token the home directory is returned.
    """

    home_dir = str(home) if home is not None else str(Path.home())
    for token in split_tokens(command)[1:]:
        if token.startswith("-"):
            continue
        if token == "~":
            return home_dir
        if token.startswith("~/"):
            return os.path.join(home_dir, token[2:])
        if token.startswith("/"):
            return token
        return os.path.join(home_dir, token)
    return home_dir


def normalize_generated_command(text: str) -> str:
    """Strip markup a model may wrap around a bare command."""

    command = text.strip()
    fenced = CODE_FENCE_RE.match(command)
    if fenced is not None:
        command = fenced.group(1).strip()
    if len(command) >= 2 and command.startswith("`") and command.endswith("`"):
        command = command.strip("`").strip()
    if command.startswith(PROMPT_PREFIX):
        command = command[len(PROMPT_PREFIX) :].strip()
    return command
