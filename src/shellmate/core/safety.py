"""Allow-list safety policy for generated commands.

Every command requires confirmation unless it starts with a read-only
allow-listed prefix and trips none of the disqualifying checks.
"""

from __future__ import annotations

import re

SAFE_COMMAND_PREFIXES: tuple[str, ...] = (
    "ls",
    "pwd",
    "whoami",
    "date",
    "uptime",
    "uname",
    "ps",
    "top",
    "df",
    "du",
    "free",
    "cat",
    "head",
    "tail",
    "less",
    "more",
    "grep",
    "find",
    "locate",
    "which",
    "where",
    "file",
    "stat",
    "wc",
    "sort",
    "uniq",
    "cut",
    "awk",
    "sed -n",
    "echo",
    "printf",
    "history",
    "env",
    "printenv",
    "id",
    "groups",
    "finger",
    "w",
    "who",
    "last",
    "lastlog",
    "dmesg",
    "mount",
    "lsof",
    "netstat",
    "ifconfig",
    "ping -c",
    "traceroute",
    "nslookup",
    "dig",
    "host",
    "curl -s",
    "wget --spider",
    "ssh -t",
    "rsync -n",
    "git status",
    "git log",
    "git show",
    "git diff",
    "git branch",
    "brew list",
    "brew info",
    "brew search",
    "npm list",
    "pip list",
    "pip show",
    "python --version",
    "node --version",
)

DESTRUCTIVE_VERB_RE = re.compile(r"\b(rm|mv)\b")
RECURSIVE_FLAG = " -r"
ELEVATION_TOKEN = "sudo"
REDIRECTION_TOKEN = ">"


def _normalize(command: str) -> str:
    return command.strip().lower()


def matched_prefix(command: str) -> str | None:
    """Return the allow-listed prefix a command starts with, if any."""

    normalized = _normalize(command)
    for prefix in SAFE_COMMAND_PREFIXES:
        if normalized == prefix or normalized.startswith(prefix + " "):
            return prefix
    return None


def confirmation_reason(command: str) -> str | None:
    """Explain why a command needs confirmation; ``None`` means auto-executable."""

    normalized = _normalize(command)
    if not normalized:
        return "empty command"
    if matched_prefix(normalized) is None:
        return "not an allow-listed read-only command"
    if RECURSIVE_FLAG in normalized and DESTRUCTIVE_VERB_RE.search(normalized):
        return "recursive flag combined with rm/mv"
    if ELEVATION_TOKEN in normalized:
        return "uses sudo"
    if REDIRECTION_TOKEN in normalized:
        return "redirects output to a file"
    return None


def is_auto_executable(command: str) -> bool:
    """Decide whether a command may run without user confirmation."""

    return confirmation_reason(command) is None
