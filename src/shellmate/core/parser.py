"""Turn listing command output into file entries."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from shellmate.core.commands import long_flags, resolve_working_directory, short_flag_letters, split_tokens
from shellmate.core.types import FileCategory, FileEntry

LISTING_VERBS = frozenset({"ls", "find"})
GLOB_MARKER = "*."
LONG_FORMAT_MIN_TOKENS = 9
LONG_FORMAT_NAME_INDEX = 8
LONG_FORMAT_SIZE_INDEX = 4
SYMLINK_ARROW = " -> "
MAX_CAROUSEL_ENTRIES = 50
DIRECTORY_SUFFIX = "/"
EXECUTABLE_SUFFIX = "*"
SYMLINK_SUFFIX = "@"
ALL_ENTRY_LONG_FLAGS = frozenset({"--all", "--almost-all"})
WELL_KNOWN_FOLDER_WORDS = (
    "folder",
    "documents",
    "downloads",
    "applications",
    "desktop",
    "pictures",
    "movies",
    "music",
)
WELL_KNOWN_FOLDER_NAMES = frozenset({"Applications", "Documents", "Downloads", "Desktop", "Pictures", "Library", "Public"})


@dataclass(frozen=True)
class ListingResult:
    show_carousel: bool = False
    files: list[FileEntry] = field(default_factory=list)


@dataclass(frozen=True)
class _ParsedLine:
    name: str
    is_directory: bool
    size: str | None = None


def is_listing_command(command: str) -> bool:
    normalized = command.strip().lower()
    tokens = split_tokens(normalized)
    if not tokens:
        return False
    return tokens[0] in LISTING_VERBS or GLOB_MARKER in normalized


def _is_ls(command: str) -> bool:
    tokens = split_tokens(command.strip())
    return bool(tokens) and tokens[0] == "ls"


def requests_all_entries(command: str) -> bool:
    if not _is_ls(command):
        return False
    letters = short_flag_letters(command)
    return "a" in letters or "A" in letters or bool(long_flags(command) & ALL_ENTRY_LONG_FLAGS)


def is_long_format(command: str) -> bool:
    return _is_ls(command) and "l" in short_flag_letters(command)


def parse_listing_output(command: str, stdout: str | None, *, home: str | Path | None = None) -> ListingResult:
    """Parse listing output into file entries.

    Returns an empty result for non-listing commands or empty output. The
    carousel flag is set only for 1 to 50 entries.
    """

    if not stdout or not is_listing_command(command):
        return ListingResult()

    base_directory = resolve_working_directory(command, home)
    while "*" in base_directory:
        base_directory = os.path.dirname(base_directory.rstrip("/"))
    long_format = is_long_format(command)
    include_hidden = requests_all_entries(command)

    files: list[FileEntry] = []
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        parsed = _parse_long_line(line) if long_format else _parse_short_line(line, base_directory)
        if parsed is None:
            continue
        display_name = os.path.basename(parsed.name.rstrip("/")) or parsed.name
        if display_name in {".", ".."}:
            continue
        if display_name.startswith(".") and not include_hidden:
            continue

        full_path = os.path.normpath(os.path.join(base_directory, parsed.name))
        category = FileCategory.FOLDER if parsed.is_directory else FileCategory.from_name(display_name)
        files.append(
            FileEntry(
                name=display_name,
                path=full_path,
                category=category,
                size=parsed.size,
            )
        )

    show_carousel = 0 < len(files) <= MAX_CAROUSEL_ENTRIES
    return ListingResult(show_carousel=show_carousel, files=files)


def _parse_long_line(line: str) -> _ParsedLine | None:
    tokens = line.split()
    if len(tokens) < LONG_FORMAT_MIN_TOKENS:
        return None
    name = " ".join(tokens[LONG_FORMAT_NAME_INDEX:])
    if SYMLINK_ARROW in name:
        name = name.split(SYMLINK_ARROW, 1)[0]
    is_directory = tokens[0].startswith("d")
    name, _ = _strip_type_suffix(name)
    return _ParsedLine(name=name, is_directory=is_directory, size=tokens[LONG_FORMAT_SIZE_INDEX])


def _parse_short_line(line: str, base_directory: str) -> _ParsedLine:
    name, suffix = _strip_type_suffix(line)
    if suffix == DIRECTORY_SUFFIX:
        return _ParsedLine(name=name, is_directory=True)
    if suffix is not None:
        return _ParsedLine(name=name, is_directory=False)

    candidate = os.path.normpath(os.path.join(base_directory, name))
    if os.path.exists(candidate):
        return _ParsedLine(name=name, is_directory=os.path.isdir(candidate))
    return _ParsedLine(name=name, is_directory=_looks_like_folder(name))


def _strip_type_suffix(name: str) -> tuple[str, str | None]:
    for suffix in (DIRECTORY_SUFFIX, EXECUTABLE_SUFFIX, SYMLINK_SUFFIX):
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)], suffix
    return name, None


def _looks_like_folder(name: str) -> bool:
    if "." in name:
        return False
    lowered = name.lower()
    return any(word in lowered for word in WELL_KNOWN_FOLDER_WORDS) or name in WELL_KNOWN_FOLDER_NAMES
