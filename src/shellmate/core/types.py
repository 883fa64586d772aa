"""Shared core dataclasses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import PurePath
from typing import Any, Literal

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid.uuid4().hex


class RequestKind(StrEnum):
    COMMAND = "COMMAND"
    SEARCH = "SEARCH"
    LOG_QUERY = "LOG_QUERY"


class SessionState(StrEnum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    SEARCH_HANDLED = "search_handled"
    GENERATING = "generating"
    AUTO_EXECUTING = "auto_executing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    EXPLAINING = "explaining"


class TurnOutcome(StrEnum):
    SEARCHED = "searched"
    LOG_SHOWN = "log_shown"
    EXECUTED = "executed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    REFUSED = "refused"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FileCategory(StrEnum):
    IMAGE = "image"
    DOCUMENT = "document"
    CODE = "code"
    ARCHIVE = "archive"
    AUDIO = "audio"
    VIDEO = "video"
    FOLDER = "folder"
    OTHER = "other"

    @classmethod
    def from_name(cls, file_name: str) -> FileCategory:
        if not file_name:
            return cls.FOLDER
        ext = PurePath(file_name).suffix.lower().lstrip(".")
        return _EXTENSION_CATEGORIES.get(ext, cls.OTHER)


_EXTENSION_CATEGORIES: dict[str, FileCategory] = {
    **dict.fromkeys(("jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp", "heic", "heif"), FileCategory.IMAGE),
    **dict.fromkeys(("pdf", "doc", "docx", "txt", "rtf", "pages"), FileCategory.DOCUMENT),
    **dict.fromkeys(
        ("swift", "js", "py", "java", "cpp", "c", "h", "html", "css", "json", "xml"),
        FileCategory.CODE,
    ),
    **dict.fromkeys(("zip", "rar", "7z", "tar", "gz", "dmg"), FileCategory.ARCHIVE),
    **dict.fromkeys(("mp3", "wav", "aac", "flac", "m4a"), FileCategory.AUDIO),
    **dict.fromkeys(("mp4", "mov", "avi", "mkv", "wmv", "m4v"), FileCategory.VIDEO),
}


@dataclass(frozen=True)
class FileEntry:
    """One filesystem entry recovered from listing output."""

    name: str
    path: str
    category: FileCategory
    size: str | None = None


@dataclass
class ConversationEntry:
    """One user or assistant utterance with optional structured payload."""

    role: Role
    text: str
    turn_id: str | None = None
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)
    command: str | None = None
    pending_command: str | None = None
    is_confirmation_request: bool = False
    is_actioned: bool = False
    command_explanation: str | None = None
    explanation_expanded: bool = False
    files: list[FileEntry] = field(default_factory=list)
    show_carousel: bool = False

    @property
    def is_user(self) -> bool:
        return self.role == "user"


@dataclass(frozen=True)
class PendingCommand:
    """Command awaiting execution or confirmation."""

    turn_id: str
    command: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Turn:
    """One user submission through to its terminal outcome."""

    text: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)
    entries: list[ConversationEntry] = field(default_factory=list)
    outcome: TurnOutcome | None = None
    command: str | None = None

    @property
    def resolved(self) -> bool:
        return self.outcome is not None and self.outcome is not TurnOutcome.AWAITING_CONFIRMATION


@dataclass(frozen=True)
class CommandLogEntry:
    """Audit record for one completed command execution."""

    command: str
    timestamp: datetime
    output: str | None
    error: str | None
    user_prompt: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
            "output": self.output,
            "error": self.error,
            "user_prompt": self.user_prompt,
        }

    @classmethod
    def from_payload(cls, payload: object) -> CommandLogEntry | None:
        if not isinstance(payload, dict):
            return None
        command = payload.get("command")
        raw_timestamp = payload.get("timestamp")
        if not isinstance(command, str) or not isinstance(raw_timestamp, str):
            return None
        try:
            timestamp = datetime.fromisoformat(raw_timestamp)
        except ValueError:
            return None
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        output = payload.get("output")
        error = payload.get("error")
        user_prompt = payload.get("user_prompt")
        return cls(
            command=command,
            timestamp=timestamp,
            output=output if isinstance(output, str) else None,
            error=error if isinstance(error, str) else None,
            user_prompt=user_prompt if isinstance(user_prompt, str) else "",
        )
