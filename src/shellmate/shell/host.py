"""Subprocess execution for generated commands."""

from __future__ import annotations

import asyncio
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from loguru import logger

DEFAULT_SHELL = "/bin/bash"


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of one command; empty streams are ``None``."""

    stdout: str | None
    stderr: str | None
    exit_code: int | None
    timed_out: bool = False
    elapsed_ms: int = 0

    @property
    def launched(self) -> bool:
        return self.exit_code is not None or self.timed_out


class ProcessHost(Protocol):
    async def run(self, command: str, cwd: str) -> ProcessResult: ...


def normalize_stream(payload: bytes | None) -> str | None:
    if not payload:
        return None
    text = payload.decode("utf-8", errors="replace").strip()
    return text or None


def kill_process_group(pid: int) -> None:
    """SIGKILL every process in the session started for one command."""
    try:
        os.killpg(pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("process.kill.gone pid={}", pid)


class BashProcessHost:
    """Runs commands through a POSIX shell with a bounded wait."""

    def __init__(
        self,
        *,
        shell: str = DEFAULT_SHELL,
        timeout_seconds: float | None = 120,
        home: str | Path | None = None,
    ) -> None:
        self._shell = shell
        self._timeout_seconds = timeout_seconds
        self._home = str(home) if home is not None else str(Path.home())

    def effective_cwd(self, cwd: str) -> str:
        return cwd if os.path.isdir(cwd) else self._home

    async def run(self, command: str, cwd: str) -> ProcessResult:
        working_dir = self.effective_cwd(cwd)
        logger.info("process.start command={!r} cwd={}", command, working_dir)
        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                command,
                cwd=working_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning("process.launch_failed command={!r} error={}", command, exc)
            return ProcessResult(stdout=None, stderr=f"Failed to launch command: {exc!s}", exit_code=None)

        try:
            async with asyncio.timeout(self._timeout_seconds):
                stdout_bytes, stderr_bytes = await process.communicate()
        except TimeoutError:
            kill_process_group(process.pid)
            stdout_bytes, stderr_bytes = await process.communicate()
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("process.timeout command={!r} timeout={}", command, self._timeout_seconds)
            notice = f"Command timed out after {self._timeout_seconds}s and was terminated."
            stderr = normalize_stream(stderr_bytes)
            return ProcessResult(
                stdout=normalize_stream(stdout_bytes),
                stderr=f"{stderr}\n{notice}" if stderr else notice,
                exit_code=process.returncode,
                timed_out=True,
                elapsed_ms=elapsed_ms,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = ProcessResult(
            stdout=normalize_stream(stdout_bytes),
            stderr=normalize_stream(stderr_bytes),
            exit_code=process.returncode,
            elapsed_ms=elapsed_ms,
        )
        logger.info(
            "process.finish exit_code={} elapsed_ms={} stdout_len={} stderr_len={}",
            result.exit_code,
            elapsed_ms,
            len(result.stdout or ""),
            len(result.stderr or ""),
        )
        return result
