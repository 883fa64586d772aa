import time
from pathlib import Path

import pytest

from shellmate.shell.host import BashProcessHost, normalize_stream


def test_normalize_stream() -> None:
    assert normalize_stream(None) is None
    assert normalize_stream(b"") is None
    assert normalize_stream(b"  \n") is None
    assert normalize_stream(b" hi\n") == "hi"
    assert normalize_stream(b"\xff") == "�"


@pytest.mark.asyncio
async def test_captures_stdout(tmp_path: Path) -> None:
    host = BashProcessHost(home=tmp_path)

    result = await host.run("echo hello", str(tmp_path))

    assert result.stdout == "hello"
    assert result.stderr is None
    assert result.exit_code == 0
    assert result.timed_out is False


@pytest.mark.asyncio
async def test_captures_stderr_and_exit_code(tmp_path: Path) -> None:
    host = BashProcessHost(home=tmp_path)

    result = await host.run("echo oops >&2; exit 3", str(tmp_path))

    assert result.stdout is None
    assert result.stderr == "oops"
    assert result.exit_code == 3


@pytest.mark.asyncio
async def test_runs_in_requested_directory(tmp_path: Path) -> None:
    target = tmp_path / "work"
    target.mkdir()
    host = BashProcessHost(home=tmp_path)

    result = await host.run("pwd", str(target))

    assert result.stdout is not None
    assert Path(result.stdout).resolve() == target.resolve()


@pytest.mark.asyncio
async def test_missing_directory_falls_back_to_home(tmp_path: Path) -> None:
    host = BashProcessHost(home=tmp_path)

    result = await host.run("pwd", str(tmp_path / "missing"))

    assert result.stdout is not None
    assert Path(result.stdout).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_timeout_kills_process(tmp_path: Path) -> None:
    host = BashProcessHost(home=tmp_path, timeout_seconds=0.2)

    result = await host.run("sleep 5", str(tmp_path))

    assert result.timed_out is True
    assert result.stderr is not None
    assert "timed out" in result.stderr


@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["sleep 5; echo done", "sleep 5 | cat", "true && sleep 5"])
async def test_timeout_kills_child_processes(command: str, tmp_path: Path) -> None:
    host = BashProcessHost(home=tmp_path, timeout_seconds=0.3)

    started = time.monotonic()
    result = await host.run(command, str(tmp_path))
    elapsed = time.monotonic() - started

    assert result.timed_out is True
    assert result.stdout is None
    assert elapsed < 3


@pytest.mark.asyncio
async def test_launch_failure_is_reported_as_stderr(tmp_path: Path) -> None:
    host = BashProcessHost(shell=str(tmp_path / "no-such-shell"), home=tmp_path)

    result = await host.run("echo hi", str(tmp_path))

    assert result.stdout is None
    assert result.exit_code is None
    assert result.stderr is not None
    assert result.stderr.startswith("Failed to launch command:")
    assert result.launched is False
