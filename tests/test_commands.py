from pathlib import Path

import pytest

from shellmate.core.commands import long_flags, normalize_generated_command, resolve_working_directory, short_flag_letters


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("ls -F", ""),
        ("ls -la ~/Documents", "Documents"),
        ("ls ~", ""),
        ("du -sh Downloads", "Downloads"),
        ("cat notes/todo.txt", "notes/todo.txt"),
    ],
)
def test_working_directory_relative_to_home(command: str, expected: str, tmp_path: Path) -> None:
    resolved = resolve_working_directory(command, tmp_path)

    assert resolved.rstrip("/") == str(tmp_path / expected).rstrip("/")


def test_absolute_working_directory_is_kept(tmp_path: Path) -> None:
    assert resolve_working_directory("ls -F /var/log", tmp_path) == "/var/log"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  ls -F \n", "ls -F"),
        ("```bash\ndf -h\n```", "df -h"),
        ("```\npwd\n```", "pwd"),
        ("`uptime`", "uptime"),
        ("$ whoami", "whoami"),
    ],
)
def test_normalize_generated_command(raw: str, expected: str) -> None:
    assert normalize_generated_command(raw) == expected


def test_flag_helpers() -> None:
    assert short_flag_letters("ls -la -h --color=auto") == {"l", "a", "h"}
    assert long_flags("ls -la --all --color=auto") == {"--all", "--color=auto"}
