"""Tests for running promptline from a source checkout via start.py."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from promptline import __version__

SCRIPT = Path(__file__).resolve().parents[1] / "start.py"


def _run(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
        check=False,
    )


def test_help_lists_subcommands() -> None:
    result = _run("--help")

    assert result.returncode == 0
    assert "Permission-gated AI terminal assistant" in result.stdout
    for subcommand in ("init", "doctor", "agent", "chat"):
        assert subcommand in result.stdout


def test_bare_invocation_prints_version() -> None:
    result = _run()

    assert result.returncode == 0
    assert f"PromptLine v{__version__}" in result.stdout
