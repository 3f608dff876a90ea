"""Process execution shared by the shell adapters."""

from __future__ import annotations

import abc
import locale
import logging
import re
import subprocess
import time
from dataclasses import dataclass

LOGGER = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127

_SECRET_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(--?(?:password|token|secret|api[-_]?key)\s+)([^\s]+)",
        r"((?:password|token|secret|api[-_]?key)\s*=\s*)([^\s]+)",
    )
]


@dataclass(slots=True)
class CommandResult:
    """Outcome of one shell invocation."""

    command: str
    shell: str
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    duration_seconds: float = 0.0
    executed: bool = True


class ShellAdapter(abc.ABC):
    """Runs a command string through one specific shell.

    Subclasses only describe how to spawn their interpreter; permission and
    safety decisions happen before a command ever reaches an adapter.
    """

    executable: str

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Friendly shell adapter name."""

    @abc.abstractmethod
    def build_argv(self, command: str) -> list[str]:
        """Return the process arguments that run ``command``."""

    def execute(
        self,
        command: str,
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        LOGGER.info(
            "command_request",
            extra={
                "shell": self.name,
                "command": sanitize_command(command),
                "cwd": cwd,
                "timeout": timeout,
            },
        )
        started = time.monotonic()
        try:
            process = subprocess.run(
                self.build_argv(command),
                capture_output=True,
                cwd=cwd,
                timeout=timeout,
                check=False,
                text=False,
            )
        except subprocess.TimeoutExpired as exc:
            result = self._result(
                command,
                started,
                returncode=TIMEOUT_RETURNCODE,
                stdout=normalize_output(exc.stdout),
                stderr=normalize_output(exc.stderr),
                timed_out=True,
            )
        except FileNotFoundError:
            result = self._result(
                command,
                started,
                returncode=NOT_FOUND_RETURNCODE,
                stderr=f"{self.name} executable not found: {self.executable}",
                executed=False,
            )
        else:
            result = self._result(
                command,
                started,
                returncode=process.returncode,
                stdout=normalize_output(process.stdout),
                stderr=normalize_output(process.stderr),
            )

        LOGGER.info(
            "command_result",
            extra={
                "shell": result.shell,
                "returncode": result.returncode,
                "timed_out": result.timed_out,
                "duration_seconds": round(result.duration_seconds, 4),
                "executed": result.executed,
            },
        )
        return result

    def _result(
        self,
        command: str,
        started: float,
        *,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        executed: bool = True,
    ) -> CommandResult:
        return CommandResult(
            command=command,
            shell=self.name,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            duration_seconds=time.monotonic() - started,
            executed=executed,
        )


def sanitize_command(command: str) -> str:
    """Mask credential-looking arguments before a command is logged."""
    sanitized = command
    for pattern in _SECRET_PATTERNS:
        sanitized = pattern.sub(r"\1***", sanitized)
    return sanitized


def normalize_output(payload: bytes | str | None) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload

    for encoding in ("utf-8", "utf-8-sig", "utf-16", locale.getpreferredencoding(False), "cp1252"):
        try:
            return payload.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    return payload.decode("utf-8", errors="replace")
