"""Regex search across the working tree."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from promptline.tools.base import (
    ToolContext,
    ToolDefinition,
    ToolResult,
    int_arg,
    object_schema,
    string_arg,
)

if TYPE_CHECKING:
    from promptline.config import AppConfig

MAX_FILE_BYTES = 1_000_000
_SKIPPED_DIRECTORIES = {".git", "__pycache__", "node_modules", "target", ".venv", "dist", "build"}


class CodebaseSearchTool:
    name = "codebase_search"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "Search text files for a regular expression. Args: pattern (string),"
                " path (string, default '.'), max_results (integer, default 50)."
            ),
            parameters=object_schema(
                {
                    "pattern": {"type": "string"},
                    "path": {"type": "string"},
                    "max_results": {"type": "integer"},
                },
                ["pattern"],
            ),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        pattern_arg = string_arg(args, "pattern")
        if pattern_arg is None:
            return ToolResult.failure("Missing required argument: pattern")
        try:
            pattern = re.compile(pattern_arg)
        except re.error as exc:
            return ToolResult.failure(f"Invalid pattern: {exc}")

        root = ctx.resolve(string_arg(args, "path") or ".")
        if not root.exists():
            return ToolResult.failure(f"Path not found: {root}")
        max_results = int_arg(args, "max_results", 50)

        matches: list[str] = []
        for file_path in _iter_text_files(root):
            for line_number, line in _matching_lines(file_path, pattern):
                display = file_path.relative_to(root) if root.is_dir() else file_path.name
                matches.append(f"{Path(display).as_posix()}:{line_number}: {line.strip()}")
                if len(matches) >= max_results:
                    return ToolResult.ok("\n".join(matches))
        if not matches:
            return ToolResult.ok("No matches found.")
        return ToolResult.ok("\n".join(matches))


def _iter_text_files(root: Path) -> Iterator[Path]:
    if root.is_file():
        yield root
        return
    for directory, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _SKIPPED_DIRECTORIES)
        for filename in sorted(filenames):
            yield Path(directory) / filename


def _matching_lines(path: Path, pattern: re.Pattern[str]) -> Iterator[tuple[int, str]]:
    try:
        if path.stat().st_size > MAX_FILE_BYTES:
            return
        raw = path.read_bytes()
    except OSError:
        return
    if b"\x00" in raw:
        return
    text = raw.decode("utf-8", errors="replace")
    for line_number, line in enumerate(text.splitlines(), start=1):
        if pattern.search(line):
            yield line_number, line
