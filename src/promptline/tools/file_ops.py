"""File system capabilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

from promptline.tools.base import (
    ToolContext,
    ToolDefinition,
    ToolResult,
    bool_arg,
    object_schema,
    string_arg,
)

if TYPE_CHECKING:
    from promptline.config import AppConfig

MAX_LIST_ENTRIES = 500
_SKIPPED_DIRECTORIES = {".git", "__pycache__", "node_modules", "target", ".venv"}


class FileReadTool:
    name = "file_read"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description="Read the contents of a text file. Args: path (string).",
            parameters=object_schema({"path": {"type": "string"}}, ["path"]),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        path_arg = string_arg(args, "path")
        if path_arg is None:
            return ToolResult.failure("Missing required argument: path")

        path = ctx.resolve(path_arg)
        if not path.is_file():
            return ToolResult.failure(f"File not found: {path_arg}")
        try:
            return ToolResult.ok(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError:
            return ToolResult.failure(f"File is not valid UTF-8 text: {path_arg}")
        except OSError as exc:
            return ToolResult.failure(f"Could not read {path_arg}: {exc}")


class FileWriteTool:
    name = "file_write"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "Write text to a file, creating parent directories as needed."
                " Args: path (string), content (string)."
            ),
            parameters=object_schema(
                {"path": {"type": "string"}, "content": {"type": "string"}},
                ["path", "content"],
            ),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        path_arg = string_arg(args, "path")
        if path_arg is None:
            return ToolResult.failure("Missing required argument: path")
        content = args.get("content") if isinstance(args, dict) else None
        if not isinstance(content, str):
            return ToolResult.failure("Missing required argument: content")

        path = ctx.resolve(path_arg)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            return ToolResult.failure(f"Could not write {path_arg}: {exc}")
        return ToolResult.ok(f"Wrote {len(content)} characters to {path_arg}")


class FileListTool:
    name = "file_list"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "List files in a directory. Args: path (string, default '.'),"
                " recursive (boolean, default false)."
            ),
            parameters=object_schema(
                {"path": {"type": "string"}, "recursive": {"type": "boolean"}}
            ),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        path_arg = string_arg(args, "path") or "."
        root = ctx.resolve(path_arg)
        if not root.is_dir():
            return ToolResult.failure(f"Directory not found: {path_arg}")

        try:
            if bool_arg(args, "recursive"):
                candidates = [
                    entry
                    for entry in root.rglob("*")
                    if not _SKIPPED_DIRECTORIES.intersection(entry.relative_to(root).parts)
                ]
            else:
                candidates = list(root.iterdir())
        except OSError as exc:
            return ToolResult.failure(f"Could not list {path_arg}: {exc}")

        entries = sorted(
            f"{entry.relative_to(root).as_posix()}/" if entry.is_dir()
            else entry.relative_to(root).as_posix()
            for entry in candidates
        )
        truncated = len(entries) > MAX_LIST_ENTRIES
        lines = entries[:MAX_LIST_ENTRIES]
        if truncated:
            lines.append(f"... ({len(entries) - MAX_LIST_ENTRIES} more entries)")
        return ToolResult.ok("\n".join(lines))
