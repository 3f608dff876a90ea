"""Shell command capability."""

from __future__ import annotations

from typing import TYPE_CHECKING

from promptline.shell import CommandResult, ShellAdapter, create_shell_adapter
from promptline.tools.base import ToolContext, ToolDefinition, ToolResult, object_schema, string_arg

if TYPE_CHECKING:
    from promptline.config import AppConfig


class ShellTool:
    name = "shell"

    def __init__(self, adapter: ShellAdapter | None = None) -> None:
        self.adapter = adapter

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "Run a shell command in the working directory. Args: command (string),"
                " timeout (number of seconds, optional)."
            ),
            parameters=object_schema(
                {"command": {"type": "string"}, "timeout": {"type": "number"}},
                ["command"],
            ),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        command = string_arg(args, "command")
        if command is None:
            return ToolResult.failure("Missing required argument: command")

        timeout = config.command_timeout
        if isinstance(args, dict):
            requested = args.get("timeout")
            if isinstance(requested, (int, float)) and not isinstance(requested, bool):
                if requested > 0:
                    timeout = float(requested)

        adapter = self.adapter or create_shell_adapter(config.shell)
        result = adapter.execute(command, cwd=ctx.working_directory, timeout=timeout)
        output = format_command_result(result)
        if result.timed_out:
            return ToolResult.failure(f"Command timed out after {timeout:.1f}s", output=output)
        if not result.executed or result.returncode != 0:
            return ToolResult.failure(output, output=output)
        return ToolResult.ok(output)


def format_command_result(result: CommandResult) -> str:
    return (
        f"returncode={result.returncode}\n"
        f"duration={result.duration_seconds:.4f}s\n"
        f"stdout:\n{result.stdout}\n"
        f"stderr:\n{result.stderr}"
    )
