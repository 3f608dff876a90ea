"""Source-control capabilities backed by the ``git`` executable."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

from promptline.shell.base import normalize_output
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


def run_git(args: list[str], ctx: ToolContext, *, timeout: float) -> ToolResult:
    try:
        process = subprocess.run(
            ["git", *args],
            capture_output=True,
            cwd=ctx.working_directory,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        return ToolResult.failure("git executable not found")
    except subprocess.TimeoutExpired:
        return ToolResult.failure(f"git {args[0]} timed out after {timeout:.1f}s")

    stdout = normalize_output(process.stdout)
    stderr = normalize_output(process.stderr)
    if process.returncode != 0:
        return ToolResult.failure(stderr.strip() or f"git exited with {process.returncode}", stdout)
    return ToolResult.ok(stdout if stdout.strip() else "(no output)")


class GitStatusTool:
    name = "git_status"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description="Show the working tree status of the current git repository.",
            parameters=object_schema({}),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        return run_git(["status", "--short", "--branch"], ctx, timeout=config.command_timeout)


class GitDiffTool:
    name = "git_diff"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "Show changes in the working tree. Args: staged (boolean, optional),"
                " path (string, optional)."
            ),
            parameters=object_schema({"staged": {"type": "boolean"}, "path": {"type": "string"}}),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        command = ["diff"]
        if bool_arg(args, "staged"):
            command.append("--staged")
        path = string_arg(args, "path")
        if path is not None:
            command.extend(["--", path])
        return run_git(command, ctx, timeout=config.command_timeout)


class GitCommitTool:
    name = "git_commit"

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=(
                "Create a git commit. Args: message (string), all (boolean, optional;"
                " stage tracked changes first)."
            ),
            parameters=object_schema(
                {"message": {"type": "string"}, "all": {"type": "boolean"}}, ["message"]
            ),
        )

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult:
        message = string_arg(args, "message")
        if message is None:
            return ToolResult.failure("Missing required argument: message")
        command = ["commit"]
        if bool_arg(args, "all"):
            command.append("-a")
        command.extend(["-m", message])
        return run_git(command, ctx, timeout=config.command_timeout)
