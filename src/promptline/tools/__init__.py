"""Built-in capabilities and their registry."""

from .base import Tool, ToolContext, ToolDefinition, ToolResult
from .file_ops import FileListTool, FileReadTool, FileWriteTool
from .git_ops import GitCommitTool, GitDiffTool, GitStatusTool
from .registry import ToolRegistry
from .search_ops import CodebaseSearchTool
from .shell import ShellTool
from .web_ops import WebGetTool


def default_registry() -> ToolRegistry:
    """Return a registry holding every built-in capability."""
    registry = ToolRegistry()
    for tool in (
        FileReadTool(),
        FileWriteTool(),
        FileListTool(),
        ShellTool(),
        GitStatusTool(),
        GitDiffTool(),
        GitCommitTool(),
        WebGetTool(),
        CodebaseSearchTool(),
    ):
        registry.register(tool)
    return registry


__all__ = [
    "CodebaseSearchTool",
    "FileListTool",
    "FileReadTool",
    "FileWriteTool",
    "GitCommitTool",
    "GitDiffTool",
    "GitStatusTool",
    "ShellTool",
    "Tool",
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "WebGetTool",
    "default_registry",
]
