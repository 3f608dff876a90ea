"""Capability contract shared by every tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from promptline.config import AppConfig


@dataclass(slots=True)
class ToolContext:
    """Ambient, read-only facts gathered fresh for each action."""

    working_directory: str | None = None
    git_branch: str | None = None

    def resolve(self, path: str) -> Path:
        """Resolve ``path`` against the working directory."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute() or self.working_directory is None:
            return candidate
        return Path(self.working_directory) / candidate


@dataclass(slots=True)
class ToolResult:
    """Outcome of one capability invocation."""

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> ToolResult:
        return cls(success=True, output=output)

    @classmethod
    def failure(cls, error: str, output: str = "") -> ToolResult:
        return cls(success=False, output=output, error=error)

    def observation_text(self) -> str:
        if self.success:
            return self.output
        return self.error or self.output


@dataclass(slots=True)
class ToolDefinition:
    name: str
    description: str
    parameters: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


class Tool(Protocol):
    """Interface every registered capability satisfies."""

    name: str

    def definition(self) -> ToolDefinition: ...

    def execute(self, args: object, ctx: ToolContext, config: AppConfig) -> ToolResult: ...


def object_schema(
    properties: dict[str, dict[str, object]], required: list[str] | None = None
) -> dict[str, object]:
    return {"type": "object", "properties": properties, "required": required or []}


def string_arg(args: object, key: str) -> str | None:
    """Return ``args[key]`` when it is a non-empty string."""
    if not isinstance(args, dict):
        return None
    value = args.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def bool_arg(args: object, key: str, default: bool = False) -> bool:
    if not isinstance(args, dict):
        return default
    value = args.get(key, default)
    return value if isinstance(value, bool) else default


def int_arg(args: object, key: str, default: int) -> int:
    if not isinstance(args, dict):
        return default
    value = args.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value
