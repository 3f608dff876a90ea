"""Data models shared by the agent loop and its collaborators."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(slots=True)
class Message:
    """A single entry in the conversation history."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(slots=True)
class ModelResponse:
    """Normalized chat completion returned by a model client."""

    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None


@dataclass(slots=True)
class ProposedAction:
    """A capability invocation extracted from one model response."""

    name: str
    args: object

    def command_string(self) -> str:
        """Render the action the way the safety validator inspects it."""
        return f"{self.name} {json.dumps(self.args, sort_keys=True)}"


@dataclass(slots=True)
class RunResult:
    """Terminal snapshot of one agent run."""

    success: bool
    output: str
    iterations: int
    tool_calls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "output": self.output,
            "iterations": self.iterations,
            "tool_calls": list(self.tool_calls),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> RunResult:
        tool_calls = payload.get("tool_calls", [])
        if not isinstance(tool_calls, list):
            tool_calls = []
        iterations = payload.get("iterations", 0)
        return cls(
            success=bool(payload.get("success", False)),
            output=str(payload.get("output", "")),
            iterations=iterations if isinstance(iterations, int) else 0,
            tool_calls=[str(name) for name in tool_calls],
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> RunResult:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            msg = "run result JSON must be an object"
            raise ValueError(msg)
        return cls.from_dict(parsed)
