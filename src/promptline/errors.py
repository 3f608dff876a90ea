"""Exception types raised by promptline."""

from __future__ import annotations


class PromptLineError(Exception):
    """Base class for fatal promptline failures."""


class MaxIterationsExceeded(PromptLineError):
    """Raised when a run consumes its iteration budget without finishing."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"iteration budget exceeded ({max_iterations} iterations)")
        self.max_iterations = max_iterations


class ModelError(PromptLineError):
    """Raised when the model provider cannot produce a response."""


class ToolError(PromptLineError):
    """Raised for capability dispatch failures."""


class ToolNotFoundError(ToolError):
    """Raised when a proposed action names an unregistered capability."""

    def __init__(self, name: str) -> None:
        super().__init__(f"capability not found: {name}")
        self.name = name


class ConfigError(PromptLineError):
    """Raised when configuration cannot be read or written."""
