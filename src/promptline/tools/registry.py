"""Name-keyed lookup and dispatch of capabilities."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from promptline.errors import ToolNotFoundError
from promptline.tools.base import Tool, ToolContext, ToolDefinition, ToolResult

if TYPE_CHECKING:
    from promptline.config import AppConfig

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Holds the capabilities an agent may invoke."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            LOGGER.warning("tool_registration_replaced", extra={"tool": tool.name})
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    def execute(
        self, name: str, args: object, ctx: ToolContext, config: AppConfig
    ) -> ToolResult:
        tool = self.get(name)
        result = tool.execute(args, ctx, config)
        LOGGER.info(
            "tool_executed",
            extra={
                "tool": name,
                "success": result.success,
                "output_length": len(result.output),
            },
        )
        return result

    def __len__(self) -> int:
        return len(self._tools)
