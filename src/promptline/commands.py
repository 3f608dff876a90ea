"""Slash commands available in interactive chat mode."""

from __future__ import annotations

from enum import Enum

from promptline import __version__
from promptline.config import AppConfig
from promptline.permissions import PermissionLevel, PermissionManager


class SlashCommand(str, Enum):
    HELP = "help"
    SETTINGS = "settings"
    CLEAR = "clear"
    STATUS = "status"
    MODEL = "model"
    PERMISSIONS = "permissions"
    QUIT = "quit"
    VERSION = "version"


_ALIASES: dict[str, SlashCommand] = {
    "/help": SlashCommand.HELP,
    "/h": SlashCommand.HELP,
    "/settings": SlashCommand.SETTINGS,
    "/config": SlashCommand.SETTINGS,
    "/clear": SlashCommand.CLEAR,
    "/new": SlashCommand.CLEAR,
    "/status": SlashCommand.STATUS,
    "/model": SlashCommand.MODEL,
    "/permissions": SlashCommand.PERMISSIONS,
    "/perms": SlashCommand.PERMISSIONS,
    "/quit": SlashCommand.QUIT,
    "/exit": SlashCommand.QUIT,
    "/q": SlashCommand.QUIT,
    "/version": SlashCommand.VERSION,
    "/v": SlashCommand.VERSION,
}

HELP_TEXT = """
PromptLine Commands

Available slash commands:
  /help         Show this help message
  /settings     Show permissions and preferences
  /clear        Start new session (clear history)
  /status       Show current configuration
  /model        Show model information
  /permissions  Show tool permissions
  /quit         Exit PromptLine
  /version      Show version info

Aliases:
  /h -> /help
  /q -> /quit
  /v -> /version
  /perms -> /permissions
"""


def parse_command(text: str) -> SlashCommand | None:
    """Return the slash command named by ``text``, if it is one."""
    trimmed = text.strip()
    if not trimmed.startswith("/"):
        return None
    return _ALIASES.get(trimmed.lower())


class CommandHandler:
    """Renders the response for each slash command."""

    def __init__(self, config: AppConfig, permissions: PermissionManager) -> None:
        self.config = config
        self.permissions = permissions

    def execute(self, command: SlashCommand) -> str:
        if command is SlashCommand.HELP:
            return HELP_TEXT
        if command is SlashCommand.SETTINGS:
            return self._settings()
        if command is SlashCommand.CLEAR:
            return "Session cleared."
        if command is SlashCommand.STATUS:
            return self._status()
        if command is SlashCommand.MODEL:
            return self._model_info()
        if command is SlashCommand.PERMISSIONS:
            return self._permissions_info()
        if command is SlashCommand.QUIT:
            return "Goodbye!"
        return f"PromptLine v{__version__}"

    def _settings(self) -> str:
        lines = ["", "PromptLine Settings", "", "Permissions:"]
        perms = self.permissions.all_permissions()
        if not perms:
            lines.append("  (No custom permissions set)")
        for tool, level in perms.items():
            lines.append(f"  - {tool}: {level.value}")
        lines.extend(
            [
                "",
                f"Default permission: {self.permissions.default_level.value}",
                f"Model: {self.config.model}",
                f"Approval required: {self.config.require_approval}",
                f"Context injection: {self.config.inject_file_content}",
                "",
                "Type /help for available commands",
            ]
        )
        return "\n".join(lines)

    def _status(self) -> str:
        return "\n".join(
            [
                "",
                "Status",
                "",
                f"Model: {self.config.model}",
                f"Max iterations: {self.config.max_iterations}",
                f"Version: {__version__}",
            ]
        )

    def _model_info(self) -> str:
        return "\n".join(
            [
                "",
                "Model Information",
                "",
                f"Endpoint: {self.config.api_url}",
                f"Model: {self.config.model}",
            ]
        )

    def _permissions_info(self) -> str:
        lines = ["", "Tool Permissions", ""]
        perms = self.permissions.all_permissions()
        if not perms:
            lines.append(
                f"No custom permissions set. All tools use '{self.permissions.default_level.value}'."
            )
        for tool, level in perms.items():
            if level is PermissionLevel.ALWAYS:
                icon = "✓"
            elif level is PermissionLevel.NEVER:
                icon = "✗"
            else:
                icon = "?"
            lines.append(f"  {icon} {tool}: {level.value}")
        return "\n".join(lines)
