"""System prompt assembly."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from promptline.prompt.templates import DEFAULT_SYSTEM_PROMPT, TemplateStore
from promptline.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

PROTOCOL_INSTRUCTIONS = """To use a tool, output JSON in this format:
{"tool": "tool_name", "args": {"arg": "value"}}

When you've completed the task, respond with: FINISH

Always explain your reasoning before taking an action."""

NO_GIT_LINE = "You are not in a git repository or branch could not be determined."


class ProjectContextSource(Protocol):
    def load_project_context(self) -> str | None: ...

    def detect_project_type(self) -> str: ...

    def git_branch(self) -> str | None: ...


class PromptBuilder:
    """Builds the system prompt from a template, ambient context and tool catalogue."""

    def __init__(
        self,
        *,
        tools: ToolRegistry,
        templates: TemplateStore,
        context: ProjectContextSource,
        template_name: str | None = None,
        working_directory: str | None = None,
    ) -> None:
        self.tools = tools
        self.templates = templates
        self.context = context
        self.template_name = template_name
        self.working_directory = working_directory

    def build(self) -> str:
        sections: list[str] = []
        project_context = self._project_context()
        if project_context:
            sections.append(f"Project Context:\n```\n{project_context}\n```\n\n")

        sections.append(
            f"{self._base_prompt()}\n\n"
            f"Current working directory: {self._current_directory()}\n"
            f"Current project type: {self._project_type()}\n"
            f"{self._git_line()}\n\n"
            f"You can use the following tools:\n{self._tool_catalogue()}\n\n"
            f"{PROTOCOL_INSTRUCTIONS}"
        )
        return "".join(sections)

    def _base_prompt(self) -> str:
        if not self.template_name:
            return DEFAULT_SYSTEM_PROMPT
        template = self.templates.get(self.template_name)
        if template is None:
            LOGGER.warning(
                "prompt_template_not_found", extra={"template": self.template_name}
            )
            return DEFAULT_SYSTEM_PROMPT
        return template.render()

    def _tool_catalogue(self) -> str:
        return "\n".join(
            f"- {definition.name}: {definition.description}"
            for definition in self.tools.definitions()
        )

    def _current_directory(self) -> str:
        if self.working_directory:
            return self.working_directory
        try:
            return str(Path.cwd())
        except OSError:
            return "unknown"

    def _git_line(self) -> str:
        try:
            branch = self.context.git_branch()
        except OSError as exc:
            LOGGER.warning("git_branch_detection_failed", extra={"error": str(exc)})
            branch = None
        if branch:
            return f"You are currently on git branch: {branch}"
        return NO_GIT_LINE

    def _project_context(self) -> str | None:
        try:
            return self.context.load_project_context()
        except (OSError, ValueError) as exc:
            LOGGER.warning("project_context_load_failed", extra={"error": str(exc)})
            return None

    def _project_type(self) -> str:
        try:
            return self.context.detect_project_type()
        except OSError as exc:
            LOGGER.warning("project_type_detection_failed", extra={"error": str(exc)})
            return "Generic"
