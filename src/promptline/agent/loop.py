"""Reason-act-observe loop driving one task to completion."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from promptline.agent.history import ConversationHistory
from promptline.agent.models import Message, ModelResponse, ProposedAction, RunResult
from promptline.agent.parsing import extract_action, find_path_mentions, is_complete
from promptline.config import AppConfig
from promptline.context import ContextProvider
from promptline.errors import MaxIterationsExceeded
from promptline.permissions import PermissionLevel, PermissionManager
from promptline.prompt.builder import PromptBuilder
from promptline.prompt.templates import TemplateStore
from promptline.safety import SafetyValidator
from promptline.tools.base import ToolContext, ToolResult
from promptline.tools.file_ops import FileReadTool
from promptline.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "\n... (content truncated due to length)"
USER_DENIED_OUTPUT = "User denied tool execution."
CANCELLED_OUTPUT = "Run cancelled."

FileReader = Callable[[str, ToolContext], ToolResult]


class ChatModel(Protocol):
    def chat(self, messages: Sequence[Message]) -> ModelResponse: ...


def file_header(path: str) -> str:
    """Header that tags an injected file; duplicate checks match on it."""
    return f"File content of {path}:\n```"


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    """Trim ``text`` to roughly ``max_tokens`` tokens at four characters each."""
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


class Agent:
    """Runs the model-propose/gate/execute/observe cycle until completion.

    The agent owns its conversation history. The permission manager may be
    shared across runs of the same agent but not between agents running at
    the same time.
    """

    def __init__(
        self,
        *,
        model: ChatModel,
        tools: ToolRegistry,
        config: AppConfig,
        permissions: PermissionManager | None = None,
        validator: SafetyValidator | None = None,
        context: ContextProvider | None = None,
        templates: TemplateStore | None = None,
        prompt_builder: PromptBuilder | None = None,
        history: ConversationHistory | None = None,
        file_reader: FileReader | None = None,
    ) -> None:
        self.model = model
        self.tools = tools
        self.config = config
        self.permissions = permissions or PermissionManager.from_config(config)
        self.validator = validator or SafetyValidator.from_config(config)
        self.context = context or ContextProvider(config.working_directory)
        self.prompt_builder = prompt_builder or PromptBuilder(
            tools=tools,
            templates=templates or TemplateStore(config.templates_dir),
            context=self.context,
            template_name=config.default_prompt_template,
            working_directory=config.working_directory,
        )
        self.history = history if history is not None else ConversationHistory()
        self.file_reader = file_reader or self._read_file
        self.iteration_count = 0
        self._cancel_requested = False

    def run(self, task: str) -> RunResult:
        LOGGER.info("agent_run_started", extra={"task": task})
        self.iteration_count = 0
        self._cancel_requested = False

        self.history.append(Message.system(self.prompt_builder.build()))
        self.history.append(Message.user(task))

        tool_calls: list[str] = []
        while True:
            if self._cancel_requested:
                self._append_log(task, event="cancelled")
                return self._result(False, CANCELLED_OUTPUT, tool_calls)

            self.iteration_count += 1
            if self.iteration_count > self.config.max_iterations:
                LOGGER.error(
                    "iteration_budget_exceeded",
                    extra={"max_iterations": self.config.max_iterations},
                )
                self._append_log(task, event="iteration_budget_exceeded")
                raise MaxIterationsExceeded(self.config.max_iterations)

            LOGGER.debug("agent_iteration", extra={"iteration": self.iteration_count})
            response = self.model.chat(self.history.messages)

            if self.config.inject_file_content:
                self._inject_file_content(response.content)

            if is_complete(response.content):
                self._append_log(task, event="completed")
                return self._result(True, response.content, tool_calls)

            action = extract_action(response.content)
            if action is None:
                self.history.append(Message.assistant(response.content))
                self._append_log(task, event="no_action")
                continue

            denial = self._execute_action(task, action, tool_calls)
            if denial is not None:
                return denial

    def cancel(self) -> None:
        """Stop the current run at the next iteration boundary."""
        self._cancel_requested = True

    def reset(self) -> None:
        """Clear the conversation between runs."""
        self.history.clear()
        self.iteration_count = 0

    def _execute_action(
        self, task: str, action: ProposedAction, tool_calls: list[str]
    ) -> RunResult | None:
        # Unknown names raise before the user is asked about them.
        self.tools.get(action.name)

        level = self.permissions.check(action.name)
        if level is PermissionLevel.NEVER:
            reason = f"Permission denied for tool '{action.name}'."
            return self._deny(task, action, reason, tool_calls)

        validation = self.validator.validate(action.command_string())
        if validation.is_denied:
            return self._deny(
                task, action, f"Blocked by safety validator: {validation.reason}", tool_calls
            )
        if validation.is_allowed:
            LOGGER.debug("command_allowed", extra={"tool": action.name})

        if level is PermissionLevel.ASK and (
            self.config.require_approval or validation.needs_approval
        ):
            if not self.permissions.escalate(action.name, action.args):
                return self._deny(task, action, USER_DENIED_OUTPUT, tool_calls)

        ctx = ToolContext(
            working_directory=self.config.working_directory,
            git_branch=self.context.git_branch(),
        )
        LOGGER.info("tool_execution_started", extra={"tool": action.name})
        result = self.tools.execute(action.name, action.args, ctx, self.config)
        tool_calls.append(action.name)
        self.permissions.consume(action.name)

        observation = f"Tool '{action.name}' result: {result.observation_text()}"
        self.history.append(Message.assistant(observation))
        self._append_log(
            task,
            event="action_executed",
            tool=action.name,
            success=result.success,
            detail=result.error,
        )
        return None

    def _deny(
        self, task: str, action: ProposedAction, reason: str, tool_calls: list[str]
    ) -> RunResult:
        LOGGER.warning("action_denied", extra={"tool": action.name, "reason": reason})
        self._append_log(task, event="action_denied", tool=action.name, detail=reason)
        return self._result(False, reason, tool_calls)

    def _result(self, success: bool, output: str, tool_calls: list[str]) -> RunResult:
        return RunResult(
            success=success,
            output=output,
            iterations=self.iteration_count,
            tool_calls=list(tool_calls),
        )

    def _inject_file_content(self, content: str) -> None:
        ctx = ToolContext(working_directory=self.config.working_directory)
        for path in find_path_mentions(content):
            header = file_header(path)
            if self.history.contains(header):
                continue

            try:
                result = self.file_reader(path, ctx)
            except OSError as exc:
                LOGGER.warning("file_injection_failed", extra={"path": path, "error": str(exc)})
                continue
            if not result.success:
                LOGGER.warning("file_injection_failed", extra={"path": path, "error": result.error})
                continue

            injected = truncate_to_tokens(result.output, self.config.max_inject_tokens)
            if len(injected) != len(result.output):
                LOGGER.warning(
                    "file_injection_truncated",
                    extra={"path": path, "max_tokens": self.config.max_inject_tokens},
                )
            LOGGER.info("file_injected", extra={"path": path})
            self.history.append(Message.system(f"{header}\n{injected}\n```"))

    def _read_file(self, path: str, ctx: ToolContext) -> ToolResult:
        return FileReadTool().execute({"path": path}, ctx, self.config)

    def _append_log(
        self,
        task: str,
        *,
        event: str,
        tool: str | None = None,
        success: bool | None = None,
        detail: str | None = None,
    ) -> None:
        if not self.config.log_dir:
            return
        log_dir = Path(self.config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        day_file = log_dir / f"session-{datetime.now(timezone.utc).date().isoformat()}.log"
        entry = {
            "log_version": 1,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "task": task,
            "model": getattr(self.model, "model", None),
            "iteration": self.iteration_count,
            "event": event,
            "tool": tool,
            "success": success,
            "detail": detail,
        }
        with day_file.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry) + "\n")
