"""Command-line interface for promptline."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import cast

from promptline import __version__
from promptline.agent.loop import Agent
from promptline.agent.models import RunResult
from promptline.commands import CommandHandler, SlashCommand, parse_command
from promptline.config import USER_CONFIG_PATH, AppConfig
from promptline.errors import PromptLineError
from promptline.llm.client import LLMClient
from promptline.permissions import JsonPermissionStore, PermissionLevel, PermissionManager
from promptline.tools import default_registry

LOGGER = logging.getLogger(__name__)

SUBCOMMANDS = {"init", "doctor", "agent", "chat"}
_OPTIONS_WITH_VALUES = {"--config", "--cwd"}
DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
RULE = "=" * 60


class CLIArgs(argparse.Namespace):
    command: str | None
    task: str | None
    config_file: str | None
    working_directory: str | None
    verbose: bool
    auto_approve: bool
    inject_files: bool


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptline", description="Permission-gated AI terminal assistant"
    )
    parser.add_argument("--config", dest="config_file", help="Path to a JSON config file.")
    parser.add_argument(
        "--cwd",
        dest="working_directory",
        help=(
            "Override the working directory for tool execution. "
            "Takes precedence over config/env cwd values."
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "-y",
        "--auto-approve",
        action="store_true",
        help="Run tools without interactive approval (safety rules still apply).",
    )
    parser.add_argument(
        "--inject-files",
        action="store_true",
        help="Inject the contents of files the model mentions into the conversation.",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init", help="Write a default configuration file")
    subparsers.add_parser("doctor", help="Check the local setup")
    agent_parser = subparsers.add_parser("agent", help="Run the agent on a single task")
    agent_parser.add_argument("task", help="Task for the agent")
    subparsers.add_parser("chat", help="Interactive session with slash commands")
    return parser


def main(argv: list[str] | None = None) -> int:
    raw_args = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = cast(CLIArgs, parser.parse_args(_route_bare_task(raw_args)))
    configure_logging(verbose=args.verbose)

    config = AppConfig.from_env(args.config_file)
    if args.auto_approve:
        config.require_approval = False
        LOGGER.warning("auto_approve_enabled")
        print("Warning: auto-approve enabled; tools run without confirmation.")
    if args.inject_files:
        config.inject_file_content = True

    configured_working_directory = (
        args.working_directory if args.working_directory is not None else config.working_directory
    )
    if configured_working_directory is not None:
        resolved_working_directory = Path(configured_working_directory).expanduser().resolve()
        if not resolved_working_directory.is_dir():
            print(f"Invalid configured cwd directory: {configured_working_directory}")
            return 1
        config.working_directory = str(resolved_working_directory)

    if args.command == "init":
        return handle_init(args.config_file)
    if args.command == "doctor":
        return handle_doctor(config)
    if args.command is None:
        print(f"PromptLine v{__version__}")
        print("\nUse --help for usage information")
        return 0

    try:
        if args.command == "chat":
            return handle_chat(config)
        return handle_agent(args.task or "", config)
    except PromptLineError as exc:
        print(f"Error: {exc}")
        return 1


def configure_logging(*, verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.getenv("PROMPTLINE_LOG_LEVEL", "WARNING")
    level = logging.getLevelName(level_name.strip().upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_agent(config: AppConfig) -> Agent:
    client = LLMClient(
        api_key=config.api_key,
        model=config.model,
        api_url=config.api_url,
        timeout=config.request_timeout,
    )
    store = JsonPermissionStore(config.permissions_file) if config.permissions_file else None
    permissions = PermissionManager.from_config(
        config, store=store, prompt=_prompt_permission
    )
    return Agent(model=client, tools=default_registry(), config=config, permissions=permissions)


def handle_init(config_file: str | None) -> int:
    print("Initializing PromptLine...\n")
    if os.getenv("OPENAI_API_KEY") or os.getenv("PROMPTLINE_API_KEY"):
        print("✓ API key found in environment")
    else:
        print("OPENAI_API_KEY environment variable not set")
        print("To use OpenAI models, set your API key:")
        print("  export OPENAI_API_KEY='your-api-key-here'")

    target = Path(config_file).expanduser() if config_file else USER_CONFIG_PATH.expanduser()
    if target.exists():
        print(f"\nConfiguration already exists at: {target}")
        return 0

    config = AppConfig(permissions_file=str(target.with_name("permissions.json")))
    try:
        config.save(target)
    except PromptLineError as exc:
        print(f"Error: {exc}")
        return 1
    print(f"\n✓ Configuration saved to: {target}")
    print("\nPromptLine is ready! Try:")
    print('  promptline "list all python files"')
    return 0


def handle_doctor(config: AppConfig) -> int:
    print("PromptLine Health Check\n")
    print(f"✓ Version: {__version__}")
    healthy = True
    if config.api_key:
        print("✓ API key configured")
    elif config.api_url == DEFAULT_API_URL:
        print("✗ API key not found")
        print("  Set OPENAI_API_KEY or PROMPTLINE_API_KEY")
        healthy = False
    else:
        print("- No API key configured (custom endpoint)")

    print("✓ Configuration loaded")
    print(f"  Model: {config.model}")
    print(f"  Endpoint: {config.api_url}")
    print(f"  Max iterations: {config.max_iterations}")
    print(f"  Approval required: {config.require_approval}")
    print(f"  Context injection: {config.inject_file_content}")

    print("\n✓ All checks passed!" if healthy else "\nSome checks failed.")
    return 0 if healthy else 1


def handle_agent(task: str, config: AppConfig) -> int:
    if not task.strip():
        print("No task provided.")
        return 1
    if not config.api_key and config.api_url == DEFAULT_API_URL:
        print("Error: OPENAI_API_KEY not set. Run 'promptline init' for setup.")
        return 1

    agent = build_agent(config)
    print(f"Task: {task}\n")
    result = agent.run(task)
    print(render_result(result))
    return 0 if result.success else 1


def handle_chat(config: AppConfig) -> int:
    agent = build_agent(config)
    handler = CommandHandler(config, agent.permissions)
    print("Interactive chat mode. Type /help for commands.\n")
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue

        command = parse_command(line)
        if command is not None:
            print(handler.execute(command))
            if command is SlashCommand.QUIT:
                break
            if command is SlashCommand.CLEAR:
                agent.reset()
            continue
        if line.startswith("/"):
            print("Unknown command. Type /help for available commands.")
            continue

        try:
            result = agent.run(line)
        except PromptLineError as exc:
            print(f"Error: {exc}")
            continue
        print(f"\n{result.output}\n")
    return 0


def render_result(result: RunResult) -> str:
    status = "✓ Task completed successfully" if result.success else "✗ Task failed"
    return "\n".join(
        [
            RULE,
            status,
            f"Iterations: {result.iterations}",
            f"Tools used: {', '.join(result.tool_calls) or '(none)'}",
            RULE,
            "",
            "Result:",
            result.output,
        ]
    )


def _prompt_permission(tool_name: str, rendered_args: str) -> PermissionLevel | None:
    print("\n=== TOOL APPROVAL ===")
    print(f"Tool: {tool_name}")
    print(f"Args: {rendered_args}")
    print("=====================")
    choice = input("Execute? [y]es once / [a]lways / [n]o / [N]ever: ").strip()
    if choice == "N" or choice.lower() == "never":
        return PermissionLevel.NEVER
    normalized = choice.lower()
    if normalized in {"a", "always"}:
        return PermissionLevel.ALWAYS
    if normalized in {"y", "yes"}:
        return PermissionLevel.ONCE
    return None


def _route_bare_task(raw_args: list[str]) -> list[str]:
    """Treat ``promptline "task"`` as ``promptline agent "task"``."""
    index = 0
    while index < len(raw_args):
        token = raw_args[index]
        if token in _OPTIONS_WITH_VALUES:
            index += 2
            continue
        if token.startswith("-"):
            index += 1
            continue
        if token in SUBCOMMANDS:
            return raw_args
        return [*raw_args[:index], "agent", *raw_args[index:]]
    return raw_args


if __name__ == "__main__":
    raise SystemExit(main())
