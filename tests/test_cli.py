from __future__ import annotations

import json
from pathlib import Path

import pytest

from promptline import cli
from promptline.agent.models import RunResult
from promptline.config import AppConfig
from promptline.errors import MaxIterationsExceeded
from promptline.permissions import PermissionLevel, PermissionManager


def _fake_config() -> AppConfig:
    return AppConfig(api_key="sk-test", model="gpt-4o-mini", log_dir=None)


def _patch_config(monkeypatch: pytest.MonkeyPatch, factory) -> None:
    monkeypatch.setattr(
        cli,
        "AppConfig",
        type("FakeConfig", (), {"from_env": staticmethod(lambda _config_file=None: factory())}),
    )


class FakeAgent:
    def __init__(self, config: AppConfig, result: RunResult | Exception) -> None:
        self.config = config
        self.result = result
        self.permissions = PermissionManager()
        self.tasks: list[str] = []
        self.resets = 0

    def run(self, task: str) -> RunResult:
        self.tasks.append(task)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def reset(self) -> None:
        self.resets += 1


def _patch_agent(
    monkeypatch: pytest.MonkeyPatch, result: RunResult | Exception
) -> dict[str, FakeAgent]:
    created: dict[str, FakeAgent] = {}

    def fake_build_agent(config: AppConfig) -> FakeAgent:
        created["agent"] = FakeAgent(config, result)
        return created["agent"]

    monkeypatch.setattr(cli, "build_agent", fake_build_agent)
    return created


def test_parser_defaults() -> None:
    args = cli.build_parser().parse_args([])

    assert args.command is None
    assert args.working_directory is None
    assert args.auto_approve is False


def test_parser_accepts_cwd_override() -> None:
    args = cli.build_parser().parse_args(["--cwd", "./sandbox", "agent", "list files"])

    assert args.working_directory == "./sandbox"
    assert args.command == "agent"
    assert args.task == "list files"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (["list files"], ["agent", "list files"]),
        (["--cwd", "/tmp", "-y", "list"], ["--cwd", "/tmp", "-y", "agent", "list"]),
        (["chat"], ["chat"]),
        (["-v", "doctor"], ["-v", "doctor"]),
        ([], []),
    ],
)
def test_bare_task_routes_to_agent(raw: list[str], expected: list[str]) -> None:
    assert cli._route_bare_task(raw) == expected


def test_main_rejects_invalid_cwd_from_config(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr("sys.argv", ["promptline", "list files"])

    def fake_config_with_missing_cwd() -> AppConfig:
        config = _fake_config()
        config.working_directory = "./definitely-missing-dir"
        return config

    _patch_config(monkeypatch, fake_config_with_missing_cwd)

    assert cli.main() == 1
    assert "Invalid configured cwd directory" in capsys.readouterr().out


def test_main_runs_agent_with_resolved_cwd(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr("sys.argv", ["promptline", "list files"])

    def fake_config_with_cwd() -> AppConfig:
        config = _fake_config()
        config.working_directory = str(tmp_path)
        return config

    _patch_config(monkeypatch, fake_config_with_cwd)
    created = _patch_agent(
        monkeypatch, RunResult(success=True, output="FINISH", iterations=2, tool_calls=["file_list"])
    )

    assert cli.main() == 0
    agent = created["agent"]
    assert agent.config.working_directory == str(tmp_path.resolve())
    assert agent.tasks == ["list files"]
    out = capsys.readouterr().out
    assert "Task: list files" in out
    assert "✓ Task completed successfully" in out
    assert "Tools used: file_list" in out


def test_main_cwd_cli_override_takes_precedence(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    override_dir = tmp_path / "override"
    override_dir.mkdir()

    def fake_config_with_cwd() -> AppConfig:
        config = _fake_config()
        config.working_directory = "./ignored-from-config"
        return config

    _patch_config(monkeypatch, fake_config_with_cwd)
    created = _patch_agent(monkeypatch, RunResult(success=True, output="", iterations=1))

    assert cli.main(["--cwd", str(override_dir), "list files"]) == 0
    assert created["agent"].config.working_directory == str(override_dir.resolve())


def test_main_returns_failure_for_denied_run(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_config(monkeypatch, _fake_config)
    _patch_agent(
        monkeypatch,
        RunResult(success=False, output="User denied tool execution.", iterations=1),
    )

    assert cli.main(["agent", "delete things"]) == 1


def test_main_reports_fatal_errors(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _patch_config(monkeypatch, _fake_config)
    _patch_agent(monkeypatch, MaxIterationsExceeded(3))

    assert cli.main(["loop forever"]) == 1
    assert "Error: iteration budget exceeded (3 iterations)" in capsys.readouterr().out


def test_main_requires_api_key_for_default_endpoint(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _patch_config(monkeypatch, lambda: AppConfig(api_key=None, log_dir=None))
    created = _patch_agent(monkeypatch, RunResult(success=True, output="", iterations=1))

    assert cli.main(["list files"]) == 1
    assert "OPENAI_API_KEY not set" in capsys.readouterr().out
    assert created == {}


def test_auto_approve_and_inject_flags_update_config(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _patch_config(monkeypatch, _fake_config)
    created = _patch_agent(monkeypatch, RunResult(success=True, output="", iterations=1))

    assert cli.main(["-y", "--inject-files", "tidy up"]) == 0
    config = created["agent"].config
    assert config.require_approval is False
    assert config.inject_file_content is True
    assert "auto-approve enabled" in capsys.readouterr().out


@pytest.mark.parametrize(
    ("reply", "expected"),
    [
        ("y", PermissionLevel.ONCE),
        ("yes", PermissionLevel.ONCE),
        ("a", PermissionLevel.ALWAYS),
        ("N", PermissionLevel.NEVER),
        ("never", PermissionLevel.NEVER),
        ("n", None),
        ("", None),
    ],
)
def test_prompt_permission_maps_replies(
    monkeypatch: pytest.MonkeyPatch, reply: str, expected: PermissionLevel | None
) -> None:
    monkeypatch.setattr("builtins.input", lambda _prompt="": reply)

    assert cli._prompt_permission("shell", '{"command": "ls"}') is expected


def test_render_result_without_tools() -> None:
    rendered = cli.render_result(RunResult(success=False, output="nope", iterations=4))

    assert "✗ Task failed" in rendered
    assert "Iterations: 4" in rendered
    assert "Tools used: (none)" in rendered
    assert rendered.endswith("Result:\nnope")


def test_chat_handles_slash_commands_and_tasks(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _patch_config(monkeypatch, _fake_config)
    created = _patch_agent(monkeypatch, RunResult(success=True, output="all done", iterations=1))
    answers = iter(["/help", "", "summarize repo", "/clear", "/bogus", "/quit", "never read"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(answers))

    assert cli.main(["chat"]) == 0

    agent = created["agent"]
    assert agent.tasks == ["summarize repo"]
    assert agent.resets == 1
    out = capsys.readouterr().out
    assert "PromptLine Commands" in out
    assert "all done" in out
    assert "Session cleared." in out
    assert "Unknown command" in out
    assert "Goodbye!" in out


def test_chat_exits_on_eof(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_config(monkeypatch, _fake_config)
    _patch_agent(monkeypatch, RunResult(success=True, output="", iterations=1))

    def raise_eof(_prompt: str = "") -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", raise_eof)

    assert cli.main(["chat"]) == 0


def test_init_writes_config_once(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.delenv("PROMPTLINE_CWD", raising=False)
    target = tmp_path / "config.json"

    assert cli.main(["--config", str(target), "init"]) == 0
    saved = json.loads(target.read_text(encoding="utf-8"))
    assert saved["permissions_file"] == str(tmp_path / "permissions.json")
    assert saved["safety"]["max_iterations"] == 20

    target.write_text("{}", encoding="utf-8")
    assert cli.main(["--config", str(target), "init"]) == 0
    assert target.read_text(encoding="utf-8") == "{}"
    assert "Configuration already exists" in capsys.readouterr().out


def test_doctor_flags_missing_key(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _patch_config(monkeypatch, lambda: AppConfig(api_key=None, log_dir=None))

    assert cli.main(["doctor"]) == 1
    assert "API key not found" in capsys.readouterr().out


def test_doctor_accepts_custom_endpoint_without_key(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_config(
        monkeypatch,
        lambda: AppConfig(api_key=None, api_url="http://localhost:11434/v1/chat/completions"),
    )

    assert cli.main(["doctor"]) == 0
