import json

import pytest

from promptline import config as config_module
from promptline.config import AppConfig
from promptline.errors import ConfigError


def _clear_env(monkeypatch, tmp_path) -> None:
    for name in (
        "PROMPTLINE_CONFIG_FILE",
        "PROMPTLINE_API_KEY",
        "OPENAI_API_KEY",
        "PROMPTLINE_MODEL",
        "PROMPTLINE_MAX_ITERATIONS",
        "PROMPTLINE_REQUIRE_APPROVAL",
        "PROMPTLINE_DEFAULT_PERMISSION",
        "PROMPTLINE_INJECT_FILE_CONTENT",
        "PROMPTLINE_MAX_INJECT_TOKENS",
        "PROMPTLINE_LOG_DIR",
        "PROMPTLINE_SHELL",
        "PROMPTLINE_CWD",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "USER_CONFIG_PATH", tmp_path / "missing-user-config.json")


def test_defaults_without_any_config(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_env()

    assert config.api_key is None
    assert config.model == "gpt-4o-mini"
    assert config.max_iterations == 20
    assert config.require_approval is True
    assert config.default_permission == "ask"
    assert config.inject_file_content is False
    assert config.max_inject_tokens == 1000
    assert config.log_dir == "logs"


def test_loads_nested_sections_from_file(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    config_path = tmp_path / "promptline.config.json"
    config_path.write_text(
        json.dumps(
            {
                "openai": {"api_key": "test-key", "api_url": "http://localhost:8080/v1/chat"},
                "model": "local-model",
                "safety": {
                    "max_iterations": 7,
                    "require_approval": False,
                    "blocked_patterns": ["terraform destroy"],
                    "approval_patterns": ["kubectl delete", 5],
                },
                "default_permission": "deny",
                "tool_permissions": {"file_read": "allow", "shell": "bogus"},
                "inject_file_content": True,
                "max_inject_tokens": 250,
                "log_dir": "test-logs",
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(config_path))

    config = AppConfig.from_env()

    assert config.api_key == "test-key"
    assert config.api_url == "http://localhost:8080/v1/chat"
    assert config.model == "local-model"
    assert config.max_iterations == 7
    assert config.require_approval is False
    assert config.blocked_patterns == ["terraform destroy"]
    assert config.approval_patterns == ["kubectl delete"]
    assert config.default_permission == "never"
    assert config.tool_permissions == {"file_read": "always"}
    assert config.inject_file_content is True
    assert config.max_inject_tokens == 250
    assert config.log_dir == "test-logs"


def test_env_overrides_file_values(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    config_path = tmp_path / "promptline.config.json"
    config_path.write_text(
        json.dumps({"model": "file-model", "safety": {"max_iterations": 4}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("PROMPTLINE_MODEL", "env-model")
    monkeypatch.setenv("PROMPTLINE_MAX_ITERATIONS", "9")
    monkeypatch.setenv("PROMPTLINE_REQUIRE_APPROVAL", "no")
    monkeypatch.setenv("PROMPTLINE_LOG_DIR", "")

    config = AppConfig.from_env()

    assert config.model == "env-model"
    assert config.max_iterations == 9
    assert config.require_approval is False
    assert config.log_dir is None


def test_invalid_numbers_fall_back_to_defaults(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(tmp_path / "absent.json"))
    monkeypatch.setenv("PROMPTLINE_MAX_ITERATIONS", "zero")
    monkeypatch.setenv("PROMPTLINE_MAX_INJECT_TOKENS", "-3")

    config = AppConfig.from_env()

    assert config.max_iterations == 20
    assert config.max_inject_tokens == 1000


def test_openai_api_key_env_is_accepted(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(tmp_path / "absent.json"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

    assert AppConfig.from_env().api_key == "sk-env"


def test_runtime_options_load_from_file_and_env(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    config_path = tmp_path / "promptline.config.json"
    config_path.write_text(
        json.dumps({"shell": "cmd", "cwd": "./test-dir"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(config_path))
    monkeypatch.setattr(config_module.os, "name", "posix")

    file_config = AppConfig.from_env()
    assert file_config.shell == "bash"
    assert file_config.working_directory == "./test-dir"

    monkeypatch.setenv("PROMPTLINE_SHELL", "pwsh")
    monkeypatch.setenv("PROMPTLINE_CWD", "~/project")

    env_config = AppConfig.from_env()
    assert env_config.shell == "powershell"
    assert env_config.working_directory == "~/project"


def test_local_config_auto_loaded_without_env_override(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    (tmp_path / "promptline.config.json").write_text(
        json.dumps(
            {
                "openai": {"api_url": "https://example.invalid/base", "api_key": "base-key"},
                "safety": {"max_iterations": 20},
            }
        ),
        encoding="utf-8",
    )
    (tmp_path / "promptline.config.local.json").write_text(
        json.dumps({"openai": {"api_key": "local-key"}, "safety": {"max_iterations": 7}}),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_env()

    assert config.api_key == "local-key"
    assert config.api_url == "https://example.invalid/base"
    assert config.max_iterations == 7


def test_explicit_config_file_disables_local_auto_merge(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    explicit_path = tmp_path / "custom.config.json"
    explicit_path.write_text(json.dumps({"safety": {"max_iterations": 3}}), encoding="utf-8")
    (tmp_path / "promptline.config.local.json").write_text(
        json.dumps({"safety": {"max_iterations": 99}}),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_env(str(explicit_path))

    assert config.max_iterations == 3


def test_unreadable_config_file_is_ignored(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(broken))

    config = AppConfig.from_env()

    assert config.model == "gpt-4o-mini"


def test_save_round_trips_through_from_env(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    original = AppConfig(
        model="saved-model",
        max_iterations=12,
        require_approval=False,
        tool_permissions={"shell": "never"},
        inject_file_content=True,
        log_dir=None,
    )
    target = original.save(tmp_path / "nested" / "config.json")

    loaded = AppConfig.from_env(str(target))

    assert loaded.model == "saved-model"
    assert loaded.max_iterations == 12
    assert loaded.require_approval is False
    assert loaded.tool_permissions == {"shell": "never"}
    assert loaded.inject_file_content is True
    assert loaded.log_dir is None


def test_save_reports_unwritable_target(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(ConfigError, match="Could not write configuration"):
        AppConfig().save(blocker / "config.json")


def test_string_booleans_in_file_are_parsed(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    config_path = tmp_path / "promptline.config.json"
    config_path.write_text(
        json.dumps({"safety": {"require_approval": "false"}, "inject_file_content": "yes"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(config_path))

    config = AppConfig.from_env()

    assert config.require_approval is False
    assert config.inject_file_content is True


def test_unrecognized_file_booleans_fall_back_to_defaults(tmp_path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    config_path = tmp_path / "promptline.config.json"
    config_path.write_text(
        json.dumps({"safety": {"require_approval": 0}, "inject_file_content": "maybe"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("PROMPTLINE_CONFIG_FILE", str(config_path))

    config = AppConfig.from_env()

    assert config.require_approval is True
    assert config.inject_file_content is False
