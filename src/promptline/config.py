"""Environment-backed application configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

from promptline.errors import ConfigError

LOGGER = logging.getLogger(__name__)

PERMISSION_VALUES = {"always", "once", "never", "ask"}
_PERMISSION_ALIASES = {"allow": "always", "deny": "never"}

USER_CONFIG_PATH = Path("~/.config/promptline/config.json")
SHARED_CONFIG_FILE = "promptline.config.json"
LOCAL_CONFIG_FILE = "promptline.config.local.json"


def _to_bool(value: object, default: bool = False) -> bool:
    """Convert common env var or config file truthy/falsy values into booleans."""
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(slots=True)
class AppConfig:
    """Runtime settings loaded from environment variables and JSON files."""

    api_key: str | None = None
    model: str = "gpt-4o-mini"
    api_url: str = "https://api.openai.com/v1/chat/completions"
    request_timeout: float = 60.0
    max_iterations: int = 20
    require_approval: bool = True
    default_permission: str = "ask"
    tool_permissions: dict[str, str] = field(default_factory=dict)
    default_prompt_template: str | None = None
    templates_dir: str | None = None
    permissions_file: str | None = None
    inject_file_content: bool = False
    max_inject_tokens: int = 1000
    log_dir: str | None = "logs"
    shell: str = "bash"
    command_timeout: float = 120.0
    blocked_patterns: list[str] = field(default_factory=list)
    approval_patterns: list[str] = field(default_factory=list)
    working_directory: str | None = None

    @classmethod
    def from_env(cls, config_file: str | None = None) -> AppConfig:
        file_config = _load_preferred_file_config(config_file)
        openai_from_file = file_config.get("openai")
        openai_config = openai_from_file if isinstance(openai_from_file, dict) else {}
        safety_from_file = file_config.get("safety")
        safety_config = safety_from_file if isinstance(safety_from_file, dict) else {}

        log_dir_env = os.getenv("PROMPTLINE_LOG_DIR")
        if log_dir_env is not None:
            log_dir = log_dir_env.strip() or None
        elif "log_dir" in file_config:
            log_dir = _to_optional_string(file_config.get("log_dir"))
        else:
            log_dir = "logs"

        return cls(
            api_key=(
                os.getenv("PROMPTLINE_API_KEY")
                or os.getenv("OPENAI_API_KEY")
                or _to_optional_string(openai_config.get("api_key"))
                or _to_optional_string(file_config.get("api_key"))
            ),
            model=(
                os.getenv("PROMPTLINE_MODEL")
                or _to_optional_string(file_config.get("model"))
                or "gpt-4o-mini"
            ),
            api_url=(
                os.getenv("PROMPTLINE_API_URL")
                or _to_optional_string(openai_config.get("api_url"))
                or "https://api.openai.com/v1/chat/completions"
            ),
            request_timeout=_to_positive_float(
                os.getenv("PROMPTLINE_REQUEST_TIMEOUT") or file_config.get("request_timeout"),
                default=60.0,
            ),
            max_iterations=_to_positive_int(
                os.getenv("PROMPTLINE_MAX_ITERATIONS")
                or safety_config.get("max_iterations")
                or file_config.get("max_iterations"),
                default=20,
            ),
            require_approval=_to_bool(
                os.getenv("PROMPTLINE_REQUIRE_APPROVAL"),
                default=_to_bool(safety_config.get("require_approval"), default=True),
            ),
            default_permission=_to_permission(
                os.getenv("PROMPTLINE_DEFAULT_PERMISSION")
                or _to_optional_string(file_config.get("default_permission")),
                default="ask",
            ),
            tool_permissions=_to_permission_map(file_config.get("tool_permissions")),
            default_prompt_template=(
                os.getenv("PROMPTLINE_PROMPT_TEMPLATE")
                or _to_optional_string(file_config.get("default_prompt_template"))
            ),
            templates_dir=(
                os.getenv("PROMPTLINE_TEMPLATES_DIR")
                or _to_optional_string(file_config.get("templates_dir"))
            ),
            permissions_file=(
                os.getenv("PROMPTLINE_PERMISSIONS_FILE")
                or _to_optional_string(file_config.get("permissions_file"))
            ),
            inject_file_content=_to_bool(
                os.getenv("PROMPTLINE_INJECT_FILE_CONTENT"),
                default=_to_bool(file_config.get("inject_file_content")),
            ),
            max_inject_tokens=_to_positive_int(
                os.getenv("PROMPTLINE_MAX_INJECT_TOKENS") or file_config.get("max_inject_tokens"),
                default=1000,
            ),
            log_dir=log_dir,
            shell=_resolve_shell(
                os.getenv("PROMPTLINE_SHELL") or _to_optional_string(file_config.get("shell"))
            ),
            command_timeout=_to_positive_float(
                os.getenv("PROMPTLINE_COMMAND_TIMEOUT") or file_config.get("command_timeout"),
                default=120.0,
            ),
            blocked_patterns=_to_string_list(safety_config.get("blocked_patterns")),
            approval_patterns=_to_string_list(safety_config.get("approval_patterns")),
            working_directory=(
                os.getenv("PROMPTLINE_CWD") or _to_optional_string(file_config.get("cwd"))
            ),
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize into the JSON layout understood by ``from_env``."""
        raw = asdict(self)
        return {
            "openai": {"api_url": raw["api_url"]},
            "model": raw["model"],
            "request_timeout": raw["request_timeout"],
            "safety": {
                "max_iterations": raw["max_iterations"],
                "require_approval": raw["require_approval"],
                "blocked_patterns": raw["blocked_patterns"],
                "approval_patterns": raw["approval_patterns"],
            },
            "default_permission": raw["default_permission"],
            "tool_permissions": raw["tool_permissions"],
            "default_prompt_template": raw["default_prompt_template"],
            "templates_dir": raw["templates_dir"],
            "permissions_file": raw["permissions_file"],
            "inject_file_content": raw["inject_file_content"],
            "max_inject_tokens": raw["max_inject_tokens"],
            "log_dir": raw["log_dir"],
            "shell": raw["shell"],
            "command_timeout": raw["command_timeout"],
            "cwd": raw["working_directory"],
        }

    def save(self, path: str | Path) -> Path:
        target = Path(path).expanduser()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8") as fh:
                json.dump(self.to_dict(), fh, indent=2)
                fh.write("\n")
        except OSError as exc:
            msg = f"Could not write configuration to {target}: {exc}"
            raise ConfigError(msg) from exc
        return target


def _to_optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _load_file_config(path_value: str | Path) -> dict[str, object]:
    path = Path(path_value).expanduser()
    if not path.exists() or not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            parsed = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("config_file_unreadable", extra={"path": str(path), "error": str(exc)})
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {}


def _load_preferred_file_config(config_file: str | None = None) -> dict[str, object]:
    explicit_path = config_file or os.getenv("PROMPTLINE_CONFIG_FILE")
    if explicit_path:
        return _load_file_config(explicit_path)

    user_config = _load_file_config(USER_CONFIG_PATH)
    shared_config = _load_file_config(SHARED_CONFIG_FILE)
    local_override = _load_file_config(LOCAL_CONFIG_FILE)
    return _merge_dicts(_merge_dicts(user_config, shared_config), local_override)


def _merge_dicts(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    merged: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dicts(base_value, value)
        else:
            merged[key] = value
    return merged


def _to_permission(value: str | None, *, default: str) -> str:
    if value is None:
        return default
    normalized = value.strip().lower()
    normalized = _PERMISSION_ALIASES.get(normalized, normalized)
    return normalized if normalized in PERMISSION_VALUES else default


def _to_permission_map(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    permissions: dict[str, str] = {}
    for name, level in value.items():
        if not isinstance(name, str) or not isinstance(level, str):
            continue
        normalized = _to_permission(level, default="")
        if normalized:
            permissions[name] = normalized
    return permissions


def _to_string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def _shell_value(value: str) -> str:
    normalized = value.strip().lower()
    aliases = {
        "powershell": "powershell",
        "pwsh": "powershell",
        "bash": "bash",
        "sh": "sh",
        "shell": "bash",
    }
    return aliases.get(normalized, _default_shell_for_platform())


def _default_shell_for_platform(os_name: str | None = None) -> str:
    platform_name = os.name if os_name is None else os_name
    return "powershell" if platform_name == "nt" else "bash"


def _resolve_shell(value: str | None) -> str:
    if value is None:
        return _default_shell_for_platform()
    return _shell_value(value)


def _to_positive_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _to_positive_float(value: object, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default
