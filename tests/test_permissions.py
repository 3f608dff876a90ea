from __future__ import annotations

import json

import pytest

from promptline.config import AppConfig
from promptline.permissions import JsonPermissionStore, PermissionLevel, PermissionManager


class MemoryStore:
    def __init__(self, initial: dict[str, PermissionLevel] | None = None) -> None:
        self.data = dict(initial or {})
        self.saves: list[dict[str, PermissionLevel]] = []

    def load(self) -> dict[str, PermissionLevel]:
        return dict(self.data)

    def save(self, permissions: dict[str, PermissionLevel]) -> None:
        self.saves.append(dict(permissions))
        self.data = dict(permissions)


def test_unknown_tool_uses_default_level() -> None:
    manager = PermissionManager(default_level=PermissionLevel.ASK)

    assert manager.check("anything") is PermissionLevel.ASK


def test_set_and_check() -> None:
    manager = PermissionManager()

    manager.set("shell", PermissionLevel.NEVER)

    assert manager.check("shell") is PermissionLevel.NEVER
    assert manager.all_permissions() == {"shell": PermissionLevel.NEVER}


def test_once_reverts_to_ask_after_consume() -> None:
    manager = PermissionManager()
    manager.set("shell", PermissionLevel.ONCE)

    manager.consume("shell")

    assert manager.check("shell") is PermissionLevel.ASK


def test_consume_leaves_other_levels_untouched() -> None:
    manager = PermissionManager(overrides={"file_read": PermissionLevel.ALWAYS})

    manager.consume("file_read")
    manager.consume("unset")

    assert manager.check("file_read") is PermissionLevel.ALWAYS
    assert manager.check("unset") is PermissionLevel.ASK


@pytest.mark.parametrize(
    ("reply", "approved", "level_after"),
    [
        (PermissionLevel.ALWAYS, True, PermissionLevel.ALWAYS),
        (PermissionLevel.ONCE, True, PermissionLevel.ONCE),
        (PermissionLevel.NEVER, False, PermissionLevel.NEVER),
        (None, False, PermissionLevel.ASK),
    ],
)
def test_escalate_applies_reply(
    reply: PermissionLevel | None, approved: bool, level_after: PermissionLevel
) -> None:
    calls: list[tuple[str, str]] = []

    def prompt(name: str, rendered_args: str) -> PermissionLevel | None:
        calls.append((name, rendered_args))
        return reply

    manager = PermissionManager(prompt=prompt)

    assert manager.escalate("shell", {"command": "ls"}) is approved
    assert manager.check("shell") is level_after
    assert calls == [("shell", '{"command": "ls"}')]


def test_escalate_without_prompt_declines() -> None:
    manager = PermissionManager()

    assert manager.escalate("shell", {}) is False
    assert manager.check("shell") is PermissionLevel.ASK


def test_only_always_and_never_are_persisted() -> None:
    store = MemoryStore()
    manager = PermissionManager(store=store)

    manager.set("file_read", PermissionLevel.ALWAYS)
    manager.set("shell", PermissionLevel.ONCE)
    manager.set("web_get", PermissionLevel.NEVER)

    assert store.data == {
        "file_read": PermissionLevel.ALWAYS,
        "web_get": PermissionLevel.NEVER,
    }
    assert len(store.saves) == 2


def test_persisted_levels_override_configured_levels() -> None:
    store = MemoryStore({"shell": PermissionLevel.ALWAYS})
    config = AppConfig(tool_permissions={"shell": "never", "file_read": "always"})

    manager = PermissionManager.from_config(config, store=store)

    assert manager.check("shell") is PermissionLevel.ALWAYS
    assert manager.check("file_read") is PermissionLevel.ALWAYS


def test_from_config_parses_default_and_aliases() -> None:
    config = AppConfig(default_permission="never", tool_permissions={"file_list": "allow"})

    manager = PermissionManager.from_config(config)

    assert manager.default_level is PermissionLevel.NEVER
    assert manager.check("file_list") is PermissionLevel.ALWAYS
    assert manager.check("shell") is PermissionLevel.NEVER


def test_parse_rejects_unknown_values_without_default() -> None:
    with pytest.raises(ValueError):
        PermissionLevel.parse("sometimes")
    assert PermissionLevel.parse("sometimes", PermissionLevel.ASK) is PermissionLevel.ASK
    assert PermissionLevel.parse(" Deny ") is PermissionLevel.NEVER


def test_json_store_round_trip(tmp_path) -> None:
    path = tmp_path / "state" / "permissions.json"
    first = PermissionManager(store=JsonPermissionStore(path))
    first.set("shell", PermissionLevel.NEVER)
    first.set("file_read", PermissionLevel.ALWAYS)

    second = PermissionManager(store=JsonPermissionStore(path))

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "file_read": "always",
        "shell": "never",
    }
    assert second.check("shell") is PermissionLevel.NEVER
    assert second.check("file_read") is PermissionLevel.ALWAYS


def test_json_store_ignores_transient_and_invalid_entries(tmp_path) -> None:
    path = tmp_path / "permissions.json"
    path.write_text(
        json.dumps({"shell": "once", "web_get": "nope", "file_read": "always", "x": 1}),
        encoding="utf-8",
    )

    assert JsonPermissionStore(path).load() == {"file_read": PermissionLevel.ALWAYS}


def test_json_store_tolerates_corrupt_file(tmp_path) -> None:
    path = tmp_path / "permissions.json"
    path.write_text("{broken", encoding="utf-8")

    assert JsonPermissionStore(path).load() == {}
