"""Per-capability permission state with interactive escalation."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class PermissionLevel(str, Enum):
    """Decision state for a single capability."""

    NEVER = "never"
    ALWAYS = "always"
    ONCE = "once"
    ASK = "ask"

    @classmethod
    def parse(cls, value: str, default: PermissionLevel | None = None) -> PermissionLevel:
        normalized = value.strip().lower()
        aliases = {"allow": cls.ALWAYS, "deny": cls.NEVER}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            if default is None:
                raise
            return default


# ``None`` means the user declined this invocation without changing state.
PermissionPrompt = Callable[[str, str], PermissionLevel | None]


class PermissionStore(Protocol):
    """Load/save interface for persisted permission decisions."""

    def load(self) -> dict[str, PermissionLevel]: ...

    def save(self, permissions: dict[str, PermissionLevel]) -> None: ...


class JsonPermissionStore:
    """Stores Always/Never decisions in a JSON object keyed by tool name."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> dict[str, PermissionLevel]:
        if not self.path.is_file():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning(
                "permission_store_unreadable", extra={"path": str(self.path), "error": str(exc)}
            )
            return {}
        if not isinstance(raw, dict):
            return {}

        permissions: dict[str, PermissionLevel] = {}
        for name, value in raw.items():
            if not isinstance(name, str) or not isinstance(value, str):
                continue
            try:
                level = PermissionLevel.parse(value)
            except ValueError:
                continue
            if level in (PermissionLevel.ALWAYS, PermissionLevel.NEVER):
                permissions[name] = level
        return permissions

    def save(self, permissions: dict[str, PermissionLevel]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {name: level.value for name, level in sorted(permissions.items())}
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")


class PermissionManager:
    """Tracks the permission state of each capability for a session.

    Not safe for concurrent mutation: give each independently running agent
    its own manager unless access is synchronized by the caller.
    """

    def __init__(
        self,
        *,
        default_level: PermissionLevel = PermissionLevel.ASK,
        overrides: dict[str, PermissionLevel] | None = None,
        store: PermissionStore | None = None,
        prompt: PermissionPrompt | None = None,
    ) -> None:
        self.default_level = default_level
        self.store = store
        self.prompt = prompt
        self._levels: dict[str, PermissionLevel] = dict(overrides or {})
        self._persisted: dict[str, PermissionLevel] = store.load() if store else {}
        self._levels.update(self._persisted)

    @classmethod
    def from_config(
        cls,
        config: object,
        *,
        store: PermissionStore | None = None,
        prompt: PermissionPrompt | None = None,
    ) -> PermissionManager:
        default_name = getattr(config, "default_permission", "ask")
        raw_overrides = getattr(config, "tool_permissions", {}) or {}
        overrides = {
            name: PermissionLevel.parse(level, PermissionLevel.ASK)
            for name, level in raw_overrides.items()
        }
        return cls(
            default_level=PermissionLevel.parse(default_name, PermissionLevel.ASK),
            overrides=overrides,
            store=store,
            prompt=prompt,
        )

    def check(self, name: str) -> PermissionLevel:
        return self._levels.get(name, self.default_level)

    def set(self, name: str, level: PermissionLevel) -> None:
        self._levels[name] = level
        LOGGER.info("permission_set", extra={"tool": name, "level": level.value})
        if level in (PermissionLevel.ALWAYS, PermissionLevel.NEVER):
            self._persist(name, level)

    def consume(self, name: str) -> None:
        """Spend a one-shot grant after the invocation it covered."""
        if self.check(name) is PermissionLevel.ONCE:
            self._levels[name] = PermissionLevel.ASK

    def escalate(self, name: str, args: object) -> bool:
        """Ask the user whether ``name`` may run with ``args``.

        Returns true when this invocation is approved. Always, Once and Never
        replies update the stored state; a plain decline leaves it at Ask.
        """
        if self.prompt is None:
            LOGGER.warning("permission_prompt_unavailable", extra={"tool": name})
            return False

        rendered_args = json.dumps(args, sort_keys=True)
        reply = self.prompt(name, rendered_args)
        LOGGER.info(
            "permission_escalated",
            extra={"tool": name, "reply": reply.value if reply else "decline"},
        )
        if reply is None:
            return False
        self.set(name, reply)
        return reply in (PermissionLevel.ALWAYS, PermissionLevel.ONCE)

    def all_permissions(self) -> dict[str, PermissionLevel]:
        return dict(sorted(self._levels.items()))

    def _persist(self, name: str, level: PermissionLevel) -> None:
        if self.store is None:
            return
        self._persisted[name] = level
        try:
            self.store.save(dict(self._persisted))
        except OSError as exc:
            LOGGER.warning("permission_store_save_failed", extra={"tool": name, "error": str(exc)})
