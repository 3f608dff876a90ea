"""Stateless classification of proposed commands."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

LOGGER = logging.getLogger(__name__)

ValidationStatus = Literal["allowed", "requires_approval", "denied"]

# Commands are validated as ``name <json args>``, so quotes around a path
# arrive JSON-escaped (``\"``). Path rules accept plain or escaped quotes.
_QUOTE = r"""\\?["']?"""
_PATH_END = r"""(?=[\s"'\\}]|$)"""

_DENIED_RULES: tuple[tuple[str, str], ...] = (
    (
        rf"\brm\s+(-[a-z]*\s+)*{_QUOTE}(/\*|/|~|\$HOME){_PATH_END}",
        "recursive delete of root or home",
    ),
    (r"\bmkfs(\.\w+)?\b", "filesystem format"),
    (rf"\bdd\b.*\bof={_QUOTE}/dev/", "raw write to a device"),
    (r":\(\)\s*\{\s*:\|:&\s*\};:", "fork bomb"),
    (r"\b(curl|wget)\b[^|]*\|\s*(sudo\s+)?(ba|z)?sh\b", "piping a download into a shell"),
    (rf"\bchmod\s+(-R\s+)?(777|666)\s+{_QUOTE}/{_PATH_END}", "world-writable root"),
    (r"\b(shutdown|reboot|halt|poweroff)\s+(now\b|-[a-z]+\b|\+\d+)", "host power state change"),
    (rf">\s*{_QUOTE}/(etc|usr|bin|lib|boot|sys|proc)/", "overwriting a system directory"),
)

_APPROVAL_RULES: tuple[tuple[str, str], ...] = (
    (r"\brm\s+-[a-z]*[rf]", "forced or recursive delete"),
    (r"\bsudo\b", "privilege escalation"),
    (r"\bgit\s+push\b.*(--force|-f\b)", "force push"),
    (r"\bgit\s+reset\s+--hard\b", "hard reset"),
    (r"\bgit\s+clean\s+-[a-z]*f", "git clean"),
    (r"\bdrop\s+(table|database)\b", "dropping a database object"),
    (r"\bremove-item\b", "PowerShell delete"),
    (r"\bdel\s+/s\b", "recursive delete"),
    (r"\bformat\s+[a-z]:", "drive format"),
    # ``->`` and ``=>`` arrows are not redirection.
    (r"""(?<![-=])>>?\s*[\w./~$\\"'-]""", "output redirection"),
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a single command string."""

    status: ValidationStatus
    reason: str | None = None

    @classmethod
    def allowed(cls) -> ValidationResult:
        return cls(status="allowed")

    @classmethod
    def requires_approval(cls, reason: str | None = None) -> ValidationResult:
        return cls(status="requires_approval", reason=reason)

    @classmethod
    def denied(cls, reason: str) -> ValidationResult:
        return cls(status="denied", reason=reason)

    @property
    def is_allowed(self) -> bool:
        return self.status == "allowed"

    @property
    def is_denied(self) -> bool:
        return self.status == "denied"

    @property
    def needs_approval(self) -> bool:
        return self.status == "requires_approval"


@dataclass(frozen=True, slots=True)
class _Rule:
    pattern: re.Pattern[str]
    description: str


class SafetyValidator:
    """Classifies command strings as allowed, approval-gated, or denied.

    Validation is a pure function of its input: the validator holds only the
    compiled rule tables and never records what it has seen.
    """

    def __init__(
        self,
        *,
        blocked_patterns: Iterable[str] = (),
        approval_patterns: Iterable[str] = (),
    ) -> None:
        self._denied = _compile_rules(_DENIED_RULES) + _compile_custom(
            blocked_patterns, "blocked by configured pattern"
        )
        self._approval = _compile_rules(_APPROVAL_RULES) + _compile_custom(
            approval_patterns, "matches configured approval pattern"
        )

    @classmethod
    def from_config(cls, config: object) -> SafetyValidator:
        return cls(
            blocked_patterns=getattr(config, "blocked_patterns", ()),
            approval_patterns=getattr(config, "approval_patterns", ()),
        )

    def validate(self, command: str) -> ValidationResult:
        for rule in self._denied:
            if rule.pattern.search(command):
                return ValidationResult.denied(f"{rule.description} ({rule.pattern.pattern})")
        for rule in self._approval:
            if rule.pattern.search(command):
                return ValidationResult.requires_approval(rule.description)
        return ValidationResult.allowed()


def _compile_rules(rules: Iterable[tuple[str, str]]) -> list[_Rule]:
    return [_Rule(re.compile(pattern, re.IGNORECASE), description) for pattern, description in rules]


def _compile_custom(patterns: Iterable[str], description: str) -> list[_Rule]:
    compiled: list[_Rule] = []
    for pattern in patterns:
        try:
            compiled.append(_Rule(re.compile(pattern, re.IGNORECASE), description))
        except re.error as exc:
            LOGGER.warning("safety_pattern_invalid", extra={"pattern": pattern, "error": str(exc)})
    return compiled
