"""Heuristic scanners applied to raw model output.

These helpers are deliberately forgiving: they never raise on malformed
input, they only report what they could recognize.

* ``extract_action`` looks at the span between the first ``{`` and the last
  ``}`` and attempts a single JSON parse. A response that contains two
  separate objects therefore yields no action (the combined span is not
  valid JSON), and prose containing stray braces is silently dropped.
* ``find_path_mentions`` matches any whitespace-free token ending in a known
  extension. It reports false positives (``v1.md`` inside a URL) and misses
  paths with spaces or unlisted extensions.
"""

from __future__ import annotations

import json
import re

from promptline.agent.models import ProposedAction

COMPLETION_TOKEN = "FINISH"
COMPLETION_PHRASE = "task is complete"
ACTION_NAME_FIELD = "tool"
ACTION_ARGS_FIELD = "args"

INJECTABLE_EXTENSIONS = (
    "rs",
    "toml",
    "yaml",
    "yml",
    "md",
    "txt",
    "json",
    "lock",
    "sh",
    "ps1",
    "py",
    "cfg",
    "ini",
)

_PATH_PATTERN = re.compile(
    r"[^\s`'\"()\[\]<>,;]+\.(?:" + "|".join(INJECTABLE_EXTENSIONS) + r")\b"
)


def is_complete(content: str) -> bool:
    """Return true when the response signals the task is finished."""
    return content.strip().endswith(COMPLETION_TOKEN) or COMPLETION_PHRASE in content


def extract_action(content: str) -> ProposedAction | None:
    """Return the single proposed action embedded in ``content``, if any."""
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        return None

    try:
        parsed = json.loads(content[start : end + 1])
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None

    name = parsed.get(ACTION_NAME_FIELD)
    if not isinstance(name, str) or ACTION_ARGS_FIELD not in parsed:
        return None
    return ProposedAction(name=name, args=parsed[ACTION_ARGS_FIELD])


def find_path_mentions(content: str) -> list[str]:
    """Return distinct path-like tokens in order of first appearance."""
    seen: list[str] = []
    for match in _PATH_PATTERN.finditer(content):
        path = match.group(0).rstrip(".:")
        if path and path not in seen:
            seen.append(path)
    return seen
