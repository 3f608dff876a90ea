"""Best-effort discovery of ambient project facts."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

LOGGER = logging.getLogger(__name__)

PROJECT_CONTEXT_FILES = ("PROMPTLINE.md", ".promptline/context.md")
MAX_CONTEXT_CHARS = 8000

_PROJECT_MARKERS: tuple[tuple[str, str], ...] = (
    ("Cargo.toml", "Rust"),
    ("pyproject.toml", "Python"),
    ("setup.py", "Python"),
    ("requirements.txt", "Python"),
    ("package.json", "Node.js"),
    ("go.mod", "Go"),
    ("pom.xml", "Java"),
    ("build.gradle", "Java"),
    ("Gemfile", "Ruby"),
    ("composer.json", "PHP"),
    ("CMakeLists.txt", "C/C++"),
)


class ContextProvider:
    """Collects working-directory facts for prompts and tool contexts."""

    def __init__(self, working_directory: str | Path | None = None) -> None:
        self.working_directory = Path(working_directory) if working_directory else Path.cwd()

    def load_project_context(self) -> str | None:
        """Return the project digest file contents, if one exists."""
        for relative in PROJECT_CONTEXT_FILES:
            path = self.working_directory / relative
            if not path.is_file():
                continue
            text = path.read_text(encoding="utf-8").strip()
            if not text:
                return None
            if len(text) > MAX_CONTEXT_CHARS:
                text = f"{text[:MAX_CONTEXT_CHARS]}\n... (project context truncated)"
            return text
        return None

    def detect_project_type(self) -> str:
        for marker, label in _PROJECT_MARKERS:
            if (self.working_directory / marker).exists():
                return label
        return "Generic"

    def git_branch(self) -> str | None:
        try:
            process = subprocess.run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                capture_output=True,
                cwd=self.working_directory,
                timeout=5,
                check=False,
                text=True,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            LOGGER.debug("git_branch_unavailable", extra={"error": str(exc)})
            return None
        if process.returncode != 0:
            return None
        branch = process.stdout.strip()
        return branch or None
