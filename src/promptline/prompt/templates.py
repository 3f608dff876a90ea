"""Named system prompt templates."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are PromptLine, an AI assistant that helps with coding and system tasks."
)


@dataclass(slots=True)
class FewShotExample:
    role: str
    content: str


@dataclass(slots=True)
class PromptTemplate:
    """Identity/style preamble plus optional few-shot examples."""

    name: str
    text: str
    examples: list[FewShotExample] = field(default_factory=list)

    def render(self) -> str:
        rendered = self.text
        for example in self.examples:
            rendered += f"\n\n{example.role}: {example.content}"
        return rendered

    @classmethod
    def from_dict(cls, name: str, payload: dict[str, object]) -> PromptTemplate | None:
        text = payload.get("template", payload.get("text"))
        if not isinstance(text, str) or not text.strip():
            return None
        raw_examples = payload.get("few_shot_examples", payload.get("examples", []))
        examples: list[FewShotExample] = []
        if isinstance(raw_examples, list):
            for item in raw_examples:
                if not isinstance(item, dict):
                    continue
                role = item.get("role")
                content = item.get("content")
                if isinstance(role, str) and isinstance(content, str):
                    examples.append(FewShotExample(role=role, content=content))
        return cls(name=name, text=text, examples=examples)


BUILTIN_TEMPLATES: dict[str, PromptTemplate] = {
    "default": PromptTemplate(name="default", text=DEFAULT_SYSTEM_PROMPT),
    "concise": PromptTemplate(
        name="concise",
        text=(
            f"{DEFAULT_SYSTEM_PROMPT} Keep explanations to one or two sentences"
            " and prefer the fewest tool calls that finish the task."
        ),
    ),
    "code_review": PromptTemplate(
        name="code_review",
        text=(
            "You are PromptLine, a careful code reviewer. Inspect changes with the git"
            " and file tools, never modify files, and report findings as a short list."
        ),
        examples=[
            FewShotExample(role="user", content="Review my staged changes."),
            FewShotExample(
                role="assistant",
                content=(
                    'I will look at the staged diff first. {"tool": "git_diff",'
                    ' "args": {"staged": true}}'
                ),
            ),
        ],
    ),
}


class TemplateStore:
    """Looks up templates by name: built-ins first, then JSON files on disk."""

    def __init__(self, templates_dir: str | Path | None = None) -> None:
        self._templates: dict[str, PromptTemplate] = dict(BUILTIN_TEMPLATES)
        if templates_dir is not None:
            self._load_directory(Path(templates_dir).expanduser())

    def get(self, name: str) -> PromptTemplate | None:
        return self._templates.get(name)

    def names(self) -> list[str]:
        return sorted(self._templates)

    def _load_directory(self, directory: Path) -> None:
        if not directory.is_dir():
            LOGGER.warning("template_dir_missing", extra={"path": str(directory)})
            return
        for path in sorted(directory.glob("*.json")):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                LOGGER.warning("template_unreadable", extra={"path": str(path), "error": str(exc)})
                continue
            if not isinstance(payload, dict):
                continue
            name = payload.get("name")
            template = PromptTemplate.from_dict(
                name if isinstance(name, str) and name else path.stem, payload
            )
            if template is not None:
                self._templates[template.name] = template
