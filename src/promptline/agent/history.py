"""Append-only conversation log owned by one agent."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from promptline.agent.models import Message


class ConversationHistory:
    """Ordered message log. Entries are only ever appended during a run."""

    def __init__(self, messages: Iterable[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages) if messages else []

    def append(self, message: Message) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def contains(self, text: str) -> bool:
        """Return true when any message body includes ``text``."""
        return any(text in message.content for message in self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))
