"""Conversation history model."""

from collections.abc import Iterator

from gourmand.models.llm import LLMMessage, ToolResultBlock, ToolUseBlock


class ConversationHistory:
    """Ordered, append-only log of the messages exchanged with the model.

    Messages are never removed or rewritten. Bounding the volume sent to the model
    is up to the caller.
    """

    def __init__(self, messages: list[LLMMessage] | None = None):
        self._messages: list[LLMMessage] = list(messages or [])

    def append(self, message: LLMMessage) -> None:
        """Add a message at the end of the history."""
        self._messages.append(message)

    def snapshot(self) -> list[LLMMessage]:
        """Return a copy of the ordered history for transmission to the model."""
        return list(self._messages)

    def last(self) -> LLMMessage | None:
        """Return the most recent message, if any."""
        return self._messages[-1] if self._messages else None

    def pending_tool_uses(self) -> list[ToolUseBlock]:
        """Tool use blocks of the latest assistant message that no user message has answered."""
        last = self.last()
        if last is None or last.role != "assistant":
            return []
        return last.tool_uses()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[LLMMessage]:
        return iter(self._messages)


def unanswered_tool_results(history: ConversationHistory, reason: str) -> list[ToolResultBlock]:
    """Build error results closing every pending tool use in ``history``."""
    return [
        ToolResultBlock(tool_use_id=tool_use.id, content=reason, is_error=True)
        for tool_use in history.pending_tool_uses()
    ]
