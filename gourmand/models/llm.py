"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_serializer


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    model_config = ConfigDict(extra="ignore")  # Ignore any additional fields from Anthropic

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = None


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


class OtherBlock(BaseModel):
    """A content block kind the assistant does not act on (image, document, thinking, ...).

    The provider payload is kept verbatim so the block can be sent back with the history.
    """

    kind: str
    payload: dict[str, Any]

    @model_serializer
    def _serialize(self) -> dict[str, Any]:
        return self.payload


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock | OtherBlock


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: list[ContentBlock]

    def text(self) -> str:
        """Concatenate the text blocks of this message."""
        return "\n".join(block.text for block in self.content if isinstance(block, TextBlock))

    def tool_uses(self) -> list[ToolUseBlock]:
        """Return the tool use blocks of this message in order."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class StopReason(str, Enum):
    """Why the model stopped generating for a turn."""

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    CONTENT_FILTERED = "content_filtered"
    GUARDRAIL_INTERVENED = "guardrail_intervened"
    REFUSAL = "refusal"
    PAUSE_TURN = "pause_turn"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "StopReason":
        return cls.UNKNOWN


class LLMToolDefinition(BaseModel):
    """Complete tool definition for LLM."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class LLMUsage:
    """Token usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Provider-agnostic response from the model service."""

    message: LLMMessage
    stop_reason: StopReason
    usage: LLMUsage
    model: str
