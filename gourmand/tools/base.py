"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from gourmand.models.llm import LLMToolDefinition
from gourmand.models.session import ConversationState
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ARGUMENT_VALUE = "default"

ToolHandler = Callable[[dict[str, str], ConversationState], Awaitable[str]]


@dataclass(frozen=True)
class ToolArgument:
    """One named argument of a tool."""

    name: str
    description: str
    type: Literal["string"] = "string"
    required: bool = True


@dataclass(frozen=True)
class ToolSpec:
    """Name, description and argument schema of a tool offered to the model."""

    name: str
    description: str
    arguments: tuple[ToolArgument, ...]

    def input_schema(self) -> dict[str, Any]:
        """Render the JSON schema for this tool's input."""
        return {
            "type": "object",
            "properties": {
                argument.name: {"type": argument.type, "description": argument.description}
                for argument in self.arguments
            },
            "required": [argument.name for argument in self.arguments if argument.required],
        }

    def to_llm_tool(self) -> LLMToolDefinition:
        return LLMToolDefinition(name=self.name, description=self.description, input_schema=self.input_schema())

    def extract_arguments(self, raw_input: Any) -> dict[str, str]:
        """Read every declared argument from a tool use input, never rejecting it.

        Values that are missing or cannot be read as a string are replaced with
        ``"default"``.
        """
        if not isinstance(raw_input, Mapping):
            logger.warning(f"Tool {self.name} received non-object input {type(raw_input).__name__}, using defaults")
            raw_input = {}

        arguments: dict[str, str] = {}
        for argument in self.arguments:
            value = _coerce_to_string(raw_input.get(argument.name))
            if value is None:
                logger.warning(f"Tool {self.name} argument {argument.name!r} missing or malformed, using default")
                value = DEFAULT_ARGUMENT_VALUE
            arguments[argument.name] = value
        return arguments


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the assistant."""

    spec: ToolSpec
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.spec.name


def _coerce_to_string(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    # bool is an int subclass
    if isinstance(value, int | float):
        return str(value)
    return None
