"""Tools registry for dispatching the assistant's tool calls."""

from typing import Any

from gourmand.exceptions import ImageGenerationError, ToolMismatchError
from gourmand.models.llm import ToolResultBlock, ToolUseBlock
from gourmand.models.session import ConversationState
from gourmand.services.artifacts import ArtifactStore
from gourmand.tools.base import ToolDefinition
from gourmand.tools.transmit_recipe import create_transmit_recipe_tool
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Registry for managing assistant tools."""

    def __init__(self, tools: list[ToolDefinition] | None = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register_tool(tool)

    @classmethod
    def for_recipes(cls, artifact_store: ArtifactStore) -> "ToolsRegistry":
        """Registry offering the recipe transmission tool."""
        return cls([create_transmit_recipe_tool(artifact_store)])

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        self._tools[tool.name] = tool

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """Get the tool definitions sent to the model with every request."""
        return [tool.spec.to_llm_tool().model_dump() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def ensure_known(self, tool_uses: list[ToolUseBlock]) -> None:
        """Reject a batch of tool uses if any of them names a tool that was never offered.

        Raises:
            ToolMismatchError: For the first unknown tool name
        """
        for tool_use in tool_uses:
            if tool_use.name not in self._tools:
                logger.error(f"Unknown tool requested: {tool_use.name}")
                raise ToolMismatchError(tool_use.name, self.get_tool_names())

    async def dispatch(self, state: ConversationState, tool_use: ToolUseBlock) -> ToolResultBlock:
        """Execute a tool use request and wrap its outcome for the next turn.

        Raises:
            ToolMismatchError: The model asked for a tool that was never offered
        """
        tool = self._tools.get(tool_use.name)
        if tool is None:
            logger.error(f"Unknown tool requested: {tool_use.name}")
            raise ToolMismatchError(tool_use.name, self.get_tool_names())

        arguments = tool.spec.extract_arguments(tool_use.input)
        logger.info(f"Executing tool {tool.name} ({tool_use.id})")
        logger.debug(f"Tool {tool.name} arguments: {arguments}")

        try:
            summary = await tool.handler(arguments, state)
        except (ImageGenerationError, OSError) as e:
            logger.error(f"Tool {tool.name} failed: {e}")
            return ToolResultBlock(tool_use_id=tool_use.id, content=f"Error: {e!s}", is_error=True)

        logger.debug(f"Tool {tool.name} succeeded: {summary[:100]}")
        return ToolResultBlock(tool_use_id=tool_use.id, content=summary)
