"""LLM service running single conversation turns."""

from dataclasses import dataclass

from gourmand.clients.anthropic import AnthropicClient
from gourmand.models.conversation import unanswered_tool_results
from gourmand.models.llm import ContentBlock, LLMMessage, StopReason, TextBlock, ToolResultBlock
from gourmand.models.session import ConversationState
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)

UNANSWERED_TOOL_USE = "Error: this tool call was not executed."


@dataclass(frozen=True)
class Prompt:
    """Free text typed by the user."""

    text: str


@dataclass(frozen=True)
class ToolResponse:
    """Results answering the tool uses of the previous assistant message."""

    results: list[ToolResultBlock]


TurnInput = Prompt | ToolResponse


class LLMService:
    """Sends the conversation to the model one turn at a time."""

    def __init__(self, client: AnthropicClient):
        """Initialize LLM service.

        Args:
            client: Model service client
        """
        self.client = client

    async def run_turn(self, state: ConversationState, turn_input: TurnInput) -> tuple[StopReason, LLMMessage]:
        """Send the history plus ``turn_input`` as a user message and record the exchange.

        The user message and the reply are appended together once the model answers,
        so a failed turn leaves the history as it was.

        Raises:
            ModelServiceError: The model service failed
            ProtocolViolationError: The model service returned no assistant message
        """
        message = LLMMessage(role="user", content=self._to_content(state, turn_input))
        logger.debug(f"Turn input for model {state.model_id}: {message.model_dump()}")

        response = await self.client.create_message(
            messages=[*state.history.snapshot(), message],
            system_prompt=state.system_prompt,
            tools=state.tools,
            model=state.model_id,
        )

        state.history.append(message)
        state.history.append(response.message)
        logger.debug(
            f"Turn complete - stop reason: {response.stop_reason.value}, "
            f"tokens in/out: {response.usage.input_tokens}/{response.usage.output_tokens}, "
            f"history: {len(state.history)} messages"
        )
        return response.stop_reason, response.message

    def _to_content(self, state: ConversationState, turn_input: TurnInput) -> list[ContentBlock]:
        match turn_input:
            case ToolResponse(results=results):
                return list(results)
            case Prompt(text=text):
                # A previous turn was abandoned mid tool call; the model service requires an answer
                dangling: list[ContentBlock] = list(unanswered_tool_results(state.history, UNANSWERED_TOOL_USE))
                if dangling:
                    logger.warning(f"Closing {len(dangling)} unanswered tool call(s) before the next prompt")
                return [*dangling, TextBlock(text=text)]
