"""Conversation service driving the tool use loop for one user prompt."""

from collections.abc import Callable
from dataclasses import dataclass

from gourmand.models.llm import (
    LLMMessage,
    OtherBlock,
    StopReason,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from gourmand.models.session import ConversationState
from gourmand.services.llm import LLMService, Prompt, ToolResponse
from gourmand.tools.registry import ToolsRegistry
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 10

TOOL_LIMIT_NOTICE = (
    "I stopped after too many tool calls in a row. Please tell me how you'd like to continue."
)

_STOP_REASON_WARNINGS = {
    StopReason.MAX_TOKENS: "Reply was cut off at the token limit",
    StopReason.REFUSAL: "Model declined to answer",
    StopReason.CONTENT_FILTERED: "Reply was blocked by a content filter",
    StopReason.GUARDRAIL_INTERVENED: "A guardrail intervened in the reply",
}


@dataclass
class ToolLoopResult:
    """Outcome of running one prompt to completion."""

    reply: LLMMessage
    stop_reason: StopReason
    tool_rounds: int
    limit_reached: bool = False


class ConversationService:
    """Runs a prompt through the model, executing requested tools until a plain reply arrives."""

    def __init__(
        self,
        llm_service: LLMService,
        tools_registry: ToolsRegistry,
        emit: Callable[[str], None] = print,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ):
        """Initialize conversation service.

        Args:
            llm_service: Turn executor
            tools_registry: Tools the model may call
            emit: Sink receiving text the user should see
            max_tool_rounds: Upper bound on consecutive tool rounds for one prompt
        """
        self.llm_service = llm_service
        self.tools_registry = tools_registry
        self.emit = emit
        self.max_tool_rounds = max_tool_rounds

    async def say(self, state: ConversationState, prompt: str) -> ToolLoopResult:
        """Send ``prompt`` and keep answering tool calls until the model stops asking.

        Raises:
            ModelServiceError: The model service failed
            ProtocolViolationError: The model broke the turn protocol, including
                requesting an unknown tool
        """
        logger.info(f"Processing prompt ({len(prompt)} chars), history has {len(state.history)} messages")
        stop_reason, reply = await self.llm_service.run_turn(state, Prompt(prompt))
        tool_rounds = 0

        while True:
            self._check_stop_reason(stop_reason)
            results = await self._inspect_reply(state, reply)

            if not results:
                logger.info(f"Prompt complete after {tool_rounds} tool round(s)")
                return ToolLoopResult(reply=reply, stop_reason=stop_reason, tool_rounds=tool_rounds)

            tool_rounds += 1
            stop_reason, reply = await self.llm_service.run_turn(state, ToolResponse(results))

            if tool_rounds >= self.max_tool_rounds and reply.tool_uses():
                logger.warning(f"Tool loop reached max rounds ({self.max_tool_rounds})")
                self._emit_text(reply)
                self.emit(TOOL_LIMIT_NOTICE)
                return ToolLoopResult(
                    reply=reply, stop_reason=stop_reason, tool_rounds=tool_rounds, limit_reached=True
                )

    async def _inspect_reply(self, state: ConversationState, reply: LLMMessage) -> list[ToolResultBlock]:
        """Emit the reply's text and execute its tool uses, in content order.

        Every tool name is checked before anything runs, so a reply naming an unknown
        tool executes none of its tool uses.
        """
        self.tools_registry.ensure_known(reply.tool_uses())

        results: list[ToolResultBlock] = []
        for block in reply.content:
            match block:
                case TextBlock(text=text):
                    self.emit(text)
                case ToolUseBlock():
                    results.append(await self.tools_registry.dispatch(state, block))
                case ToolResultBlock():
                    logger.warning("Unexpected tool result in assistant reply, skipping")
                case OtherBlock(kind=kind):
                    logger.warning(f"Unexpected {kind} content in assistant reply, skipping")
                case _:
                    logger.warning(f"Unrecognized content block {type(block).__name__}, skipping")
        return results

    def _emit_text(self, reply: LLMMessage) -> None:
        for block in reply.content:
            if isinstance(block, TextBlock):
                self.emit(block.text)

    def _check_stop_reason(self, stop_reason: StopReason) -> None:
        logger.debug(f"Stop reason: {stop_reason.value}")
        warning = _STOP_REASON_WARNINGS.get(stop_reason)
        if warning:
            logger.warning(warning)
        elif stop_reason is StopReason.UNKNOWN:
            logger.warning("Model stopped for an unknown reason")
