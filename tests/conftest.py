"""Shared fixtures: a scripted model service and a stub image generator."""

from pathlib import Path

import pytest

from gourmand.clients.images import GeneratedImages
from gourmand.models.llm import ContentBlock, LLMMessage, LLMResponse, LLMUsage, StopReason
from gourmand.models.session import ConversationState
from gourmand.services.artifacts import ArtifactStore
from gourmand.services.conversation import ConversationService
from gourmand.services.llm import LLMService
from gourmand.tools.registry import ToolsRegistry

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-image-"


class ScriptedModelClient:
    """Stands in for AnthropicClient, answering each request with the next scripted reply."""

    def __init__(self, replies: list[LLMResponse | Exception] | None = None):
        self.replies = list(replies or [])
        self.requests: list[dict] = []

    async def create_message(self, messages, system_prompt, tools=None, **kwargs) -> LLMResponse:
        self.requests.append({"messages": list(messages), "system_prompt": system_prompt, "tools": tools, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class StubImageGenerator:
    """Returns ``count`` fake PNG payloads and records every prompt."""

    def __init__(self, count: int = 1):
        self.count = count
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> GeneratedImages:
        self.prompts.append(prompt)
        return GeneratedImages(trace_id="trace-1", images=[FAKE_PNG + bytes([idx]) for idx in range(self.count)])


def make_reply(*blocks: ContentBlock, stop_reason: StopReason = StopReason.END_TURN) -> LLMResponse:
    return LLMResponse(
        message=LLMMessage(role="assistant", content=list(blocks)),
        stop_reason=stop_reason,
        usage=LLMUsage(input_tokens=10, output_tokens=5),
        model="claude-test",
    )


@pytest.fixture
def reply():
    """Factory building scripted assistant replies."""
    return make_reply


@pytest.fixture
def output_root(tmp_path) -> Path:
    return tmp_path / "recipes"


@pytest.fixture
def image_generator() -> StubImageGenerator:
    return StubImageGenerator()


@pytest.fixture
def tools_registry(image_generator) -> ToolsRegistry:
    return ToolsRegistry.for_recipes(ArtifactStore(image_generator))


@pytest.fixture
def state(output_root, tools_registry) -> ConversationState:
    return ConversationState(
        model_id="claude-test",
        system_prompt="You recommend recipes.",
        tools=tools_registry.get_tool_schemas(),
        output_root=output_root,
    )


@pytest.fixture
def model_client() -> ScriptedModelClient:
    return ScriptedModelClient()


@pytest.fixture
def emitted() -> list[str]:
    return []


@pytest.fixture
def conversation_service(model_client, tools_registry, emitted) -> ConversationService:
    return ConversationService(LLMService(model_client), tools_registry, emit=emitted.append)
