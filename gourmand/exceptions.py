"""Custom exceptions for the recipe assistant."""


class GourmandError(Exception):
    """Base class for errors surfaced to the interactive prompt."""


class ModelServiceError(GourmandError):
    """The model service rejected or throttled a request and retries were exhausted."""


class ProtocolViolationError(GourmandError):
    """The model service broke the turn protocol (no usable assistant message)."""


class ToolMismatchError(ProtocolViolationError):
    """The model requested a tool that was never offered."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(f"Model requested unknown tool {name!r}; available tools: {', '.join(available) or 'none'}")


class ImageGenerationError(GourmandError):
    """The image-generation service failed to produce a response."""
