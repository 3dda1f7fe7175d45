"""Session state for a running conversation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gourmand.models.conversation import ConversationHistory
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConversationState:
    """Everything one interactive session needs, threaded explicitly through each turn.

    Only ``history`` changes over the life of a session, and only by appending.
    """

    model_id: str
    system_prompt: str
    tools: list[dict[str, Any]]
    output_root: Path
    history: ConversationHistory = field(default_factory=ConversationHistory)

    def __post_init__(self) -> None:
        self.output_root = Path(self.output_root).expanduser()
        logger.debug(f"Session for model {self.model_id} writing artifacts under {self.output_root}")

    def as_dict(self) -> dict[str, Any]:
        """Return a loggable summary of the session."""
        return {
            "model_id": self.model_id,
            "output_root": str(self.output_root),
            "tools": [tool.get("name") for tool in self.tools],
            "messages": len(self.history),
        }
