"""Interactive command line for the recipe assistant."""

import argparse
import asyncio
import os
import sys
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from gourmand import __version__
from gourmand.clients.anthropic import DEFAULT_MODEL, AnthropicClient, AnthropicConfig
from gourmand.clients.images import DEFAULT_IMAGE_MODEL, ImageGenerationConfig, OpenAIImageGenerator
from gourmand.exceptions import GourmandError
from gourmand.models.session import ConversationState
from gourmand.prompts import OPENING_PROMPT, SYSTEM_PROMPT
from gourmand.services.artifacts import ArtifactStore
from gourmand.services.conversation import DEFAULT_MAX_TOOL_ROUNDS, ConversationService
from gourmand.services.llm import LLMService
from gourmand.tools.registry import ToolsRegistry
from gourmand.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)

QUIT_COMMANDS = {"quit", "exit", "/quit", "/exit"}
HELP_COMMANDS = {"help", "/help", "?"}


class ChatCLI:
    """Interactive chat interface for the recipe assistant."""

    def __init__(self, conversation: ConversationService, state: ConversationState, console: Console | None = None):
        """Initialize chat CLI."""
        self.conversation = conversation
        self.state = state
        self.console = console or Console()

    def run(self) -> None:
        """Introduce the assistant, then serve ``say`` commands until the user quits."""
        self.console.print(
            Panel.fit(
                f"[bold blue]🍳 Gourmand {__version__} - Recipe Assistant[/bold blue]\n"
                f"Model: {self.state.model_id}\n"
                f"Recipes are saved under {self.state.output_root}\n"
                "Commands: say <message>, help, quit",
                border_style="blue",
            )
        )

        try:
            self.say(OPENING_PROMPT)

            while True:
                line = Prompt.ask(f"\n[dim]\\[{self.state.model_id}][/dim]\n[bold cyan]>[/bold cyan]").strip()
                if not line:
                    continue

                command, _, argument = line.partition(" ")
                command = command.lower()
                if command in QUIT_COMMANDS:
                    break
                elif command in HELP_COMMANDS:
                    self._show_help()
                elif command == "say":
                    if argument.strip():
                        self.say(argument.strip())
                    else:
                        self.console.print("[yellow]Usage: say <message>[/yellow]")
                else:
                    self.console.print(f"[yellow]Unknown command {command!r}. Type help for the command list.[/yellow]")

        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")

    def say(self, prompt: str) -> None:
        """Run one prompt through the assistant, reporting failures without leaving the prompt."""
        try:
            with self.console.status("[dim]💭 Thinking...[/dim]"):
                asyncio.run(self.conversation.say(self.state, prompt))
        except GourmandError as e:
            logger.error(f"Prompt failed: {e}")
            self.console.print(f"[red]❌ {e}[/red]\n[yellow]Please try again.[/yellow]")

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• say <message> - Send a message to the assistant
• help - Show this help message
• quit or exit - Leave the chat

[bold]Example Conversation:[/bold]
1. say I need a quick vegetarian main course
2. say The first one sounds good
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def make_display(console: Console) -> Callable[[str], None]:
    """Render assistant text as Markdown in a panel."""

    def display(text: str) -> None:
        console.print(
            Panel(
                Markdown(text),
                title="[bold green]🍳 Gourmand[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    return display


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gourmand",
        description="Get recipe recommendations interactively. Requires ANTHROPIC_API_KEY and OPENAI_API_KEY.",
    )
    parser.add_argument("-m", "--model", default=DEFAULT_MODEL, help="Anthropic model id to converse with")
    parser.add_argument("-o", "--output", default=".", help="Output directory for recipes and images")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every request sent to the model")
    parser.add_argument("-l", "--list-models", action="store_true", help="List the models available and exit")
    parser.add_argument("--image-model", default=DEFAULT_IMAGE_MODEL, help="OpenAI image model for dish photos")
    parser.add_argument(
        "--max-tool-rounds",
        type=int,
        default=DEFAULT_MAX_TOOL_ROUNDS,
        help="Maximum consecutive tool calls answered for one message",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the chat CLI."""
    args = build_parser().parse_args(argv)

    level = "DEBUG" if args.verbose else os.getenv("LOG_LEVEL", "WARNING")
    setup_logging(LogConfig(level=level))

    console = Console()
    try:
        client = AnthropicClient(config=AnthropicConfig(model=args.model))

        if args.list_models:
            for model_id in client.list_models():
                console.print(model_id)
            return 0

        image_generator = OpenAIImageGenerator(config=ImageGenerationConfig(model=args.image_model))
    except (ValueError, GourmandError) as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1

    tools_registry = ToolsRegistry.for_recipes(ArtifactStore(image_generator))
    state = ConversationState(
        model_id=args.model,
        system_prompt=SYSTEM_PROMPT,
        tools=tools_registry.get_tool_schemas(),
        output_root=Path(args.output),
    )
    logger.info(f"Starting session: {state.as_dict()}")

    conversation = ConversationService(
        LLMService(client),
        tools_registry,
        emit=make_display(console),
        max_tool_rounds=args.max_tool_rounds,
    )
    chat = ChatCLI(conversation, state, console)

    try:
        chat.run()
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
