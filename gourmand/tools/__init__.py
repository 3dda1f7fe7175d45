"""Tools for the recipe assistant."""

from gourmand.tools.registry import ToolsRegistry

__all__ = ["ToolsRegistry"]
