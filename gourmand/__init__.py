"""Gourmand: an interactive recipe assistant with image generation."""

__version__ = "0.1.0"
