"""Storyforge: prompt-to-image-and-story HTTP backend."""

__version__ = "1.0.0"
