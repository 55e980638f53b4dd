"""gws: a personal task tracker backed by a single emoji-marked markdown file."""

__version__ = "0.3.0"
