"""Terminal user interface."""

from .app import run_interactive

__all__ = ["run_interactive"]
