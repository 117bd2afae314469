"""Route group exports."""

from . import analyses, health

__all__ = ["analyses", "health"]
