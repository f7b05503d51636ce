"""Router package exports."""

from . import config, decks, health, review, stats

__all__ = [
    "config",
    "decks",
    "health",
    "review",
    "stats",
]
