"""flashdeck: SM-2 flashcard scheduling service."""

__version__ = "0.1.0"
