"""ID generation helpers.

Deck and card IDs keep the `deck_` / `card_` prefixes of the JSON store
records so exported data and logs stay recognisable.
"""

from __future__ import annotations

import uuid


def _make_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def generate_deck_id() -> str:
    return _make_id("deck")


def generate_card_id() -> str:
    return _make_id("card")
