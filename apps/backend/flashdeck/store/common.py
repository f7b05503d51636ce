from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


def normalize_non_negative_int(value: Any) -> int:
    """Coerce a value to a non-negative integer (invalid or negative -> 0)."""

    try:
        ivalue = int(value)
    except (TypeError, ValueError):
        return 0
    return ivalue if ivalue >= 0 else 0


def normalize_tags(raw: Any) -> list[str]:
    """Trim, drop empties and deduplicate tags while keeping their order."""

    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    tags: list[str] = []
    seen: set[str] = set()
    for candidate in raw:
        if not isinstance(candidate, str):
            continue
        trimmed = candidate.strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        tags.append(trimmed)
    return tags


def dump_tags(tags: list[str]) -> str:
    return json.dumps(tags, ensure_ascii=False)


def load_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return normalize_tags(parsed if isinstance(parsed, list) else [])


def iso(value: datetime) -> str:
    """Serialise a timestamp as fixed-width UTC ISO-8601 so strings sort correctly."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def utcnow() -> datetime:
    return datetime.now(UTC)


def day_key(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).date().isoformat()
