"""Spaced-repetition review scheduler.

A pure SM-2 derived scheduler with three grade bands:

- lapse (grade <= 2): the streak resets and the card comes back within minutes
- good (2 < grade < 4): classic SM-2 graduation in whole days
- easy (grade >= 4): graduation with an ease reward and an interval bonus

Nothing in this module performs I/O. Callers load a card, call
`schedule_review`, and persist the returned value themselves.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Mapping


MIN_GRADE = 0.0
MAX_GRADE = 5.0
DEFAULT_EASE = 2.5
MIN_EASE = 1.3


class SchedulerError(Exception):
    """Base class for errors raised before any scheduling state changes."""


class InvalidGrade(SchedulerError, ValueError):
    """The submitted grade cannot be read as a finite number."""

    def __init__(self, raw: object) -> None:
        super().__init__(f"grade must be a finite number, got {raw!r}")
        self.raw = raw


class MissingState(SchedulerError, ValueError):
    """A scheduling field is present but holds a non-numeric/unreadable value."""

    def __init__(self, field_name: str, raw: object) -> None:
        super().__init__(f"scheduling field {field_name!r} is not usable: {raw!r}")
        self.field_name = field_name
        self.raw = raw


class GradeBand(str, Enum):
    lapse = "lapse"
    good = "good"
    easy = "easy"


class GoodEaseRule(str, Enum):
    """Ease update applied on a 'Good' grade."""

    neutral = "neutral"
    sm2 = "sm2"


@dataclass(frozen=True)
class SchedulerPolicy:
    """Named constants driving `schedule_review`.

    Lapse penalties and delays are keyed by the integer part of the grade
    (0, 1, 2). The easy bonus multiplies the interval on top of the ease
    factor; the easy ease bonus is added to the ease factor itself.
    """

    initial_ease: float = DEFAULT_EASE
    min_ease: float = MIN_EASE
    lapse_penalties: Mapping[int, float] = field(
        default_factory=lambda: {0: 0.30, 1: 0.20, 2: 0.15}
    )
    lapse_minutes: Mapping[int, int] = field(
        default_factory=lambda: {0: 5, 1: 5, 2: 10}
    )
    first_interval_days: int = 1
    second_interval_days: int = 6
    easy_first_interval_days: int = 4
    easy_bonus: float = 1.3
    easy_ease_bonus: float = 0.15
    good_ease_rule: GoodEaseRule = GoodEaseRule.neutral

    @classmethod
    def from_settings(cls, settings: Any) -> "SchedulerPolicy":
        """Build a policy from an object exposing `srs_*` attributes."""

        rule = getattr(settings, "srs_good_ease_rule", GoodEaseRule.neutral.value)
        bonus = getattr(settings, "srs_easy_bonus", cls.easy_bonus)
        return cls(good_ease_rule=GoodEaseRule(rule), easy_bonus=float(bonus))

    def as_dict(self) -> dict[str, Any]:
        return {
            "initial_ease": self.initial_ease,
            "min_ease": self.min_ease,
            "lapse_penalties": {str(k): v for k, v in sorted(self.lapse_penalties.items())},
            "lapse_minutes": {str(k): v for k, v in sorted(self.lapse_minutes.items())},
            "first_interval_days": self.first_interval_days,
            "second_interval_days": self.second_interval_days,
            "easy_first_interval_days": self.easy_first_interval_days,
            "easy_bonus": self.easy_bonus,
            "easy_ease_bonus": self.easy_ease_bonus,
            "good_ease_rule": self.good_ease_rule.value,
        }


DEFAULT_POLICY = SchedulerPolicy()


@dataclass(frozen=True)
class GradeEntry:
    reviewed_at: datetime
    grade: float


@dataclass(frozen=True)
class ScheduleState:
    """Scheduling fields of a card; the rest of the card is opaque payload."""

    repetitions: int = 0
    interval_days: int = 0
    ease_factor: float = DEFAULT_EASE
    next_review_at: datetime | None = None
    review_count: int = 0
    last_reviewed_at: datetime | None = None
    grade_history: tuple[GradeEntry, ...] = ()

    @classmethod
    def initial(cls, created_at: datetime | None = None) -> "ScheduleState":
        """Default state of a card just added to a deck (due immediately)."""

        return cls(next_review_at=_as_utc(created_at) if created_at else _utcnow())

    @classmethod
    def from_mapping(
        cls, payload: Mapping[str, Any], *, now: datetime | None = None
    ) -> "ScheduleState":
        """Build a state from a loosely typed record, applying defaults.

        Accepts snake_case keys as well as the camelCase names used by the
        JSON card records (`interval`, `easeFactor`, `nextReviewAt`/`due`,
        `reviews`, `lastReviewedAt`, `gradeLog`). Absent values fall back to
        the new-card defaults; a falsy ease factor becomes 2.5.
        """

        repetitions = _read_count(payload, ("repetitions",))
        interval_days = _read_count(payload, ("interval_days", "interval", "intervalDays"))
        review_count = _read_count(payload, ("review_count", "reviews", "reviewCount"))

        ease_key, raw_ease = _pick(payload, ("ease_factor", "easeFactor", "ease"))
        ease = _read_number(ease_key or "ease_factor", raw_ease)
        if not ease:
            ease = DEFAULT_EASE

        due_key, raw_due = _pick(payload, ("next_review_at", "nextReviewAt", "due_at", "due"))
        next_review_at = _read_timestamp(due_key or "next_review_at", raw_due)
        if next_review_at is None:
            next_review_at = _as_utc(now) if now else _utcnow()

        last_key, raw_last = _pick(payload, ("last_reviewed_at", "lastReviewedAt"))
        last_reviewed_at = _read_timestamp(last_key or "last_reviewed_at", raw_last)

        _, raw_history = _pick(payload, ("grade_history", "gradeHistory", "gradeLog"))
        history = _read_history(raw_history)

        return cls(
            repetitions=repetitions,
            interval_days=interval_days,
            ease_factor=ease,
            next_review_at=next_review_at,
            review_count=review_count,
            last_reviewed_at=last_reviewed_at,
            grade_history=history,
        )


def coerce_grade(raw: object) -> float:
    """Read a submitted grade and clamp it into [0, 5].

    Integers, floats and numeric strings are accepted. `None`, booleans,
    non-numeric strings, NaN and infinities raise `InvalidGrade`. Finite
    numbers too large for a float (`10**400`, `"1e400"`) clamp by sign.
    """

    if raw is None or isinstance(raw, bool):
        raise InvalidGrade(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise InvalidGrade(raw)
        try:
            value = float(text)
        except ValueError:
            raise InvalidGrade(raw) from None
        if math.isinf(value) and "inf" not in text.lower():
            value = math.copysign(MAX_GRADE, value)
    else:
        try:
            value = float(raw)  # type: ignore[arg-type]
        except OverflowError:
            value = MAX_GRADE if raw > 0 else MIN_GRADE  # type: ignore[operator]
        except (TypeError, ValueError):
            raise InvalidGrade(raw) from None
    if not math.isfinite(value):
        raise InvalidGrade(raw)
    return min(MAX_GRADE, max(MIN_GRADE, value))


def classify_grade(grade: float) -> GradeBand:
    """Map a clamped grade onto its scheduling band."""

    if grade <= 2:
        return GradeBand.lapse
    if grade < 4:
        return GradeBand.good
    return GradeBand.easy


def schedule_review(
    state: ScheduleState | Mapping[str, Any],
    grade: object,
    *,
    now: datetime | None = None,
    policy: SchedulerPolicy | None = None,
) -> ScheduleState:
    """Compute the scheduling state following a review.

    The input is never mutated; a new `ScheduleState` is returned with the
    review counter incremented, `last_reviewed_at` set to the review instant
    and one `GradeEntry` appended to the history.
    """

    policy = policy or DEFAULT_POLICY
    q = coerce_grade(grade)
    reviewed_at = _as_utc(now) if now else _utcnow()
    if not isinstance(state, ScheduleState):
        state = ScheduleState.from_mapping(state, now=reviewed_at)

    repetitions = state.repetitions
    interval_days = state.interval_days
    ease = state.ease_factor or policy.initial_ease
    band = classify_grade(q)

    if band is GradeBand.lapse:
        step = int(math.floor(q))
        repetitions = 0
        interval_days = 0
        ease -= policy.lapse_penalties[step]
        next_review_at = reviewed_at + timedelta(minutes=policy.lapse_minutes[step])
    elif band is GradeBand.good:
        if repetitions == 0:
            interval_days = policy.first_interval_days
        elif repetitions == 1:
            interval_days = policy.second_interval_days
        else:
            interval_days = max(1, _round_half_up(interval_days * ease))
        repetitions += 1
        if policy.good_ease_rule is GoodEaseRule.sm2:
            ease += _sm2_ease_delta(q)
        next_review_at = reviewed_at + timedelta(days=interval_days)
    else:
        ease += policy.easy_ease_bonus
        if repetitions == 0:
            interval_days = policy.easy_first_interval_days
        elif repetitions == 1:
            interval_days = _round_half_up(policy.second_interval_days * policy.easy_bonus)
        else:
            interval_days = max(1, _round_half_up(interval_days * ease * policy.easy_bonus))
        repetitions += 1
        next_review_at = reviewed_at + timedelta(days=interval_days)

    ease = max(policy.min_ease, ease)
    entry = GradeEntry(reviewed_at=reviewed_at, grade=_compact_grade(q))

    return replace(
        state,
        repetitions=repetitions,
        interval_days=interval_days,
        ease_factor=round(ease, 6),
        next_review_at=next_review_at,
        review_count=state.review_count + 1,
        last_reviewed_at=reviewed_at,
        grade_history=state.grade_history + (entry,),
    )


# --- helpers ---

def _sm2_ease_delta(q: float) -> float:
    distance = MAX_GRADE - q
    return 0.1 - distance * (0.08 + distance * 0.02)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _compact_grade(q: float) -> float:
    return int(q) if q.is_integer() else q


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _pick(payload: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[str | None, Any]:
    for key in keys:
        if key in payload and payload[key] is not None:
            return key, payload[key]
    return None, None


def _read_number(field_name: str, raw: object) -> float | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise MissingState(field_name, raw)
    try:
        value = float(raw)  # type: ignore[arg-type]
    except OverflowError:
        # integers beyond float range saturate instead of failing the record
        value = sys.float_info.max if raw > 0 else -sys.float_info.max  # type: ignore[operator]
    except (TypeError, ValueError):
        raise MissingState(field_name, raw) from None
    if not math.isfinite(value):
        raise MissingState(field_name, raw)
    return value


def _read_count(payload: Mapping[str, Any], keys: tuple[str, ...]) -> int:
    key, raw = _pick(payload, keys)
    value = _read_number(key or keys[0], raw)
    if value is None:
        return 0
    return max(0, int(value))


def _read_timestamp(field_name: str, raw: object) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            raise MissingState(field_name, raw) from None
    raise MissingState(field_name, raw)


def _read_history(raw: object) -> tuple[GradeEntry, ...]:
    if not raw:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise MissingState("grade_history", raw)
    entries: list[GradeEntry] = []
    for item in raw:
        if isinstance(item, GradeEntry):
            entries.append(item)
            continue
        if not isinstance(item, Mapping):
            raise MissingState("grade_history", item)
        ts_key, raw_ts = _pick(item, ("reviewed_at", "ts"))
        reviewed_at = _read_timestamp(ts_key or "reviewed_at", raw_ts)
        grade = _read_number("grade", item.get("grade"))
        if reviewed_at is None or grade is None:
            raise MissingState("grade_history", item)
        entries.append(GradeEntry(reviewed_at=reviewed_at, grade=_compact_grade(grade)))
    return tuple(entries)
