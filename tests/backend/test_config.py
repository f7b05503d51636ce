"""Settings loading and normalisation."""

import pytest
from pydantic import ValidationError

from flashdeck.config import DEFAULT_DB_PATH, Settings
from flashdeck.srs import GoodEaseRule, SchedulerPolicy


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "FLASHCARDS_DB_PATH",
        "FLASHDECK_DB_PATH",
        "SRS_GOOD_EASE_RULE",
        "SRS_EASY_BONUS",
        "REVIEW_DUE_LIMIT",
        "RATE_LIMIT_PER_MIN_IP",
        "ALLOWED_CORS_ORIGINS",
        "CORS_ALLOWED_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Settings(_env_file=None)

    assert config.flashcards_db_path == DEFAULT_DB_PATH
    assert config.srs_good_ease_rule == "neutral"
    assert config.srs_easy_bonus == 1.3
    assert config.review_due_limit == 50
    assert config.allowed_cors_origins == ()


def test_db_path_accepts_legacy_alias(monkeypatch):
    monkeypatch.setenv("FLASHDECK_DB_PATH", "/tmp/other.sqlite3")

    config = Settings(_env_file=None)

    assert config.flashcards_db_path == "/tmp/other.sqlite3"


def test_good_ease_rule_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("SRS_GOOD_EASE_RULE", " SM2 ")
    monkeypatch.setenv("SRS_EASY_BONUS", "1.5")

    config = Settings(_env_file=None)
    policy = SchedulerPolicy.from_settings(config)

    assert policy.good_ease_rule is GoodEaseRule.sm2
    assert policy.easy_bonus == 1.5


def test_unknown_good_ease_rule_is_rejected(monkeypatch):
    monkeypatch.setenv("SRS_GOOD_EASE_RULE", "anki")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_non_positive_easy_bonus_is_rejected(monkeypatch):
    monkeypatch.setenv("SRS_EASY_BONUS", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_cors_origins_are_trimmed_and_deduplicated(monkeypatch):
    monkeypatch.setenv(
        "CORS_ALLOWED_ORIGINS",
        " https://app.example.com ,https://admin.example.com,https://app.example.com ",
    )

    config = Settings(_env_file=None)

    assert config.allowed_cors_origins == (
        "https://app.example.com",
        "https://admin.example.com",
    )
