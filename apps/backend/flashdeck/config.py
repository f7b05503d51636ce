from typing import Annotated, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/flashdeck.sqlite3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    - environment: runtime environment (development/staging/production)
    - flashcards_db_path: SQLite file holding users, decks, cards and stats
    - srs_*: scheduler policy knobs
    """

    environment: str = Field(
        default="development",
        description="Runtime environment",
    )

    # --- persistence ---
    flashcards_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to the SQLite database for decks, cards and review statistics",
        validation_alias=AliasChoices("flashcards_db_path", "flashdeck_db_path"),
    )

    # --- scheduler policy ---
    srs_good_ease_rule: Literal["neutral", "sm2"] = Field(
        default="neutral",
        description=(
            "How a 'Good' grade adjusts the ease factor: 'neutral' keeps it, "
            "'sm2' applies the classic SM-2 ease formula"
        ),
    )
    srs_easy_bonus: float = Field(
        default=1.3,
        gt=0,
        description="Interval multiplier applied on top of the ease factor for 'Easy' grades",
    )
    review_due_limit: int = Field(
        default=50,
        ge=1,
        description="Max cards returned by the due queue endpoint",
    )

    # --- operations ---
    rate_limit_per_min_ip: int = Field(
        default=240,
        description="Per-IP API requests per minute",
    )
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins",
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins.

        カンマ区切り文字列・シーケンスのどちらも受け付け、前後の空白を除去し
        空要素と重複を取り除いた順序付き tuple を返す。
        """

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @field_validator("srs_good_ease_rule", mode="before")
    @classmethod
    def _normalise_good_ease_rule(cls, raw_rule: object) -> object:
        """`SM2` や ` neutral ` のような表記揺れを小文字・trim 済みに揃える。"""
        if isinstance(raw_rule, str):
            return raw_rule.strip().lower()
        return raw_rule


settings = Settings()
