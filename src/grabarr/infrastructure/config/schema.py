"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from grabarr.domain.entities.http import RateLimitBudget, RetryPolicy

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackend = Literal["memory", "diskcache"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


# ----------------------------------------------------------------------
# HTTP / providers
# ----------------------------------------------------------------------


class RateLimitConfig(BaseModel):
    """Sliding-window budget for one provider."""

    max_requests: int = Field(ge=1, description="Admissions per window.")
    window_seconds: float = Field(gt=0, description="Window length (seconds).")

    def to_budget(self) -> RateLimitBudget:
        return RateLimitBudget(self.max_requests, self.window_seconds)


class RetryConfig(BaseModel):
    """Retry/backoff applied to every provider call."""

    max_retries: int = Field(default=3, ge=0)
    backoff_base_seconds: float = Field(default=1.0, gt=0)
    max_backoff_seconds: float = Field(default=10.0, gt=0)
    jitter_ratio: float = Field(default=0.25, ge=0, le=1)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            backoff_base=self.backoff_base_seconds,
            max_backoff=self.max_backoff_seconds,
            jitter_ratio=self.jitter_ratio,
        )


class ProviderConfig(BaseModel):
    """Fields shared by every provider section."""

    rate_limit: Optional[RateLimitConfig] = Field(
        default=None,
        description="Budget override. Unset = the adapter's conservative default.",
    )

    def budget(self) -> RateLimitBudget | None:
        return self.rate_limit.to_budget() if self.rate_limit else None


class IgdbConfig(ProviderConfig):
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


class ProwlarrConfig(ProviderConfig):
    url: Optional[str] = None
    api_key: Optional[str] = None


class SteamConfig(ProviderConfig):
    api_key: Optional[str] = None
    steam_id: Optional[str] = None


class GogConfig(ProviderConfig):
    refresh_token: Optional[str] = None


# ----------------------------------------------------------------------
# Scoring / policy
# ----------------------------------------------------------------------


class QualityTier(BaseModel):
    """One release-quality marker. Tiers are checked in list order."""

    label: str
    bonus: int
    pattern: str = Field(description="Case-insensitive regex, word-bounded.")


def _default_quality_tiers() -> list[QualityTier]:
    return [
        QualityTier(label="GOG", bonus=50, pattern=r"gog"),
        QualityTier(label="DRM-Free", bonus=40, pattern=r"drm[\s._-]?free"),
        QualityTier(
            label="Repack",
            bonus=20,
            pattern=r"repack|fitgirl|dodi|elamigos|kaos",
        ),
        QualityTier(
            label="Scene",
            bonus=10,
            pattern=(
                r"scene|codex|skidrow|plaza|reloaded|prophet|cpy|hoodlum"
                r"|tenoke|empress|rune|flt|razor1911|darksiders|tinyiso|chronos"
            ),
        ),
    ]


class ScoringConfig(BaseModel):
    """Release-scoring magnitudes.

    Defaults are the heuristic values the ranking was tuned with. The quality
    tiers must stay in strictly decreasing bonus order.
    """

    base_score: int = 100

    platform_mismatch_penalty: int = 200
    platform_match_bonus: int = 10

    title_exact_bonus: int = 50
    title_partial_bonus: int = 25
    title_mismatch_penalty: int = 50
    title_partial_ratio: float = Field(default=0.5, ge=0, le=1)
    significant_word_min_length: int = Field(default=4, ge=1)

    year_bonus: int = 20

    quality_tiers: list[QualityTier] = Field(default_factory=_default_quality_tiers)

    low_seeders_threshold: int = 5
    low_seeders_penalty: int = 30
    healthy_seeders_threshold: int = 20
    healthy_seeders_bonus: int = 10

    max_age_days: int = Field(default=730, ge=0)
    age_penalty: int = 20

    min_size_gb: float = Field(default=0.1, ge=0)
    max_size_gb: float = Field(default=200.0, gt=0)
    size_penalty: int = 50

    high_confidence_score: int = 150
    low_confidence_score: int = 80

    @field_validator("quality_tiers")
    @classmethod
    def _validate_tier_order(cls, v: list[QualityTier]) -> list[QualityTier]:
        for higher, lower in zip(v, v[1:]):
            if lower.bonus >= higher.bonus:
                raise ValueError(
                    "quality_tiers bonuses must be strictly decreasing "
                    f"({higher.label}={higher.bonus}, {lower.label}={lower.bonus})"
                )
        return v

    @model_validator(mode="after")
    def _validate_ranges(self) -> "ScoringConfig":
        if self.min_size_gb >= self.max_size_gb:
            raise ValueError("min_size_gb must be < max_size_gb")
        if self.low_confidence_score > self.high_confidence_score:
            raise ValueError("low_confidence_score must be <= high_confidence_score")
        return self


class AutoGrabConfig(BaseModel):
    min_score: int = Field(default=100, description="Minimum score to auto-grab.")
    min_seeders: int = Field(default=5, ge=0, description="Minimum seeders.")
    dry_run: bool = Field(
        default=False, description="Report decisions without acting on them."
    )


class DiscoverConfig(BaseModel):
    """Cached discovery lists and their refresh cadence."""

    trending_ttl_minutes: float = Field(default=15, gt=0)
    top_releases_ttl_minutes: float = Field(default=5, gt=0)
    popularity_types_ttl_minutes: float = Field(default=60 * 24, gt=0)
    popularity_types: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    trending_limit: int = Field(default=50, ge=1)
    top_releases_query: str = "game"
    top_releases_limit: int = Field(default=50, ge=1)
    pacing_seconds: float = Field(
        default=0.5, ge=0, description="Delay between sequential provider calls."
    )


class ResolverConfig(BaseModel):
    per_name_limit: int = Field(default=5, ge=1)
    pacing_seconds: float = Field(
        default=0.0, ge=0, description="Delay between batch groups."
    )
    clean_release_names: bool = Field(
        default=False,
        description="Strip scene/version tags from release names before resolving. Storefront titles are never cleaned.",
    )


class CacheConfig(BaseSettings):
    """Cache configuration (backend-agnostic)."""

    backend: CacheBackend = Field(
        default="diskcache",
        description="Cache backend: 'memory' or 'diskcache' (SQLite)",
    )
    directory: Path = Field(
        default=Path("./.cache/grabarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )
    sweep_interval_minutes: float = Field(
        default=60,
        gt=0,
        description="How often expired rows are reaped.",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRABARR_CACHE_",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/providers/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="grabarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for provider calls.",
    )
    http_user_agent: str = Field(
        default="grabarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Providers (YAML section: providers.<name>.*)
    igdb: IgdbConfig = Field(
        default_factory=IgdbConfig,
        validation_alias=AliasChoices("igdb", AliasPath("providers", "igdb")),
    )
    prowlarr: ProwlarrConfig = Field(
        default_factory=ProwlarrConfig,
        validation_alias=AliasChoices("prowlarr", AliasPath("providers", "prowlarr")),
    )
    steam: SteamConfig = Field(
        default_factory=SteamConfig,
        validation_alias=AliasChoices("steam", AliasPath("providers", "steam")),
    )
    gog: GogConfig = Field(
        default_factory=GogConfig,
        validation_alias=AliasChoices("gog", AliasPath("providers", "gog")),
    )

    release_categories: list[int] = Field(
        default_factory=lambda: [4050],
        description="Indexer category ids passed through to release searches.",
    )

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    auto_grab: AutoGrabConfig = Field(default_factory=AutoGrabConfig)
    discover: DiscoverConfig = Field(default_factory=DiscoverConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def provider_budgets(self) -> dict[str, RateLimitBudget]:
        """Configured budget overrides keyed by provider name."""
        sections: dict[str, ProviderConfig] = {
            "igdb": self.igdb,
            "prowlarr": self.prowlarr,
            "steam": self.steam,
            "gog": self.gog,
        }
        return {
            name: budget
            for name, section in sections.items()
            if (budget := section.budget()) is not None
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read GRABARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - GRABARR_LOG_LEVEL
    - GRABARR_IGDB_CLIENT_ID / GRABARR_IGDB_CLIENT_SECRET
    - GRABARR_PROWLARR_URL / GRABARR_PROWLARR_API_KEY
    - GRABARR_AUTO_GRAB_MIN_SCORE
    """

    model_config = SettingsConfigDict(
        env_prefix="GRABARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    igdb_client_id: Optional[str] = None
    igdb_client_secret: Optional[str] = None
    prowlarr_url: Optional[str] = None
    prowlarr_api_key: Optional[str] = None
    steam_api_key: Optional[str] = None
    steam_id: Optional[str] = None
    gog_refresh_token: Optional[str] = None

    auto_grab_min_score: Optional[int] = None
    auto_grab_min_seeders: Optional[int] = None
    dry_run: Optional[bool] = None

    cache_backend: Optional[CacheBackend] = None
    cache_dir: Optional[Path] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
