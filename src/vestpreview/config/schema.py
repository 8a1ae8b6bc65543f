"""Pydantic schema for configuration validation."""

import hashlib
import json
from datetime import date
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, model_validator


class FreshnessEntry(BaseModel):
    """Staleness budget for one category."""
    fresh_seconds: int = Field(ge=0, description="Seconds an entry is fresh")
    stale_seconds: int = Field(ge=0, description="Seconds from store time an entry stays servable")
    is_public: bool = Field(description="Shared caches may store the response")
    immutable: bool = Field(default=False, description="Content never changes at this URL")
    must_revalidate: bool = Field(default=False, description="Caches must revalidate once stale")

    @model_validator(mode='after')
    def validate_horizons(self):
        """Ensure the stale horizon does not end before the fresh one."""
        if self.stale_seconds < self.fresh_seconds:
            raise ValueError(
                f"stale_seconds ({self.stale_seconds}) must be >= fresh_seconds ({self.fresh_seconds})"
            )
        return self


class Freshness(BaseModel):
    """Freshness policy table, one entry per category."""
    project_config: FreshnessEntry = Field(
        default_factory=lambda: FreshnessEntry(fresh_seconds=86400, stale_seconds=172800, is_public=True)
    )
    global_state: FreshnessEntry = Field(
        default_factory=lambda: FreshnessEntry(fresh_seconds=3600, stale_seconds=7200, is_public=True)
    )
    user_claim: FreshnessEntry = Field(
        default_factory=lambda: FreshnessEntry(fresh_seconds=3600, stale_seconds=3600, is_public=False)
    )
    immutable: FreshnessEntry = Field(
        default_factory=lambda: FreshnessEntry(
            fresh_seconds=31536000, stale_seconds=31536000, is_public=True, immutable=True
        )
    )
    no_cache: FreshnessEntry = Field(
        default_factory=lambda: FreshnessEntry(
            fresh_seconds=0, stale_seconds=0, is_public=True, must_revalidate=True
        )
    )

    def by_category(self) -> Dict[str, FreshnessEntry]:
        """Entries keyed by category wire name."""
        return {
            "projectConfig": self.project_config,
            "globalState": self.global_state,
            "userClaim": self.user_claim,
            "immutable": self.immutable,
            "noCache": self.no_cache,
        }


class Dedup(BaseModel):
    """In-process request deduplication."""
    enabled: bool = Field(default=True, description="Collapse identical concurrent requests")
    window_seconds: float = Field(gt=0, default=2.0, description="Sharing window for in-flight requests")


class HttpCache(BaseModel):
    """HTTP conditional caching."""
    enabled: bool = Field(default=True, description="Emit Cache-Control/ETag instead of no-store")


class DurableCache(BaseModel):
    """Server-side durable cache."""
    redis_enabled: bool = Field(default=False, description="Use Redis; otherwise an in-memory map")
    redis_url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    key_prefix: str = Field(default="app:blockchain:", description="Prefix for all cache keys")
    memory_max_entries: int = Field(gt=0, default=10_000, description="Bound of the in-memory map")
    socket_timeout_seconds: float = Field(gt=0, default=2.0, description="Redis socket timeout")


class DataSource(BaseModel):
    """Data source adapter settings."""
    api_base_url: str = Field(default="http://localhost:7000/api/v1", description="Intermediate API base URL")
    timeout_seconds: float = Field(gt=0, default=10.0, description="HTTP timeout")
    retry_attempts: int = Field(ge=1, le=5, default=2, description="Attempts per fetch before failing")
    default_season_id: int = Field(ge=0, default=1, description="Season queried when none is given")


class Simulation(BaseModel):
    """Inputs used when the on-chain config is not set yet."""
    max_token_amount: float = Field(ge=0, default=10_000, description="Default wallet allocation")
    unlock_duration_days: int = Field(ge=0, default=90, description="Unlock window length")
    unlock_start_date: date = Field(default=date(2025, 12, 16), description="Unlock start")
    base_token_claim_bps: int = Field(ge=0, le=10_000, default=0, description="Base claim share")
    early_vest_ratio_min_bps: int = Field(ge=0, le=10_000, default=2000, description="Early-vest ratio at day 0")
    early_vest_ratio_max_bps: int = Field(ge=0, le=10_000, default=6000, description="Early-vest ratio at the end")
    token_amount: float = Field(ge=0, default=76_880_160, description="Season token amount")
    loyalty_pool: float = Field(ge=0, default=0.0, description="Simulated loyalty pool")


class Logging(BaseModel):
    """Logging settings."""
    level: str = Field(default="INFO", description="Root log level")


class Config(BaseModel):
    """Complete configuration, built once at startup."""
    environment: Literal["development", "local-production", "production"] = "development"
    freshness: Freshness = Field(default_factory=Freshness)
    dedup: Dedup = Field(default_factory=Dedup)
    http_cache: HttpCache = Field(default_factory=HttpCache)
    durable_cache: DurableCache = Field(default_factory=DurableCache)
    data_source: DataSource = Field(default_factory=DataSource)
    simulation: Simulation = Field(default_factory=Simulation)
    logging: Logging = Field(default_factory=Logging)

    model_config = {"frozen": True}

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_str = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump(mode="json")
