"""Configuration loading from config.yaml + .env."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Config sub-models (loaded from config.yaml)
# ---------------------------------------------------------------------------

class NewsConfig(BaseModel):
    source: str = "google_news"  # key in sources.REGISTRY
    url: str = ""  # endpoint override (required for the "json" source)
    language: str = "en"
    max_results: int = 20
    window_days: int = 3  # how far back the aggregator looks
    timeout: float = 30.0
    # Retry policy for the fetcher: 3 attempts, 1s → 2s backoff
    max_attempts: int = 3
    base_delay: float = 1.0


class CacheConfig(BaseModel):
    ttl: int = 3600  # seconds
    sweep_interval: int = 600  # background eviction period


class ScoringWeights(BaseModel):
    """Relevance weights. Hand-tuned defaults; adjust freely."""

    title_match: float = 5.0
    description_match: float = 2.0
    recency: float = 1.5
    source_reliability: float = 1.0


class ScoringConfig(BaseModel):
    weights: ScoringWeights = ScoringWeights()
    decay_rate: float = 0.02  # per hour


class LlmConfig(BaseModel):
    model: str = "anthropic/claude-3.5-sonnet"  # OpenRouter model ID
    subject_model: str = "anthropic/claude-3.5-haiku"
    base_url: str = "https://openrouter.ai/api/v1"
    max_retries: int = 2  # OpenAI client retries (429 etc.)
    timeout: float = 60.0  # per-call limit, treated like any model failure
    synthesis_max_tokens: int = 1500
    synthesis_temperature: float = 0.5
    subject_max_tokens: int = 100
    subject_temperature: float = 0.8


class BriefConfig(BaseModel):
    app_url: str = "http://localhost:3000"
    min_summary_length: int = 80  # shorter narratives count as a parse failure


class BatchConfig(BaseModel):
    size: int = 10
    delay: float = 1.0  # seconds between batches


class OutputConfig(BaseModel):
    dir: str = "output"


class AppConfig(BaseModel):
    """Application config loaded from config.yaml."""

    news: NewsConfig = NewsConfig()
    cache: CacheConfig = CacheConfig()
    scoring: ScoringConfig = ScoringConfig()
    llm: LlmConfig = LlmConfig()
    brief: BriefConfig = BriefConfig()
    batch: BatchConfig = BatchConfig()
    output: OutputConfig = OutputConfig()
    seed: str = "seed.yaml"


# ---------------------------------------------------------------------------
# Secrets (loaded from .env / environment variables)
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Secret settings loaded from environment / .env file."""

    openrouter_api_key: str = ""
    news_api_key: str = ""
    news_cache_ttl: int | None = Field(default=None)  # NEWS_CACHE_TTL overrides cache.ttl

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(config_path: str = "config.yaml") -> tuple[AppConfig, Settings]:
    """Load app config from YAML and secrets from .env."""
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        app_config = AppConfig(**data)
    else:
        app_config = AppConfig()

    settings = Settings()
    if settings.news_cache_ttl is not None:
        app_config.cache.ttl = settings.news_cache_ttl
    return app_config, settings
