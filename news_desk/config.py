"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ScraperConfig: Scraper API settings
- StoreConfig: Remote document store settings
- CacheConfig: Local cache location and freshness window
- ReconcileConfig: Persistence batching settings
- AnalysisConfig: Chunk sizes and pacing for LLM batch analysis
- ProviderConfig: LLM provider settings
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class ScraperConfig:
    """Configuration for the scraper API.

    Attributes:
        base_url: API root; articles are read from {base_url}/scraper/all-news/
        timeout_seconds: HTTP timeout, or None for no client-side timeout
        retries: Extra attempts after a failed request (0 disables retrying)
        trust_env: Whether to respect system proxy settings
    """

    base_url: str = "https://rasedbackend.onrender.com/api"
    timeout_seconds: float | None = 60.0
    retries: int = 0
    trust_env: bool = True


@dataclass
class StoreConfig:
    """Configuration for the remote document store.

    Attributes:
        backend: "file" for a local JSON document file, "memory" for an in-process
            store, "rest" for a PostgREST-style API
        path: Document file used by the "file" backend
        base_url: REST endpoint root (e.g. https://<project>.supabase.co/rest/v1)
        api_key: Optional inline key (overrides api_key_env)
        api_key_env: Environment variable holding the store key
        timeout_seconds: HTTP timeout for store requests
        failure_cooldown_ms: How long reads are suppressed after a store failure
    """

    backend: str = "file"
    path: str = ".news_desk/documents.json"
    base_url: str | None = None
    api_key: str | None = None
    api_key_env: str = "NEWS_DESK_STORE_KEY"
    timeout_seconds: float = 30.0
    failure_cooldown_ms: int = 30000


@dataclass
class CacheConfig:
    """Configuration for the local cache.

    Attributes:
        path: JSON file backing the local key/value store
        duration_minutes: Freshness window before a full refetch is due
    """

    path: str = ".news_desk/cache.json"
    duration_minutes: int = 120


@dataclass
class ReconcileConfig:
    """Configuration for reconciliation.

    Attributes:
        persist_batch_size: Articles per atomic document-store write
    """

    persist_batch_size: int = 10


@dataclass
class AnalysisConfig:
    """Configuration for LLM batch analysis.

    Attributes:
        filter_chunk_size: Articles per semantic-filter prompt
        filter_delay_seconds: Pause between semantic-filter chunks
        filter_content_chars: Content characters embedded per article in filter prompts
        sentiment_chunk_size: Articles per sentiment prompt
        sentiment_delay_seconds: Pause between sentiment chunks
        date_chunk_size: Articles per date-normalization prompt
        date_delay_seconds: Pause between date-normalization chunks
        favorites_delay_seconds: Pause between favorite-toggle batches
    """

    filter_chunk_size: int = 10
    filter_delay_seconds: float = 1.0
    filter_content_chars: int = 500
    sentiment_chunk_size: int = 15
    sentiment_delay_seconds: float = 1.5
    date_chunk_size: int = 20
    date_delay_seconds: float = 1.0
    favorites_delay_seconds: float = 0.5


@dataclass
class ProviderConfig:
    """Configuration for the LLM provider.

    Attributes:
        name: Provider name ("gemini", "openai", "openai_compatible")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: HTTP timeout per completion call, or None to wait indefinitely
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "gemini"
    model: str = "gemini-2.0-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    timeout_seconds: float | None = None
    trust_env: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    directory: str = ".news_desk/logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls_authors"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls_authors"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS = {
    "scraper": ScraperConfig,
    "store": StoreConfig,
    "cache": CacheConfig,
    "reconcile": ReconcileConfig,
    "analysis": AnalysisConfig,
    "provider": ProviderConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path or not os.path.exists(path):
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data.get(name, {})) for name, cls in _SECTIONS.items()})


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def get_store_key(cfg: StoreConfig) -> str | None:
    """Get document store key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
