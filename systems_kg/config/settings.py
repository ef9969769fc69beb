"""
SKGConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> skg = SystemsKG("./kb")

    >>> # Explicit configuration
    >>> config = SKGConfig(max_concurrent_jobs=5, llm_model="gpt-4o-mini")
    >>> skg = SystemsKG("./kb", config=config)

    >>> # From config file
    >>> config = SKGConfig.from_file("./systems_kg.toml")

Environment Variables:
    SYSTEMS_KG_LLM_PROVIDER - LLM provider name
    SYSTEMS_KG_LLM_MODEL - Model for systems extraction
    SYSTEMS_KG_MAX_CONCURRENT_JOBS - Max jobs processing at once
    SYSTEMS_KG_MEMORY_THRESHOLD - Admission memory budget in bytes
    SYSTEMS_KG_CACHE_MAX_BYTES - Bounded cache budget in bytes
    SYSTEMS_KG_EXTRACTION_BATCH_SIZE - Chunks extracted concurrently per batch
    OPENAI_API_KEY - OpenAI API key (standard name)
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

_MB = 1024 * 1024

DEFAULT_EXPECTED_KEYWORDS: tuple[str, ...] = (
    "youth centre",
    "business hub",
    "sports program",
    "student boarding",
    "crisis youth",
    "training",
    "education",
    "health",
    "housing",
)


class SKGConfig:
    """Configuration for systems-kg."""

    # === LLM Configuration ===

    llm_provider: str = "openai"
    """LLM provider: "openai" """

    llm_model: str = "gpt-4o"
    """Model for systems extraction"""

    llm_temperature: float = 0.3
    """Sampling temperature for extraction calls"""

    llm_max_tokens: int = 2000
    """Response budget per extraction call"""

    llm_timeout_seconds: float = 60.0
    """Per-call timeout before the call counts as a transient failure"""

    openai_api_key: str | None = None

    # === Extraction Configuration ===

    extraction_batch_size: int = 3
    """Chunks extracted concurrently; each batch is awaited before the next"""

    extraction_max_retries: int = 1
    """Retries for transient LLM failures per chunk (0 = no retries)"""

    extraction_retry_backoff_seconds: float = 1.0
    """Linear backoff step between retries"""

    chunk_size_chars: int = 4000
    """Target characters per chunk"""

    chunk_overlap_chars: int = 200
    """Characters repeated between neighbouring chunks"""

    quote_min_length: int = 50
    """Quotes this short or shorter are dropped during consolidation"""

    # === Scheduler Configuration ===

    max_concurrent_jobs: int = 3
    """Jobs allowed in processing at once"""

    memory_threshold: int = 512 * _MB
    """Admission budget: sum of running job memory estimates"""

    default_job_memory: int = 50 * _MB
    """Base memory estimate per job, added to the payload size"""

    job_history_limit: int = 100
    """Finished jobs kept for status lookups"""

    # === Cache Configuration ===

    cache_max_bytes: int = 100 * _MB
    """Byte budget for intermediate results"""

    cache_ttl_seconds: float | None = 30 * 60
    """Entry lifetime; None keeps entries until evicted"""

    # === Quality Configuration ===

    duplicate_similarity_threshold: float = 0.7
    """Name similarity above which two entities are duplicate candidates"""

    generic_name_min_length: int = 15
    """Names shorter than this count as generic"""

    high_confidence_threshold: float = 0.8
    review_confidence_threshold: float = 0.6
    low_confidence_threshold: float = 0.5

    expected_keywords: list[str] = list(DEFAULT_EXPECTED_KEYWORDS)
    """Keywords a complete extraction is expected to mention"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        self.expected_keywords = list(DEFAULT_EXPECTED_KEYWORDS)

        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.openai_api_key = os.getenv("OPENAI_API_KEY")

        if provider := os.getenv("SYSTEMS_KG_LLM_PROVIDER"):
            self.llm_provider = provider
        if model := os.getenv("SYSTEMS_KG_LLM_MODEL"):
            self.llm_model = model
        if jobs := os.getenv("SYSTEMS_KG_MAX_CONCURRENT_JOBS"):
            self.max_concurrent_jobs = int(jobs)
        if threshold := os.getenv("SYSTEMS_KG_MEMORY_THRESHOLD"):
            self.memory_threshold = int(threshold)
        if cache_bytes := os.getenv("SYSTEMS_KG_CACHE_MAX_BYTES"):
            self.cache_max_bytes = int(cache_bytes)
        if batch := os.getenv("SYSTEMS_KG_EXTRACTION_BATCH_SIZE"):
            self.extraction_batch_size = int(batch)

    @classmethod
    def from_file(cls, path: str | Path) -> "SKGConfig":
        """
        Load configuration from TOML file.

        Nested sections are flattened with a section prefix.

        Example TOML:
            [llm]
            provider = "openai"
            model = "gpt-4o-mini"

            [scheduler]
            max_concurrent_jobs = 4

            [cache]
            max_bytes = 52428800

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        flat_config: dict[str, Any] = {}

        # Map section names to config key prefixes
        section_mapping = {
            "llm": "llm_",
            "extraction": "",
            "scheduler": "",
            "cache": "cache_",
            "quality": "",
            "api_keys": "",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    if section == "api_keys":
                        # api_keys.openai -> openai_api_key
                        flat_config[f"{key}_api_key"] = value
                    else:
                        flat_config[f"{prefix}{key}"] = value

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "SKGConfig":
        """Load configuration from environment variables only."""
        return cls()

    def with_overrides(self, **kwargs: Any) -> "SKGConfig":
        """Return new config with specified overrides."""
        new_config = SKGConfig.__new__(SKGConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                value = getattr(self, key)
                setattr(new_config, key, list(value) if isinstance(value, list) else value)
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config
