"""
Centralized configuration with environment variable overrides.

Matching thresholds, session expiry, fallback model settings and data
paths are all configurable here. Nothing is hardcoded in router or
matching logic.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from tappy.logging_context import LOG_FORMAT, install_record_factory

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


def _optional_words(env_var: str) -> Optional[frozenset[str]]:
    """Comma-separated word list. None when the variable is unset, empty set when blank."""
    raw = os.getenv(env_var)
    if raw is None:
        return None
    return frozenset(w.strip().lower() for w in raw.split(",") if w.strip())


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings loaded from environment or defaults."""

    assistant_name: str = os.getenv("ASSISTANT_NAME", "Tappy")
    name: str = os.getenv("BUSINESS_NAME", "RST EPOS")
    products: str = os.getenv(
        "BUSINESS_PRODUCTS",
        "RST EPOS, TapaPOS, TapaPay, TapaOffice, GiveaVoucher, iWantFed and TapaTable",
    )
    contact_sales_url: str = os.getenv("CONTACT_SALES_URL", "/contact-us.html")
    contact_support_url: str = os.getenv("CONTACT_SUPPORT_URL", "/contacts.html")
    browse_faq_url: str = os.getenv("BROWSE_FAQ_URL", "/help.html")


@dataclass(frozen=True)
class MatchingConfig:
    """Scoring thresholds for the FAQ match selector."""

    match_threshold: float = _safe_float("MATCH_THRESHOLD", "6")
    dominance_ratio: float = _safe_float("DOMINANCE_RATIO", "1.9")
    absolute_auto_select: float = _safe_float("ABSOLUTE_AUTO_SELECT", "12")
    max_options: int = _safe_int("MAX_OPTIONS", "8")
    topic_boost: float = _safe_float("TOPIC_BOOST", "2.0")
    stopwords: Optional[frozenset[str]] = _optional_words("MATCH_STOPWORDS")


@dataclass(frozen=True)
class SessionConfig:
    """Session persistence and expiry settings."""

    expiry_hours: float = _safe_float("SESSION_EXPIRY_HOURS", "12")
    store_path: str = os.getenv("SESSION_STORE_PATH", "")
    sweep_interval_sec: float = _safe_float("SESSION_SWEEP_INTERVAL", "600")
    cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "tappy_session")


@dataclass(frozen=True)
class FallbackConfig:
    """Text completion fallback settings."""

    enabled: bool = _safe_bool("FALLBACK_ENABLED", "true")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.4")
    max_tokens: int = _safe_int("LLM_MAX_TOKENS", "180")
    timeout_sec: float = _safe_float("LLM_TIMEOUT", "10.0")
    cache_enabled: bool = _safe_bool("COMPLETION_CACHE_ENABLED", "true")
    cache_min_overlap: float = _safe_float("COMPLETION_CACHE_MIN_OVERLAP", "0.5")


@dataclass(frozen=True)
class DataConfig:
    """Locations of the FAQ corpus files and the lead log."""

    data_dir: str = os.getenv("DATA_DIR", "data")
    support_faqs: str = os.getenv("FAQS_SUPPORT_FILE", "faqs_support.json")
    sales_faqs: str = os.getenv("FAQS_SALES_FILE", "faqs_sales.json")
    general_faqs: str = os.getenv("FAQS_GENERAL_FILE", "faqs_general.json")
    leads_file: str = os.getenv("LEADS_FILE", "sales_leads.jsonl")
    completion_cache_file: str = os.getenv("COMPLETION_CACHE_FILE", "support_cache.json")

    def faq_files(self) -> dict[str, str]:
        """Map each corpus category to its file path."""
        return {
            "support": os.path.join(self.data_dir, self.support_faqs),
            "sales": os.path.join(self.data_dir, self.sales_faqs),
            "general": os.path.join(self.data_dir, self.general_faqs),
        }

    @property
    def leads_path(self) -> str:
        return os.path.join(self.data_dir, self.leads_file)

    @property
    def completion_cache_path(self) -> str:
        return os.path.join(self.data_dir, self.completion_cache_file)


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    data: DataConfig = field(default_factory=DataConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    max_message_length: int = _safe_int("MAX_MESSAGE_LENGTH", "1000")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.matching.match_threshold <= 0:
        raise ValueError(
            f"MATCH_THRESHOLD must be > 0, got {config.matching.match_threshold}"
        )
    if config.matching.dominance_ratio < 1.0:
        raise ValueError(
            f"DOMINANCE_RATIO must be >= 1.0, got {config.matching.dominance_ratio}"
        )
    if config.matching.absolute_auto_select < config.matching.match_threshold:
        raise ValueError(
            "ABSOLUTE_AUTO_SELECT must be >= MATCH_THRESHOLD, "
            f"got {config.matching.absolute_auto_select}"
        )
    if config.matching.max_options < 2:
        raise ValueError(
            f"MAX_OPTIONS must be >= 2, got {config.matching.max_options}"
        )
    if config.matching.topic_boost < 0:
        raise ValueError(
            f"TOPIC_BOOST must be >= 0, got {config.matching.topic_boost}"
        )
    if config.session.expiry_hours <= 0:
        raise ValueError(
            f"SESSION_EXPIRY_HOURS must be > 0, got {config.session.expiry_hours}"
        )
    if config.session.sweep_interval_sec <= 0:
        raise ValueError(
            f"SESSION_SWEEP_INTERVAL must be > 0, got {config.session.sweep_interval_sec}"
        )
    if not 0.0 <= config.fallback.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.fallback.llm_temperature}"
        )
    if config.fallback.max_tokens < 1:
        raise ValueError(
            f"LLM_MAX_TOKENS must be >= 1, got {config.fallback.max_tokens}"
        )
    if config.fallback.timeout_sec <= 0:
        raise ValueError(
            f"LLM_TIMEOUT must be > 0, got {config.fallback.timeout_sec}"
        )
    if not 0.0 < config.fallback.cache_min_overlap <= 1.0:
        raise ValueError(
            "COMPLETION_CACHE_MIN_OVERLAP must be in (0, 1], "
            f"got {config.fallback.cache_min_overlap}"
        )
    if config.max_message_length < 1:
        raise ValueError(
            f"MAX_MESSAGE_LENGTH must be >= 1, got {config.max_message_length}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    install_record_factory()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
