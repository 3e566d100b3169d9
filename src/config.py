"""
Centralized configuration with environment variable overrides.

Business details, integration keys and persistence settings are all
configurable here. The concierge receives its ``ConciergeConfig``
explicitly; nothing downstream reads the environment directly.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from src.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"


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


def _optional(env_var: str) -> Optional[str]:
    """Return an env var value, treating blank strings as unset."""
    value = os.getenv(env_var, "").strip()
    return value or None


@dataclass(frozen=True)
class BusinessConfig:
    """Shop details used in the concierge persona."""

    name: str = os.getenv("BUSINESS_NAME", "MacWORLD")
    legal_name: str = os.getenv("BUSINESS_LEGAL_NAME", "MacWORLD Gallery Ltd.")
    location: str = os.getenv("BUSINESS_LOCATION", "Shop B18-a, Emab Plaza, Wuse II, Abuja")
    hours: str = os.getenv("BUSINESS_HOURS", "Mon-Sat, 9am-7pm")
    phone: str = os.getenv("BUSINESS_PHONE", "+234 816 836 6739")


@dataclass(frozen=True)
class ConciergeConfig:
    """Integration settings injected into the concierge at construction."""

    reply_generator_key: Optional[str] = _optional("OPENROUTER_API_KEY")
    reply_model: str = os.getenv("REPLY_MODEL", "openrouter/auto")
    reply_base_url: str = os.getenv("REPLY_BASE_URL", "https://openrouter.ai/api/v1")
    reply_timeout_sec: float = _safe_float("REPLY_TIMEOUT_SEC", "30.0")
    notifier_endpoint: Optional[str] = _optional("NOTIFIER_ENDPOINT")
    notifier_timeout_sec: float = _safe_float("NOTIFIER_TIMEOUT_SEC", "15.0")
    operator_address: Optional[str] = _optional("ADMIN_EMAIL")
    support_address: Optional[str] = _optional("SUPPORT_EMAIL")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "Rob")


@dataclass(frozen=True)
class PersistenceConfig:
    """Local session snapshot storage."""

    storage_dir: str = os.getenv("SESSION_STORAGE_DIR", ".concierge_sessions")
    session_key: str = os.getenv("SESSION_STORAGE_KEY", "macworld_rob_chat_state")
    profile_key: str = os.getenv("PROFILE_STORAGE_KEY", "macworld_rob_client")
    session_ttl_hours: int = _safe_int("SESSION_TTL_HOURS", "168")


@dataclass(frozen=True)
class SupabaseConfig:
    """Hosted database used to record completed leads."""

    url: Optional[str] = _optional("SUPABASE_URL")
    key: Optional[str] = _optional("SUPABASE_KEY")
    timeout_sec: float = _safe_float("SUPABASE_TIMEOUT_SEC", "5.0")

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.key)


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    concierge: ConciergeConfig = field(default_factory=ConciergeConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.concierge.reply_timeout_sec <= 0:
        raise ValueError(
            f"REPLY_TIMEOUT_SEC must be > 0, got {config.concierge.reply_timeout_sec}"
        )
    if config.concierge.notifier_timeout_sec <= 0:
        raise ValueError(
            f"NOTIFIER_TIMEOUT_SEC must be > 0, got {config.concierge.notifier_timeout_sec}"
        )
    if config.supabase.timeout_sec <= 0:
        raise ValueError(
            f"SUPABASE_TIMEOUT_SEC must be > 0, got {config.supabase.timeout_sec}"
        )
    if config.persistence.session_ttl_hours < 1:
        raise ValueError(
            f"SESSION_TTL_HOURS must be >= 1, got {config.persistence.session_ttl_hours}"
        )
    if not config.concierge.assistant_name.strip():
        raise ValueError("ASSISTANT_NAME must not be blank")

    endpoint = config.concierge.notifier_endpoint
    if endpoint and not endpoint.startswith(("http://", "https://")):
        raise ValueError(f"NOTIFIER_ENDPOINT must be an http(s) URL, got {endpoint!r}")


def _log_handler() -> logging.Handler:
    """Console handler that stamps every record with the active session id."""
    handler = logging.StreamHandler()
    handler.addFilter(SessionIdFilter())
    return handler


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[_log_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    logger.info(
        "Reply generator key detected: %s", bool(config.concierge.reply_generator_key)
    )
    return config


# Singleton instance
settings = load_config()
