"""
Centralized configuration with environment variable overrides.

Endpoints, timeouts, storage keys and every user-facing fallback string
live here. Nothing is hardcoded in the session, transport or engine logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from chatbridge.logging_context import install_session_filter

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


@dataclass(frozen=True)
class ProxyConfig:
    """Where the chat client sends its requests."""

    endpoint_url: str = os.getenv("CHAT_PROXY_URL", "http://localhost:8000/api/chatbot")
    timeout_sec: float = _safe_float("CHAT_PROXY_TIMEOUT", "30.0")


@dataclass(frozen=True)
class WebhookConfig:
    """Relay settings for the upstream automation webhook."""

    url: str = os.getenv("AUTOMATION_WEBHOOK_URL", "")
    timeout_sec: float = _safe_float("WEBHOOK_TIMEOUT", "30.0")
    allow_origin: str = os.getenv("CORS_ALLOW_ORIGIN", "*")
    host: str = os.getenv("PROXY_HOST", "127.0.0.1")
    port: int = _safe_int("PROXY_PORT", "8000")


@dataclass(frozen=True)
class SessionConfig:
    """Persistent conversation identifier storage."""

    storage_key: str = os.getenv("SESSION_STORAGE_KEY", "aisyncso:chat:session_id")
    storage_path: str = os.getenv("SESSION_STORAGE_PATH", ".chat_session.json")


@dataclass(frozen=True)
class MessageConfig:
    """Fixed strings shown to the user."""

    connection_error: str = os.getenv(
        "MSG_CONNECTION_ERROR", "Sorry, I'm having trouble connecting. Please try again."
    )
    upstream_error: str = os.getenv(
        "MSG_UPSTREAM_ERROR",
        "I received your message, but the server didn't return a response. "
        "Please check the automation workflow configuration.",
    )
    form_ready: str = os.getenv("MSG_FORM_READY", "We're ready to schedule your call.")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    messages: MessageConfig = field(default_factory=MessageConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "chatbridge")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.proxy.timeout_sec <= 0:
        raise ValueError(
            f"CHAT_PROXY_TIMEOUT must be > 0, got {config.proxy.timeout_sec}"
        )
    if config.webhook.timeout_sec <= 0:
        raise ValueError(
            f"WEBHOOK_TIMEOUT must be > 0, got {config.webhook.timeout_sec}"
        )
    if not 1 <= config.webhook.port <= 65535:
        raise ValueError(
            f"PROXY_PORT must be between 1 and 65535, got {config.webhook.port}"
        )
    if not config.session.storage_key.strip():
        raise ValueError("SESSION_STORAGE_KEY must not be empty")

    for url_name, url_value in [
        ("CHAT_PROXY_URL", config.proxy.endpoint_url),
        ("AUTOMATION_WEBHOOK_URL", config.webhook.url),
    ]:
        if url_value and not url_value.startswith(("http://", "https://")):
            raise ValueError(f"{url_name} must be an http(s) URL, got {url_value!r}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_session_filter(logging.getLogger().handlers)
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
