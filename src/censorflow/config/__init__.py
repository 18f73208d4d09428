"""Application configuration helpers."""

from __future__ import annotations

from .database import DatabaseConfig, get_database_config, get_database_uri
from .env import require_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .moderation import ModerationConfig, get_moderation_config
from .webhook import WebhookProviderConfig, get_webhook_config

__all__ = [
    "DatabaseConfig",
    "ModerationConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "WebhookProviderConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_moderation_config",
    "get_webhook_config",
    "require_env_var",
    "require_env_vars",
]
