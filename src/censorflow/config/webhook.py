"""Settings for the generic HTTP moderation provider."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

WEBHOOK_PROVIDER_NAME = "webhook"
WEBHOOK_SUBMIT_TIMEOUT_SECONDS = 10.0
WEBHOOK_POLL_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class WebhookProviderConfig:
    """Holds the moderation service endpoint and credentials."""

    base_url: str
    api_key: str
    resilience: ResilienceConfig
    callback_secret: str | None = None
    name: str = WEBHOOK_PROVIDER_NAME

    @classmethod
    def from_environment(cls) -> WebhookProviderConfig:
        return get_webhook_config()


def default_webhook_resilience(base_url: str) -> ResilienceConfig:
    return ResilienceConfig(
        name=WEBHOOK_PROVIDER_NAME,
        base_url=base_url,
        submit_timeout_seconds=WEBHOOK_SUBMIT_TIMEOUT_SECONDS,
        poll_timeout_seconds=WEBHOOK_POLL_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
    )


def get_webhook_config(*, resilience: ResilienceConfig | None = None) -> WebhookProviderConfig:
    values = require_env_vars(("CENSORFLOW_WEBHOOK_BASE_URL", "CENSORFLOW_WEBHOOK_API_KEY"))
    base_url = values["CENSORFLOW_WEBHOOK_BASE_URL"]
    return WebhookProviderConfig(
        base_url=base_url,
        api_key=values["CENSORFLOW_WEBHOOK_API_KEY"],
        callback_secret=optional_env_var("CENSORFLOW_WEBHOOK_CALLBACK_SECRET"),
        resilience=resilience or default_webhook_resilience(base_url),
    )
