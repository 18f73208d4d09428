from __future__ import annotations

import pytest

from censorflow.config import (
    ModerationConfig,
    RetryPolicy,
    get_moderation_config,
    get_webhook_config,
)
from censorflow.domain.errors import (
    RETRYABLE_STATUS_CODES,
    InvalidConfigError,
    MissingConfigError,
    ProviderError,
    is_config_error,
)

_MODERATION_VARS = (
    "CENSORFLOW_PRIMARY_PROVIDER",
    "CENSORFLOW_SECONDARY_PROVIDER",
    "CENSORFLOW_MERGE_POLICY",
    "CENSORFLOW_ENABLE_DEDUP",
    "CENSORFLOW_TEXT_MERGE_MAX_LEN",
    "CENSORFLOW_POLL_INTERVAL",
    "CENSORFLOW_POLL_WORKERS",
    "CENSORFLOW_POLL_BATCH_SIZE",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _MODERATION_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_moderation_defaults(clean_env: pytest.MonkeyPatch) -> None:
    config = get_moderation_config()

    assert config == ModerationConfig()
    assert config.primary_provider == "manual"
    assert config.secondary_provider is None
    assert config.enable_dedup
    assert config.text_merge_max_len == 1800


def test_moderation_reads_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("CENSORFLOW_PRIMARY_PROVIDER", "webhook")
    clean_env.setenv("CENSORFLOW_SECONDARY_PROVIDER", "manual")
    clean_env.setenv("CENSORFLOW_MERGE_POLICY", "majority")
    clean_env.setenv("CENSORFLOW_ENABLE_DEDUP", "no")
    clean_env.setenv("CENSORFLOW_POLL_INTERVAL", "2.5")
    clean_env.setenv("CENSORFLOW_POLL_WORKERS", "8")

    config = ModerationConfig.from_environment()

    assert config.primary_provider == "webhook"
    assert config.secondary_provider == "manual"
    assert config.merge_policy == "majority"
    assert not config.enable_dedup
    assert config.poll_interval_seconds == 2.5
    assert config.poll_workers == 8


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"merge_policy": "loudest"}, "Unknown merge policy"),
        ({"text_merge_max_len": 0}, "max length"),
        ({"poll_interval_seconds": 0.0}, "Poll interval"),
        ({"poll_batch_size": 0}, "batch size"),
        ({"secondary_provider": "manual"}, "must differ"),
    ],
)
def test_moderation_config_is_validated(overrides: dict[str, object], message: str) -> None:
    with pytest.raises(InvalidConfigError, match=message) as excinfo:
        ModerationConfig(**overrides)  # type: ignore[arg-type]

    assert is_config_error(excinfo.value)


def test_webhook_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CENSORFLOW_WEBHOOK_BASE_URL", raising=False)
    monkeypatch.setenv("CENSORFLOW_WEBHOOK_API_KEY", "key")

    with pytest.raises(MissingConfigError, match="CENSORFLOW_WEBHOOK_BASE_URL"):
        get_webhook_config()


def test_webhook_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CENSORFLOW_WEBHOOK_BASE_URL", "https://moderation.test")
    monkeypatch.setenv("CENSORFLOW_WEBHOOK_API_KEY", "key")
    monkeypatch.setenv("CENSORFLOW_WEBHOOK_CALLBACK_SECRET", "s3cret")

    config = get_webhook_config()

    assert config.name == "webhook"
    assert config.callback_secret == "s3cret"
    assert config.resilience.base_url == "https://moderation.test"
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 20
    assert config.resilience.timeout_for("POST") == 10.0
    assert config.resilience.timeout_for("get") == 5.0


def test_transport_retries_cover_polls_only() -> None:
    policy = RetryPolicy()

    assert policy.methods == frozenset({"GET"})
    assert policy.status_codes == RETRYABLE_STATUS_CODES
    assert ProviderError("webhook", "E503", "busy", status_code=503).retryable
    with pytest.raises(ValueError, match="provider wrapper"):
        RetryPolicy(methods=frozenset({"GET", "POST"}))
