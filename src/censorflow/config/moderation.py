"""Moderation engine settings read from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_bool, env_float, env_int, optional_env_var
from censorflow.domain.errors import InvalidConfigError

DEFAULT_PRIMARY_PROVIDER: Final[str] = "manual"
DEFAULT_MERGE_POLICY: Final[str] = "most_strict"
DEFAULT_TEXT_MERGE_MAX_LEN: Final[int] = 1800
DEFAULT_TEXT_MERGE_SEPARATOR: Final[str] = "\n---\n"
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 30.0
DEFAULT_POLL_WORKERS: Final[int] = 3
DEFAULT_POLL_BATCH_SIZE: Final[int] = 50

_MERGE_POLICIES: Final[frozenset[str]] = frozenset({"most_strict", "majority", "any", "all"})


@dataclass(frozen=True, slots=True)
class ModerationConfig:
    """Pipeline, text-merge and poller settings."""

    primary_provider: str = DEFAULT_PRIMARY_PROVIDER
    secondary_provider: str | None = None
    merge_policy: str = DEFAULT_MERGE_POLICY
    enable_dedup: bool = True
    text_merge_max_len: int = DEFAULT_TEXT_MERGE_MAX_LEN
    text_merge_separator: str = DEFAULT_TEXT_MERGE_SEPARATOR
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_workers: int = DEFAULT_POLL_WORKERS
    poll_batch_size: int = DEFAULT_POLL_BATCH_SIZE

    def __post_init__(self) -> None:
        if self.merge_policy not in _MERGE_POLICIES:
            allowed = ", ".join(sorted(_MERGE_POLICIES))
            raise InvalidConfigError(
                f"Unknown merge policy {self.merge_policy!r}; expected one of: {allowed}"
            )
        if self.text_merge_max_len <= 0:
            raise InvalidConfigError("Text merge max length must be positive")
        if self.poll_interval_seconds <= 0:
            raise InvalidConfigError("Poll interval must be positive")
        if self.poll_workers <= 0 or self.poll_batch_size <= 0:
            raise InvalidConfigError("Poller workers and batch size must be positive")
        if self.secondary_provider == self.primary_provider:
            raise InvalidConfigError("Secondary provider must differ from the primary provider")

    @classmethod
    def from_environment(cls) -> ModerationConfig:
        return get_moderation_config()


def get_moderation_config() -> ModerationConfig:
    return ModerationConfig(
        primary_provider=optional_env_var("CENSORFLOW_PRIMARY_PROVIDER")
        or DEFAULT_PRIMARY_PROVIDER,
        secondary_provider=optional_env_var("CENSORFLOW_SECONDARY_PROVIDER"),
        merge_policy=optional_env_var("CENSORFLOW_MERGE_POLICY") or DEFAULT_MERGE_POLICY,
        enable_dedup=env_bool("CENSORFLOW_ENABLE_DEDUP", True),
        text_merge_max_len=env_int("CENSORFLOW_TEXT_MERGE_MAX_LEN", DEFAULT_TEXT_MERGE_MAX_LEN),
        poll_interval_seconds=env_float(
            "CENSORFLOW_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS
        ),
        poll_workers=env_int("CENSORFLOW_POLL_WORKERS", DEFAULT_POLL_WORKERS),
        poll_batch_size=env_int("CENSORFLOW_POLL_BATCH_SIZE", DEFAULT_POLL_BATCH_SIZE),
    )
