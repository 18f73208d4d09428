"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from censorflow.adapters.manual import ManualProvider
from censorflow.adapters.resilient import wrap_with_resilience
from censorflow.adapters.sqlalchemy import SqlAlchemyStore
from censorflow.adapters.sqlalchemy.unit_of_work import is_started, startup
from censorflow.adapters.webhook import WebhookModerationProvider
from censorflow.config import ModerationConfig, get_moderation_config, get_webhook_config
from censorflow.config.webhook import WEBHOOK_PROVIDER_NAME
from censorflow.domain.model import BizContext, Resource, ResourceType
from censorflow.domain.review import (
    ClientOptions,
    MergePolicy,
    ModerationClient,
    PipelineConfig,
    Poller,
    PollerConfig,
    SubmitInput,
)
from censorflow.domain.textmerge import TextMergeStrategy

if TYPE_CHECKING:
    from censorflow.config import WebhookProviderConfig
    from censorflow.domain.model import BizType, CensorBinding, CensorBindingHistory
    from censorflow.domain.ports import Hooks, Provider, Store
    from censorflow.domain.review import SubmitResult

log = getLogger(__name__)


def init_database(*, database_uri: str | None = None, force: bool = False) -> None:
    """Create or upgrade the schema and start the SQL adapter."""

    if is_started() and not force:
        log.info("Database adapter already started")
        return
    log.info("Starting database migration")
    startup(database_uri=database_uri, force=force)
    log.info("Finished database migration")


def build_providers(
    config: ModerationConfig,
    *,
    webhook: WebhookProviderConfig | None = None,
) -> list[Provider]:
    """Instantiate the providers named by ``config``, each wrapped with retries and API logs.

    The manual review queue is always available; the HTTP provider is only built when it
    is selected, since it needs its own credentials.
    """

    wanted = {config.primary_provider, config.secondary_provider} - {None}
    providers: list[Provider] = [ManualProvider()]
    if WEBHOOK_PROVIDER_NAME in wanted:
        providers.append(WebhookModerationProvider(webhook or get_webhook_config()))
    return [wrap_with_resilience(provider) for provider in providers]


def build_client(
    *,
    config: ModerationConfig | None = None,
    store: Store | None = None,
    providers: list[Provider] | None = None,
    hooks: Hooks | None = None,
) -> ModerationClient:
    effective_config = config or get_moderation_config()
    if store is None:
        init_database()
        store = SqlAlchemyStore()

    return ModerationClient(
        ClientOptions(
            store=store,
            pipeline=PipelineConfig(
                primary=effective_config.primary_provider,
                secondary=effective_config.secondary_provider,
                merge=MergePolicy(effective_config.merge_policy),
            ),
            providers=providers if providers is not None else build_providers(effective_config),
            hooks=hooks,
            text_merge=TextMergeStrategy(
                max_len=effective_config.text_merge_max_len,
                separator=effective_config.text_merge_separator,
            ),
            enable_dedup=effective_config.enable_dedup,
            poll_interval=effective_config.poll_interval_seconds,
        )
    )


def submit_text(
    *,
    biz_type: BizType,
    biz_id: str,
    text: str,
    field: str = "",
    submitter_id: str = "",
    client: ModerationClient | None = None,
) -> SubmitResult:
    """Review one piece of text for a business field."""

    if not text.strip():
        raise ValueError("Text to review must not be empty")

    effective_client = client or build_client()
    resource = Resource(
        resource_id=f"{biz_type}_{biz_id}_{field or 'text'}",
        type=ResourceType.TEXT,
        content_text=text,
    )
    log.info("Starting review: biz_type=%s, biz_id=%s, field=%s", biz_type, biz_id, field)

    result = asyncio.run(
        effective_client.submit(
            SubmitInput(
                biz=BizContext(
                    biz_type=biz_type, biz_id=biz_id, field=field, submitter_id=submitter_id
                ),
                resources=(resource,),
            )
        )
    )

    log.info(
        f"Finished review: biz_review={result.biz_review_id}, "
        f"immediate={len(result.immediate_results)}, pending_async={result.pending_async}"
    )
    return result


@dataclass(slots=True)
class BindingReport:
    binding: CensorBinding | None
    history: list[CensorBindingHistory]


def get_binding_report(
    *,
    biz_type: BizType,
    biz_id: str,
    field: str = "",
    history_limit: int = 10,
    client: ModerationClient | None = None,
) -> BindingReport:
    effective_client = client or build_client()
    return BindingReport(
        binding=effective_client.get_binding(biz_type, biz_id, field),
        history=effective_client.get_binding_history(
            biz_type, biz_id, field, limit=history_limit
        ),
    )


def poll_pending_tasks(
    *,
    client: ModerationClient | None = None,
    providers: tuple[str, ...] | None = None,
    batch_size: int | None = None,
) -> int:
    """Run one polling cycle over the async providers; returns the tasks examined."""

    effective_client = client or build_client()
    config = get_moderation_config() if client is None else None
    poller = Poller(
        effective_client,
        PollerConfig(
            poll_interval=effective_client.options.poll_interval,
            batch_size=batch_size or (config.poll_batch_size if config else 50),
            workers=config.poll_workers if config else 3,
            providers=providers,
        ),
    )
    log.info("Starting poll cycle: providers=%s", ", ".join(poller.provider_names) or "-")
    examined = asyncio.run(poller.poll_now())
    log.info("Finished poll cycle: examined=%s", examined)
    return examined
