"""Builders for review clients wired to in-memory collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from censorflow.adapters.memory import InMemoryStore
from censorflow.domain.hooks import FuncHooks
from censorflow.domain.model import BizContext, BizType, Resource, ResourceType
from censorflow.domain.review import ClientOptions, ModerationClient, PipelineConfig

from tests.helpers.providers import MockProvider

if TYPE_CHECKING:
    from censorflow.domain.ports import (
        BizDecisionChangedEvent,
        ManualReviewRequiredEvent,
        Provider,
        ResourceReviewedEvent,
        Store,
        ViolationDetectedEvent,
    )
    from censorflow.domain.review import MergePolicy
    from censorflow.domain.textmerge import TextMergeStrategy


@dataclass
class RecordedEvents:
    decisions: list[BizDecisionChangedEvent] = field(default_factory=list)
    reviewed: list[ResourceReviewedEvent] = field(default_factory=list)
    violations: list[ViolationDetectedEvent] = field(default_factory=list)
    manual: list[ManualReviewRequiredEvent] = field(default_factory=list)

    def hooks(self) -> FuncHooks:
        return FuncHooks(
            biz_decision_changed=self.decisions.append,
            resource_reviewed=self.reviewed.append,
            violation_detected=self.violations.append,
            manual_review_required=self.manual.append,
        )


def make_client(
    *providers: Provider,
    store: Store | None = None,
    secondary: str | None = None,
    merge: MergePolicy | None = None,
    events: RecordedEvents | None = None,
    text_merge: TextMergeStrategy | None = None,
    enable_dedup: bool = True,
) -> ModerationClient:
    """Client whose primary is the first provider (a passing mock when none is given)."""

    provider_list = list(providers) or [MockProvider()]
    pipeline = PipelineConfig(primary=provider_list[0].name, secondary=secondary)
    if merge is not None:
        pipeline = PipelineConfig(primary=pipeline.primary, secondary=secondary, merge=merge)
    options = ClientOptions(
        store=store if store is not None else InMemoryStore(),
        pipeline=pipeline,
        providers=provider_list,
        hooks=events.hooks() if events is not None else None,
        enable_dedup=enable_dedup,
    )
    if text_merge is not None:
        options.text_merge = text_merge
    return ModerationClient(options)


def text_resource(resource_id: str, text: str) -> Resource:
    return Resource(resource_id=resource_id, type=ResourceType.TEXT, content_text=text)


def biz(
    biz_id: str = "note-1",
    *,
    biz_type: BizType = BizType.NOTE_BODY,
    field: str = "body",
) -> BizContext:
    return BizContext(biz_type=biz_type, biz_id=biz_id, field=field, submitter_id="user-1")
