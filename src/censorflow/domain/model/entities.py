"""Persistent review records: the audit trail and the binding state machine."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import TYPE_CHECKING, Any

from .enums import (
    BizType,
    Decision,
    HistorySource,
    Mode,
    ReplacePolicy,
    ResourceType,
    ReviewStatus,
)
from .values import utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from .values import FinalOutcome, Reason, ReviewResult


@dataclass(eq=False, kw_only=True)
class BizReview:
    """One review per submission; parents the per-resource reviews."""

    id: str = ""
    biz_type: BizType
    biz_id: str
    field: str = ""
    submitter_id: str = ""
    trace_id: str = ""
    decision: Decision = Decision.PENDING
    status: ReviewStatus = ReviewStatus.PENDING
    created_at: datetime = dataclass_field(default_factory=utcnow)
    updated_at: datetime = dataclass_field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ResourceReview:
    id: str = ""
    biz_review_id: str
    resource_id: str
    resource_type: ResourceType
    content_hash: str = ""
    content_text: str = ""
    content_url: str = ""
    decision: Decision = Decision.PENDING
    outcome: FinalOutcome | None = None
    created_at: datetime = dataclass_field(default_factory=utcnow)
    updated_at: datetime = dataclass_field(default_factory=utcnow)

    @property
    def is_complete(self) -> bool:
        return self.decision != Decision.PENDING


@dataclass(eq=False, kw_only=True)
class ProviderTask:
    """One provider call. ``done`` flips from false to true exactly once."""

    id: str = ""
    resource_review_id: str
    provider: str
    mode: Mode
    remote_task_id: str = ""
    done: bool = False
    result: ReviewResult | None = None
    raw: dict[str, Any] | None = None
    created_at: datetime = dataclass_field(default_factory=utcnow)
    updated_at: datetime = dataclass_field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class CensorBinding:
    """Current moderation state of one business field, unique per (biz_type, biz_id, field)."""

    id: str = ""
    biz_type: BizType
    biz_id: str
    field: str = ""
    resource_id: str = ""
    resource_type: ResourceType = ResourceType.TEXT
    content_hash: str = ""
    review_id: str = ""
    decision: Decision = Decision.PENDING
    replace_policy: ReplacePolicy = ReplacePolicy.NONE
    replace_value: str = ""
    violation_ref_id: str = ""
    review_revision: int = 0
    updated_at: datetime = dataclass_field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class CensorBindingHistory:
    """Append-only record of a binding change."""

    id: str = ""
    biz_type: BizType
    biz_id: str
    field: str = ""
    resource_id: str = ""
    resource_type: ResourceType = ResourceType.TEXT
    content_hash: str = ""
    review_id: str = ""
    decision: Decision = Decision.PENDING
    replace_policy: ReplacePolicy = ReplacePolicy.NONE
    replace_value: str = ""
    violation_ref_id: str = ""
    review_revision: int = 0
    reasons: list[Reason] = dataclass_field(default_factory=list)
    source: HistorySource = HistorySource.AUTO
    reviewer_id: str = ""
    comment: str = ""
    created_at: datetime = dataclass_field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ViolationSnapshot:
    """Evidence of a detected violation; written once, never mutated."""

    id: str = ""
    biz_type: BizType
    biz_id: str
    field: str = ""
    resource_id: str = ""
    resource_type: ResourceType = ResourceType.TEXT
    content_hash: str = ""
    content_text: str = ""
    content_url: str = ""
    outcome: FinalOutcome | None = None
    created_at: datetime = dataclass_field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class BindingChange:
    old: CensorBinding | None
    new: CensorBinding

    def has_changed(self) -> bool:
        if self.old is None:
            return True
        return (
            self.old.decision != self.new.decision
            or self.old.replace_policy != self.new.replace_policy
            or self.old.replace_value != self.new.replace_value
            or self.old.violation_ref_id != self.new.violation_ref_id
        )
