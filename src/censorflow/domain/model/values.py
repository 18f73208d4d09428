"""Immutable value types exchanged between the client, pipeline and providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .enums import BizType, Decision, ReplacePolicy, ResourceType, RiskLevel


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class BizContext:
    """Identifies what is being reviewed (not the review itself)."""

    biz_type: BizType
    biz_id: str
    field: str = ""
    submitter_id: str = ""
    trace_id: str = ""
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class Resource:
    """A single piece of content; ``content_hash`` is the dedup key."""

    resource_id: str
    type: ResourceType
    content_text: str = ""
    content_url: str = ""
    content_hash: str = ""
    extra: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Reason:
    code: str
    message: str = ""
    provider: str = ""
    hit_tags: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ReviewResult:
    decision: Decision
    confidence: float = 0.0
    reasons: tuple[Reason, ...] = ()
    provider: str = ""
    reviewed_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class FinalOutcome:
    """Business-facing verdict for one resource, embedded as JSON in persisted rows."""

    decision: Decision
    replace_policy: ReplacePolicy = ReplacePolicy.NONE
    replace_value: str = ""
    reasons: tuple[Reason, ...] = ()
    risk_level: RiskLevel = RiskLevel.LOW


@dataclass(slots=True, frozen=True)
class PendingTask:
    provider_task_id: str
    provider: str
    remote_task_id: str


def pending_result(provider: str = "") -> ReviewResult:
    return ReviewResult(decision=Decision.PENDING, provider=provider)
