"""Port for business-visible notifications emitted by the review client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from censorflow.domain.model import (
    BizContext,
    Decision,
    FinalOutcome,
    Resource,
    ReviewResult,
    utcnow,
)

if TYPE_CHECKING:
    from censorflow.domain.violation import UnifiedViolation


@dataclass(slots=True, frozen=True)
class BizDecisionChangedEvent:
    biz: BizContext
    outcome: FinalOutcome
    previous_decision: Decision
    biz_review_id: str
    resource: Resource | None = None
    resource_review_id: str = ""
    violations: tuple[UnifiedViolation, ...] = ()
    trace_id: str = ""
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class ResourceReviewedEvent:
    resource: Resource
    biz: BizContext
    result: ReviewResult
    outcome: FinalOutcome
    provider: str
    biz_review_id: str
    resource_review_id: str
    trace_id: str = ""
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class ViolationDetectedEvent:
    resource: Resource
    biz: BizContext
    violations: tuple[UnifiedViolation, ...]
    snapshot_id: str
    provider: str
    trace_id: str = ""
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class ManualReviewRequiredEvent:
    resource: Resource
    biz: BizContext
    biz_review_id: str
    resource_review_id: str
    manual_task_id: str
    auto_result: ReviewResult | None = None
    priority: int = 0
    expires_at: datetime | None = None
    trace_id: str = ""
    timestamp: datetime = field(default_factory=utcnow)


@runtime_checkable
class Hooks(Protocol):
    async def on_biz_decision_changed(self, event: BizDecisionChangedEvent) -> None: ...

    async def on_resource_reviewed(self, event: ResourceReviewedEvent) -> None: ...

    async def on_violation_detected(self, event: ViolationDetectedEvent) -> None: ...

    async def on_manual_review_required(self, event: ManualReviewRequiredEvent) -> None: ...
