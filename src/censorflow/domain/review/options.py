"""Configuration and input/output types of the review client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from censorflow.domain.model import Decision
from censorflow.domain.textmerge import TextMergeStrategy
from censorflow.domain.violation import ReviewRequirementRegistry

if TYPE_CHECKING:
    from censorflow.domain.model import (
        BizContext,
        BizReview,
        FinalOutcome,
        Resource,
        ResourceReview,
    )
    from censorflow.domain.ports import Hooks, Provider, Store
    from censorflow.domain.violation import UnifiedScene

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 30.0
DEFAULT_POLL_TIMEOUT_SECONDS: Final[float] = 3600.0


class MergePolicy(StrEnum):
    MOST_STRICT = "most_strict"
    MAJORITY = "majority"
    ANY = "any"
    ALL = "all"


@dataclass(slots=True, frozen=True)
class TriggerRule:
    """Primary decisions that cause the secondary provider to run."""

    on_decisions: frozenset[Decision] = field(
        default_factory=lambda: frozenset({Decision.BLOCK, Decision.REVIEW, Decision.ERROR})
    )

    def should_trigger(self, decision: Decision) -> bool:
        return decision in self.on_decisions


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    primary: str
    secondary: str | None = None
    trigger: TriggerRule = field(default_factory=TriggerRule)
    merge: MergePolicy = MergePolicy.MOST_STRICT


@dataclass(slots=True)
class ClientOptions:
    store: Store | None
    pipeline: PipelineConfig
    providers: list[Provider] = field(default_factory=list)
    hooks: Hooks | None = None
    text_merge: TextMergeStrategy = field(default_factory=TextMergeStrategy)
    enable_dedup: bool = True
    requirements: ReviewRequirementRegistry = field(default_factory=ReviewRequirementRegistry)
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS


@dataclass(slots=True, frozen=True)
class SubmitInput:
    biz: BizContext
    resources: tuple[Resource, ...]
    scenes: tuple[UnifiedScene, ...] = ()
    enable_text_merge: bool = False


@dataclass(slots=True)
class SubmitResult:
    """``immediate_results`` is keyed by resource id; async resources are absent."""

    biz_review_id: str
    resource_review_ids: dict[str, str] = field(default_factory=dict)
    immediate_results: dict[str, FinalOutcome] = field(default_factory=dict)
    pending_async: bool = False


@dataclass(slots=True, frozen=True)
class QueryInput:
    biz_review_id: str


@dataclass(slots=True)
class QueryResult:
    biz_review: BizReview
    resource_reviews: list[ResourceReview]
    all_complete: bool
    final_outcome: FinalOutcome | None = None
