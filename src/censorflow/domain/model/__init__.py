"""Public domain model surface."""

from __future__ import annotations

from censorflow.domain.model.entities import (
    BindingChange,
    BizReview,
    CensorBinding,
    CensorBindingHistory,
    ProviderTask,
    ResourceReview,
    ViolationSnapshot,
)
from censorflow.domain.model.enums import (
    BizType,
    Decision,
    HistorySource,
    Mode,
    ReplacePolicy,
    ResourceType,
    ReviewStatus,
    RiskLevel,
    decision_severity,
    strictest,
)
from censorflow.domain.model.values import (
    BizContext,
    FinalOutcome,
    PendingTask,
    Reason,
    Resource,
    ReviewResult,
    pending_result,
    utcnow,
)

__all__ = [
    "BindingChange",
    "BizContext",
    "BizReview",
    "BizType",
    "CensorBinding",
    "CensorBindingHistory",
    "Decision",
    "FinalOutcome",
    "HistorySource",
    "Mode",
    "PendingTask",
    "ProviderTask",
    "Reason",
    "ReplacePolicy",
    "Resource",
    "ResourceReview",
    "ResourceType",
    "ReviewResult",
    "ReviewStatus",
    "RiskLevel",
    "ViolationSnapshot",
    "decision_severity",
    "pending_result",
    "strictest",
    "utcnow",
]
