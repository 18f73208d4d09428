"""Ports the review engine depends on."""

from __future__ import annotations

from .hooks import (
    BizDecisionChangedEvent,
    Hooks,
    ManualReviewRequiredEvent,
    ResourceReviewedEvent,
    ViolationDetectedEvent,
)
from .provider import (
    CallbackData,
    Capability,
    Provider,
    QueryResponse,
    SubmitRequest,
    SubmitResponse,
    is_async_capable,
    supports_async,
    supports_resource_type,
    supports_sync,
)
from .store import DecisionUpdate, Store

__all__ = [
    "BizDecisionChangedEvent",
    "CallbackData",
    "Capability",
    "DecisionUpdate",
    "Hooks",
    "ManualReviewRequiredEvent",
    "Provider",
    "QueryResponse",
    "ResourceReviewedEvent",
    "Store",
    "SubmitRequest",
    "SubmitResponse",
    "ViolationDetectedEvent",
    "is_async_capable",
    "supports_async",
    "supports_resource_type",
    "supports_sync",
]
