"""Persistence port for reviews, provider tasks, bindings and violation evidence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from censorflow.domain.model import (
        BizContext,
        BizReview,
        BizType,
        CensorBinding,
        CensorBindingHistory,
        Decision,
        FinalOutcome,
        Mode,
        PendingTask,
        ProviderTask,
        Resource,
        ResourceReview,
        ReviewResult,
        ReviewStatus,
        ViolationSnapshot,
    )


@dataclass(slots=True, frozen=True)
class DecisionUpdate:
    changed: bool
    previous: Decision


@runtime_checkable
class Store(Protocol):
    """Synchronous store contract; lookups of missing rows raise ``TaskNotFoundError``."""

    # Biz reviews
    def create_biz_review(self, biz: BizContext) -> str: ...

    def get_biz_review(self, biz_review_id: str) -> BizReview: ...

    def update_biz_decision(self, biz_review_id: str, decision: Decision) -> DecisionUpdate: ...

    def update_biz_status(self, biz_review_id: str, status: ReviewStatus) -> None: ...

    # Resource reviews
    def create_resource_review(self, biz_review_id: str, resource: Resource) -> str: ...

    def get_resource_review(self, resource_review_id: str) -> ResourceReview: ...

    def update_resource_outcome(self, resource_review_id: str, outcome: FinalOutcome) -> None: ...

    def list_resource_reviews_by_biz_review(self, biz_review_id: str) -> list[ResourceReview]: ...

    # Provider tasks
    def create_provider_task(
        self,
        resource_review_id: str,
        provider: str,
        mode: Mode,
        remote_task_id: str,
        raw: dict[str, Any] | None,
    ) -> str: ...

    def get_provider_task(self, task_id: str) -> ProviderTask: ...

    def get_provider_task_by_remote_id(
        self, provider: str, remote_task_id: str
    ) -> ProviderTask: ...

    def update_provider_task_result(
        self,
        task_id: str,
        done: bool,
        result: ReviewResult | None,
        raw: dict[str, Any] | None,
    ) -> bool:
        """Record a provider result; returns ``False`` without writing if already done."""
        ...

    def list_pending_async_tasks(self, provider: str, limit: int) -> list[PendingTask]: ...

    # Bindings
    def get_binding(self, biz_type: BizType, biz_id: str, field: str) -> CensorBinding | None: ...

    def upsert_binding(self, binding: CensorBinding) -> None: ...

    def list_bindings_by_biz(self, biz_type: BizType, biz_id: str) -> list[CensorBinding]: ...

    def create_binding_history(self, history: CensorBindingHistory) -> str: ...

    def list_binding_history(
        self, biz_type: BizType, biz_id: str, field: str, limit: int
    ) -> list[CensorBindingHistory]: ...

    # Violation evidence
    def save_violation_snapshot(
        self, biz: BizContext, resource: Resource, outcome: FinalOutcome
    ) -> str: ...

    def get_violation_snapshot(self, snapshot_id: str) -> ViolationSnapshot: ...

    def list_violations_by_biz(
        self, biz_type: BizType, biz_id: str, limit: int
    ) -> list[ViolationSnapshot]: ...

    # Lifecycle
    def now(self) -> datetime: ...

    def with_tx[T](self, fn: Callable[[Store], T]) -> T: ...

    def ping(self) -> None: ...

    def close(self) -> None: ...
