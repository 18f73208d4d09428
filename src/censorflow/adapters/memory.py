"""Thread-safe in-process store for development and tests."""

from __future__ import annotations

import copy
import threading
from typing import TYPE_CHECKING, Any

from censorflow.common.ids import IDGenerator
from censorflow.domain.errors import TaskNotFoundError
from censorflow.domain.model import (
    BizReview,
    Mode,
    PendingTask,
    ProviderTask,
    ResourceReview,
    ViolationSnapshot,
    utcnow,
)
from censorflow.domain.ports import DecisionUpdate

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from censorflow.domain.model import (
        BizContext,
        BizType,
        CensorBinding,
        CensorBindingHistory,
        Decision,
        FinalOutcome,
        Resource,
        ReviewResult,
        ReviewStatus,
    )
    from censorflow.domain.ports import Store

type BindingKey = tuple[str, str, str]


class InMemoryStore:
    """Dictionary-backed :class:`~censorflow.domain.ports.Store`.

    Every operation holds one re-entrant lock, so ``with_tx`` simply runs the callable
    while holding it. Returned entities are copies.
    """

    def __init__(self, id_generator: IDGenerator | None = None) -> None:
        self._ids = id_generator or IDGenerator()
        self._lock = threading.RLock()
        self._biz_reviews: dict[str, BizReview] = {}
        self._resource_reviews: dict[str, ResourceReview] = {}
        self._tasks: dict[str, ProviderTask] = {}
        self._bindings: dict[BindingKey, CensorBinding] = {}
        self._history: list[CensorBindingHistory] = []
        self._snapshots: dict[str, ViolationSnapshot] = {}

    # Biz reviews

    def create_biz_review(self, biz: BizContext) -> str:
        with self._lock:
            now = self.now()
            review = BizReview(
                id=self._ids.generate(),
                biz_type=biz.biz_type,
                biz_id=biz.biz_id,
                field=biz.field,
                submitter_id=biz.submitter_id,
                trace_id=biz.trace_id,
                created_at=biz.created_at or now,
                updated_at=now,
            )
            self._biz_reviews[review.id] = review
            return review.id

    def get_biz_review(self, biz_review_id: str) -> BizReview:
        with self._lock:
            return copy.copy(self._biz_review(biz_review_id))

    def update_biz_decision(self, biz_review_id: str, decision: Decision) -> DecisionUpdate:
        with self._lock:
            review = self._biz_review(biz_review_id)
            previous = review.decision
            if previous == decision:
                return DecisionUpdate(changed=False, previous=previous)
            review.decision = decision
            review.updated_at = self.now()
            return DecisionUpdate(changed=True, previous=previous)

    def update_biz_status(self, biz_review_id: str, status: ReviewStatus) -> None:
        with self._lock:
            review = self._biz_review(biz_review_id)
            review.status = status
            review.updated_at = self.now()

    # Resource reviews

    def create_resource_review(self, biz_review_id: str, resource: Resource) -> str:
        with self._lock:
            review = ResourceReview(
                id=self._ids.generate(),
                biz_review_id=biz_review_id,
                resource_id=resource.resource_id,
                resource_type=resource.type,
                content_hash=resource.content_hash,
                content_text=resource.content_text,
                content_url=resource.content_url,
            )
            self._resource_reviews[review.id] = review
            return review.id

    def get_resource_review(self, resource_review_id: str) -> ResourceReview:
        with self._lock:
            return copy.copy(self._resource_review(resource_review_id))

    def update_resource_outcome(self, resource_review_id: str, outcome: FinalOutcome) -> None:
        with self._lock:
            review = self._resource_review(resource_review_id)
            review.decision = outcome.decision
            review.outcome = outcome
            review.updated_at = self.now()

    def list_resource_reviews_by_biz_review(self, biz_review_id: str) -> list[ResourceReview]:
        with self._lock:
            return [
                copy.copy(review)
                for review in self._resource_reviews.values()
                if review.biz_review_id == biz_review_id
            ]

    # Provider tasks

    def create_provider_task(
        self,
        resource_review_id: str,
        provider: str,
        mode: Mode,
        remote_task_id: str,
        raw: dict[str, Any] | None,
    ) -> str:
        with self._lock:
            task = ProviderTask(
                id=self._ids.generate(),
                resource_review_id=resource_review_id,
                provider=provider,
                mode=mode,
                remote_task_id=remote_task_id,
                raw=dict(raw) if raw is not None else None,
            )
            self._tasks[task.id] = task
            return task.id

    def get_provider_task(self, task_id: str) -> ProviderTask:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(f"provider task {task_id}")
            return copy.copy(task)

    def get_provider_task_by_remote_id(self, provider: str, remote_task_id: str) -> ProviderTask:
        with self._lock:
            for task in self._tasks.values():
                if task.provider == provider and task.remote_task_id == remote_task_id:
                    return copy.copy(task)
            raise TaskNotFoundError(f"{provider} task {remote_task_id}")

    def update_provider_task_result(
        self,
        task_id: str,
        done: bool,
        result: ReviewResult | None,
        raw: dict[str, Any] | None,
    ) -> bool:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(f"provider task {task_id}")
            if task.done:
                return False
            task.done = done
            task.result = result
            task.raw = dict(raw) if raw is not None else task.raw
            task.updated_at = self.now()
            return True

    def list_pending_async_tasks(self, provider: str, limit: int) -> list[PendingTask]:
        with self._lock:
            pending = sorted(
                (
                    task
                    for task in self._tasks.values()
                    if task.provider == provider and task.mode == Mode.ASYNC and not task.done
                ),
                key=lambda task: task.created_at,
            )
            return [
                PendingTask(
                    provider_task_id=task.id,
                    provider=task.provider,
                    remote_task_id=task.remote_task_id,
                )
                for task in pending[:limit]
            ]

    # Bindings

    def get_binding(self, biz_type: BizType, biz_id: str, field: str) -> CensorBinding | None:
        with self._lock:
            binding = self._bindings.get((biz_type, biz_id, field))
            return copy.copy(binding) if binding is not None else None

    def upsert_binding(self, binding: CensorBinding) -> None:
        with self._lock:
            key = (binding.biz_type, binding.biz_id, binding.field)
            existing = self._bindings.get(key)
            stored = copy.copy(binding)
            if existing is not None:
                stored.id = existing.id
            else:
                stored.id = binding.id or self._ids.generate()
            self._bindings[key] = stored

    def list_bindings_by_biz(self, biz_type: BizType, biz_id: str) -> list[CensorBinding]:
        with self._lock:
            return [
                copy.copy(binding)
                for (b_type, b_id, _), binding in self._bindings.items()
                if b_type == biz_type and b_id == biz_id
            ]

    def create_binding_history(self, history: CensorBindingHistory) -> str:
        with self._lock:
            stored = copy.copy(history)
            stored.id = self._ids.generate()
            self._history.append(stored)
            return stored.id

    def list_binding_history(
        self, biz_type: BizType, biz_id: str, field: str, limit: int
    ) -> list[CensorBindingHistory]:
        with self._lock:
            matching = [
                copy.copy(entry)
                for entry in self._history
                if entry.biz_type == biz_type and entry.biz_id == biz_id and entry.field == field
            ]
        matching.sort(key=lambda entry: entry.review_revision, reverse=True)
        return matching[:limit]

    # Violation evidence

    def save_violation_snapshot(
        self, biz: BizContext, resource: Resource, outcome: FinalOutcome
    ) -> str:
        with self._lock:
            snapshot = ViolationSnapshot(
                id=self._ids.generate(),
                biz_type=biz.biz_type,
                biz_id=biz.biz_id,
                field=biz.field,
                resource_id=resource.resource_id,
                resource_type=resource.type,
                content_hash=resource.content_hash,
                content_text=resource.content_text,
                content_url=resource.content_url,
                outcome=outcome,
            )
            self._snapshots[snapshot.id] = snapshot
            return snapshot.id

    def get_violation_snapshot(self, snapshot_id: str) -> ViolationSnapshot:
        with self._lock:
            snapshot = self._snapshots.get(snapshot_id)
            if snapshot is None:
                raise TaskNotFoundError(f"violation snapshot {snapshot_id}")
            return copy.copy(snapshot)

    def list_violations_by_biz(
        self, biz_type: BizType, biz_id: str, limit: int
    ) -> list[ViolationSnapshot]:
        with self._lock:
            matching = [
                copy.copy(snapshot)
                for snapshot in self._snapshots.values()
                if snapshot.biz_type == biz_type and snapshot.biz_id == biz_id
            ]
        matching.sort(key=lambda snapshot: snapshot.created_at, reverse=True)
        return matching[:limit]

    # Lifecycle

    def now(self) -> datetime:
        return utcnow()

    def with_tx[T](self, fn: Callable[[Store], T]) -> T:
        with self._lock:
            return fn(self)

    def ping(self) -> None:
        return None

    def close(self) -> None:
        return None

    # Internals

    def _biz_review(self, biz_review_id: str) -> BizReview:
        review = self._biz_reviews.get(biz_review_id)
        if review is None:
            raise TaskNotFoundError(f"biz review {biz_review_id}")
        return review

    def _resource_review(self, resource_review_id: str) -> ResourceReview:
        review = self._resource_reviews.get(resource_review_id)
        if review is None:
            raise TaskNotFoundError(f"resource review {resource_review_id}")
        return review


if TYPE_CHECKING:
    _store_check: Store = InMemoryStore()
