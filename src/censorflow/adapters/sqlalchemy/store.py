"""Relational :class:`~censorflow.domain.ports.Store` built on the unit of work."""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from censorflow.adapters.sqlalchemy.repositories import detach
from censorflow.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
from censorflow.common.ids import IDGenerator
from censorflow.domain.errors import StoreError
from censorflow.domain.model import (
    BizReview,
    PendingTask,
    ProviderTask,
    ResourceReview,
    ViolationSnapshot,
    utcnow,
)
from censorflow.domain.ports import DecisionUpdate

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime

    from censorflow.adapters.sqlalchemy.repositories import ReviewRepositories
    from censorflow.domain.model import (
        BizContext,
        BizType,
        CensorBinding,
        CensorBindingHistory,
        Decision,
        FinalOutcome,
        Mode,
        Resource,
        ReviewResult,
        ReviewStatus,
    )
    from censorflow.domain.ports import Store

log = getLogger(__name__)


class SqlAlchemyStore:
    """Each call runs in its own unit of work unless issued inside :meth:`with_tx`.

    The adapter must be started (``unit_of_work.startup``) before the first call.
    Returned entities are detached copies.
    """

    def __init__(
        self,
        id_generator: IDGenerator | None = None,
        *,
        uow_factory: Callable[[], SqlAlchemyUnitOfWork] = SqlAlchemyUnitOfWork,
    ) -> None:
        self._ids = id_generator or IDGenerator()
        self._uow_factory = uow_factory
        self._active: SqlAlchemyUnitOfWork | None = None

    @contextmanager
    def _repositories(self, operation: str, table: str) -> Iterator[ReviewRepositories]:
        if self._active is not None:
            yield self._active.repositories
            return
        try:
            with self._uow_factory() as uow:
                yield uow.repositories
                uow.commit()
        except SQLAlchemyError as exc:
            raise StoreError(operation, table, exc) from exc

    # Biz reviews

    def create_biz_review(self, biz: BizContext) -> str:
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
        with self._repositories("create", "biz_review") as repos:
            repos.reviews.add_biz_review(review)
        return review.id

    def get_biz_review(self, biz_review_id: str) -> BizReview:
        with self._repositories("get", "biz_review") as repos:
            return detach(repos.reviews.get_biz_review(biz_review_id))

    def update_biz_decision(self, biz_review_id: str, decision: Decision) -> DecisionUpdate:
        with self._repositories("update", "biz_review") as repos:
            review = repos.reviews.get_biz_review(biz_review_id)
            previous = review.decision
            if previous == decision:
                return DecisionUpdate(changed=False, previous=previous)
            review.decision = decision
            review.updated_at = self.now()
        return DecisionUpdate(changed=True, previous=previous)

    def update_biz_status(self, biz_review_id: str, status: ReviewStatus) -> None:
        with self._repositories("update", "biz_review") as repos:
            review = repos.reviews.get_biz_review(biz_review_id)
            review.status = status
            review.updated_at = self.now()

    # Resource reviews

    def create_resource_review(self, biz_review_id: str, resource: Resource) -> str:
        now = self.now()
        review = ResourceReview(
            id=self._ids.generate(),
            biz_review_id=biz_review_id,
            resource_id=resource.resource_id,
            resource_type=resource.type,
            content_hash=resource.content_hash,
            content_text=resource.content_text,
            content_url=resource.content_url,
            created_at=now,
            updated_at=now,
        )
        with self._repositories("create", "resource_review") as repos:
            repos.reviews.add_resource_review(review)
        return review.id

    def get_resource_review(self, resource_review_id: str) -> ResourceReview:
        with self._repositories("get", "resource_review") as repos:
            return detach(repos.reviews.get_resource_review(resource_review_id))

    def update_resource_outcome(self, resource_review_id: str, outcome: FinalOutcome) -> None:
        with self._repositories("update", "resource_review") as repos:
            review = repos.reviews.get_resource_review(resource_review_id)
            review.decision = outcome.decision
            review.outcome = outcome
            review.updated_at = self.now()

    def list_resource_reviews_by_biz_review(self, biz_review_id: str) -> list[ResourceReview]:
        with self._repositories("list", "resource_review") as repos:
            return [detach(review) for review in repos.reviews.list_resource_reviews(biz_review_id)]

    # Provider tasks

    def create_provider_task(
        self,
        resource_review_id: str,
        provider: str,
        mode: Mode,
        remote_task_id: str,
        raw: dict[str, Any] | None,
    ) -> str:
        now = self.now()
        task = ProviderTask(
            id=self._ids.generate(),
            resource_review_id=resource_review_id,
            provider=provider,
            mode=mode,
            remote_task_id=remote_task_id,
            raw=dict(raw) if raw is not None else None,
            created_at=now,
            updated_at=now,
        )
        with self._repositories("create", "provider_task") as repos:
            repos.tasks.add(task)
        return task.id

    def get_provider_task(self, task_id: str) -> ProviderTask:
        with self._repositories("get", "provider_task") as repos:
            return detach(repos.tasks.get(task_id))

    def get_provider_task_by_remote_id(self, provider: str, remote_task_id: str) -> ProviderTask:
        with self._repositories("get", "provider_task") as repos:
            return detach(repos.tasks.get_by_remote_id(provider, remote_task_id))

    def update_provider_task_result(
        self,
        task_id: str,
        done: bool,
        result: ReviewResult | None,
        raw: dict[str, Any] | None,
    ) -> bool:
        with self._repositories("update", "provider_task") as repos:
            written = repos.tasks.complete(
                task_id, done=done, result=result, raw=raw, now=self.now()
            )
        if not written:
            log.debug("Provider task %s already completed; result ignored", task_id)
        return written

    def list_pending_async_tasks(self, provider: str, limit: int) -> list[PendingTask]:
        with self._repositories("list", "provider_task") as repos:
            return [
                PendingTask(
                    provider_task_id=task.id,
                    provider=task.provider,
                    remote_task_id=task.remote_task_id,
                )
                for task in repos.tasks.list_pending_async(provider, limit)
            ]

    # Bindings

    def get_binding(self, biz_type: BizType, biz_id: str, field: str) -> CensorBinding | None:
        with self._repositories("get", "censor_binding") as repos:
            binding = repos.bindings.get(biz_type, biz_id, field)
            return detach(binding) if binding is not None else None

    def upsert_binding(self, binding: CensorBinding) -> None:
        with self._repositories("upsert", "censor_binding") as repos:
            repos.bindings.upsert(binding, new_id=self._ids.generate())

    def list_bindings_by_biz(self, biz_type: BizType, biz_id: str) -> list[CensorBinding]:
        with self._repositories("list", "censor_binding") as repos:
            return [detach(binding) for binding in repos.bindings.list_by_biz(biz_type, biz_id)]

    def create_binding_history(self, history: CensorBindingHistory) -> str:
        stored = detach(history)
        stored.id = self._ids.generate()
        with self._repositories("create", "censor_binding_history") as repos:
            repos.bindings.add_history(stored)
        return stored.id

    def list_binding_history(
        self, biz_type: BizType, biz_id: str, field: str, limit: int
    ) -> list[CensorBindingHistory]:
        with self._repositories("list", "censor_binding_history") as repos:
            return [
                detach(entry)
                for entry in repos.bindings.list_history(biz_type, biz_id, field, limit)
            ]

    # Violation evidence

    def save_violation_snapshot(
        self, biz: BizContext, resource: Resource, outcome: FinalOutcome
    ) -> str:
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
            created_at=self.now(),
        )
        with self._repositories("create", "violation_snapshot") as repos:
            repos.violations.add(snapshot)
        return snapshot.id

    def get_violation_snapshot(self, snapshot_id: str) -> ViolationSnapshot:
        with self._repositories("get", "violation_snapshot") as repos:
            return detach(repos.violations.get(snapshot_id))

    def list_violations_by_biz(
        self, biz_type: BizType, biz_id: str, limit: int
    ) -> list[ViolationSnapshot]:
        with self._repositories("list", "violation_snapshot") as repos:
            return [
                detach(snapshot)
                for snapshot in repos.violations.list_by_biz(biz_type, biz_id, limit)
            ]

    # Lifecycle

    def now(self) -> datetime:
        return utcnow()

    def with_tx[T](self, fn: Callable[[Store], T]) -> T:
        """Run ``fn`` against a store bound to one session; commit once on success."""

        if self._active is not None:
            return fn(self)
        try:
            with self._uow_factory() as uow:
                bound = SqlAlchemyStore(self._ids, uow_factory=self._uow_factory)
                bound._active = uow  # noqa: SLF001
                result = fn(bound)
                uow.commit()
        except SQLAlchemyError as exc:
            raise StoreError("transaction", "*", exc) from exc
        return result

    def ping(self) -> None:
        with self._repositories("ping", "-") as repos:
            repos.reviews.session.execute(text("SELECT 1"))

    def close(self) -> None:
        return None


if TYPE_CHECKING:
    _store_check: Store = SqlAlchemyStore()
