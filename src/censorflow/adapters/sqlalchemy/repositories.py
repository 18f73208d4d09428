"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update

from censorflow.adapters.sqlalchemy.mappings import (
    censor_binding_history_table,
    censor_binding_table,
    provider_task_table,
    resource_review_table,
    violation_snapshot_table,
)
from censorflow.domain.errors import TaskNotFoundError
from censorflow.domain.model import (
    BizReview,
    CensorBinding,
    CensorBindingHistory,
    Mode,
    ProviderTask,
    ResourceReview,
    ViolationSnapshot,
)

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.orm import Session

    from censorflow.domain.model import BizType, ReviewResult


def detach[T](entity: T) -> T:
    """Return a transient copy so callers never hold session-bound instances."""

    cls = type(entity)
    values = {item.name: getattr(entity, item.name) for item in fields(cls)}  # type: ignore[arg-type]
    return cls(**values)


def _get_or_raise[T](session: Session, entity_cls: type[T], entity_id: str, label: str) -> T:
    entity = session.get(entity_cls, entity_id)
    if entity is None:
        raise TaskNotFoundError(f"{label} {entity_id}")
    return entity


class SqlAlchemyReviewRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_biz_review(self, review: BizReview) -> None:
        self.session.add(review)

    def get_biz_review(self, biz_review_id: str) -> BizReview:
        return _get_or_raise(self.session, BizReview, biz_review_id, "biz review")

    def add_resource_review(self, review: ResourceReview) -> None:
        self.session.add(review)

    def get_resource_review(self, resource_review_id: str) -> ResourceReview:
        return _get_or_raise(self.session, ResourceReview, resource_review_id, "resource review")

    def list_resource_reviews(self, biz_review_id: str) -> list[ResourceReview]:
        stmt = (
            select(ResourceReview)
            .where(resource_review_table.c.biz_review_id == biz_review_id)
            .order_by(resource_review_table.c.created_at, resource_review_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyProviderTaskRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, task: ProviderTask) -> None:
        self.session.add(task)

    def get(self, task_id: str) -> ProviderTask:
        return _get_or_raise(self.session, ProviderTask, task_id, "provider task")

    def get_by_remote_id(self, provider: str, remote_task_id: str) -> ProviderTask:
        stmt = (
            select(ProviderTask)
            .where(provider_task_table.c.provider == provider)
            .where(provider_task_table.c.remote_task_id == remote_task_id)
            .limit(1)
        )
        task = self.session.execute(stmt).scalar_one_or_none()
        if task is None:
            raise TaskNotFoundError(f"{provider} task {remote_task_id}")
        return task

    def complete(
        self,
        task_id: str,
        *,
        done: bool,
        result: ReviewResult | None,
        raw: dict[str, Any] | None,
        now: datetime,
    ) -> bool:
        """Write a result only while ``done`` is still false; report whether it was written."""

        self.session.flush()
        values: dict[str, Any] = {"done": done, "result": result, "updated_at": now}
        if raw is not None:
            values["raw"] = raw
        stmt = (
            update(provider_task_table)
            .where(provider_task_table.c.id == task_id)
            .where(provider_task_table.c.done.is_(False))
            .values(**values)
        )
        written = self.session.execute(stmt).rowcount > 0  # type: ignore[attr-defined]
        if written:
            self.session.expire_all()
            return True

        exists = self.session.execute(
            select(provider_task_table.c.id).where(provider_task_table.c.id == task_id)
        ).first()
        if exists is None:
            raise TaskNotFoundError(f"provider task {task_id}")
        return False

    def list_pending_async(self, provider: str, limit: int) -> list[ProviderTask]:
        stmt = (
            select(ProviderTask)
            .where(provider_task_table.c.provider == provider)
            .where(provider_task_table.c.mode == Mode.ASYNC)
            .where(provider_task_table.c.done.is_(False))
            .order_by(provider_task_table.c.created_at, provider_task_table.c.id)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyBindingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, biz_type: BizType, biz_id: str, field: str) -> CensorBinding | None:
        stmt = (
            select(CensorBinding)
            .where(censor_binding_table.c.biz_type == biz_type)
            .where(censor_binding_table.c.biz_id == biz_id)
            .where(censor_binding_table.c.field == field)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, binding: CensorBinding, *, new_id: str) -> None:
        existing = self.get(binding.biz_type, binding.biz_id, binding.field)
        if existing is None:
            stored = detach(binding)
            stored.id = binding.id or new_id
            self.session.add(stored)
            return

        for item in fields(CensorBinding):
            if item.name != "id":
                setattr(existing, item.name, getattr(binding, item.name))

    def list_by_biz(self, biz_type: BizType, biz_id: str) -> list[CensorBinding]:
        stmt = (
            select(CensorBinding)
            .where(censor_binding_table.c.biz_type == biz_type)
            .where(censor_binding_table.c.biz_id == biz_id)
            .order_by(censor_binding_table.c.field)
        )
        return list(self.session.execute(stmt).scalars())

    def add_history(self, history: CensorBindingHistory) -> None:
        self.session.add(history)

    def list_history(
        self, biz_type: BizType, biz_id: str, field: str, limit: int
    ) -> list[CensorBindingHistory]:
        table = censor_binding_history_table
        stmt = (
            select(CensorBindingHistory)
            .where(table.c.biz_type == biz_type)
            .where(table.c.biz_id == biz_id)
            .where(table.c.field == field)
            .order_by(table.c.review_revision.desc(), table.c.created_at.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyViolationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, snapshot: ViolationSnapshot) -> None:
        self.session.add(snapshot)

    def get(self, snapshot_id: str) -> ViolationSnapshot:
        return _get_or_raise(self.session, ViolationSnapshot, snapshot_id, "violation snapshot")

    def list_by_biz(self, biz_type: BizType, biz_id: str, limit: int) -> list[ViolationSnapshot]:
        stmt = (
            select(ViolationSnapshot)
            .where(violation_snapshot_table.c.biz_type == biz_type)
            .where(violation_snapshot_table.c.biz_id == biz_id)
            .order_by(violation_snapshot_table.c.created_at.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


@dataclass(slots=True)
class ReviewRepositories:
    """Repositories sharing one session."""

    reviews: SqlAlchemyReviewRepository
    tasks: SqlAlchemyProviderTaskRepository
    bindings: SqlAlchemyBindingRepository
    violations: SqlAlchemyViolationRepository
