"""SQLAlchemy mapping metadata for the review records."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from censorflow.common.codec import (
    dump_outcome,
    dump_raw,
    dump_reasons,
    dump_result,
    load_outcome,
    load_raw,
    load_reasons,
    load_result,
)
from censorflow.domain.model import (
    BizReview,
    BizType,
    CensorBinding,
    CensorBindingHistory,
    Decision,
    FinalOutcome,
    HistorySource,
    Mode,
    ProviderTask,
    Reason,
    ReplacePolicy,
    ResourceReview,
    ResourceType,
    ReviewResult,
    ReviewStatus,
    ViolationSnapshot,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

ID_LENGTH = 32
ENUM_LENGTH = 32


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class OutcomeType(TypeDecorator[FinalOutcome]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: FinalOutcome | None, dialect: Dialect) -> str | None:
        _ = dialect
        return dump_outcome(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> FinalOutcome | None:
        _ = dialect
        return load_outcome(value)


class ReviewResultType(TypeDecorator[ReviewResult]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: ReviewResult | None, dialect: Dialect) -> str | None:
        _ = dialect
        return dump_result(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> ReviewResult | None:
        _ = dialect
        return load_result(value)


class ReasonListType(TypeDecorator[list[Reason]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Reason] | None, dialect: Dialect) -> str | None:
        _ = dialect
        return dump_reasons(value or [])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Reason]:
        _ = dialect
        return load_reasons(value)


class RawPayloadType(TypeDecorator[dict[str, Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        return dump_raw(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any] | None:
        _ = dialect
        return load_raw(value)


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


def _enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=ENUM_LENGTH,
        values_callable=_enum_values,
        validate_strings=True,
    )


def _id_column() -> Column[str]:
    return Column("id", String(ID_LENGTH), primary_key=True)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Review audit trail ------------------------------------------------------------

biz_review_table = Table(
    "biz_review",
    mapper_registry.metadata,
    _id_column(),
    Column("biz_type", _enum(BizType), nullable=False),
    Column("biz_id", String(128), nullable=False),
    Column("field", String(64), nullable=False, default=""),
    Column("submitter_id", String(128), nullable=False, default=""),
    Column("trace_id", String(128), nullable=False, default=""),
    Column("decision", _enum(Decision), nullable=False),
    Column("status", _enum(ReviewStatus), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_biz_review_biz", "biz_type", "biz_id"),
)

resource_review_table = Table(
    "resource_review",
    mapper_registry.metadata,
    _id_column(),
    Column("biz_review_id", String(ID_LENGTH), nullable=False, index=True),
    Column("resource_id", String(128), nullable=False),
    Column("resource_type", _enum(ResourceType), nullable=False),
    Column("content_hash", String(64), nullable=False, default="", index=True),
    Column("content_text", Text, nullable=False, default=""),
    Column("content_url", Text, nullable=False, default=""),
    Column("decision", _enum(Decision), nullable=False),
    Column("outcome", OutcomeType(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

provider_task_table = Table(
    "provider_task",
    mapper_registry.metadata,
    _id_column(),
    Column("resource_review_id", String(ID_LENGTH), nullable=False, index=True),
    Column("provider", String(64), nullable=False),
    Column("mode", _enum(Mode), nullable=False),
    Column("remote_task_id", String(256), nullable=False, default=""),
    Column("done", Boolean, nullable=False, default=False),
    Column("result", ReviewResultType(), nullable=True),
    Column("raw", RawPayloadType(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_provider_task_remote", "provider", "remote_task_id"),
    Index("ix_provider_task_pending", "provider", "mode", "done", "created_at"),
)

# Bindings -----------------------------------------------------------------------

censor_binding_table = Table(
    "censor_binding",
    mapper_registry.metadata,
    _id_column(),
    Column("biz_type", _enum(BizType), nullable=False),
    Column("biz_id", String(128), nullable=False),
    Column("field", String(64), nullable=False, default=""),
    Column("resource_id", String(128), nullable=False, default=""),
    Column("resource_type", _enum(ResourceType), nullable=False),
    Column("content_hash", String(64), nullable=False, default=""),
    Column("review_id", String(ID_LENGTH), nullable=False, default=""),
    Column("decision", _enum(Decision), nullable=False),
    Column("replace_policy", _enum(ReplacePolicy), nullable=False),
    Column("replace_value", Text, nullable=False, default=""),
    Column("violation_ref_id", String(ID_LENGTH), nullable=False, default=""),
    Column("review_revision", Integer, nullable=False, default=0),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("biz_type", "biz_id", "field", name="uq_censor_binding_biz_field"),
)

censor_binding_history_table = Table(
    "censor_binding_history",
    mapper_registry.metadata,
    _id_column(),
    Column("biz_type", _enum(BizType), nullable=False),
    Column("biz_id", String(128), nullable=False),
    Column("field", String(64), nullable=False, default=""),
    Column("resource_id", String(128), nullable=False, default=""),
    Column("resource_type", _enum(ResourceType), nullable=False),
    Column("content_hash", String(64), nullable=False, default=""),
    Column("review_id", String(ID_LENGTH), nullable=False, default=""),
    Column("decision", _enum(Decision), nullable=False),
    Column("replace_policy", _enum(ReplacePolicy), nullable=False),
    Column("replace_value", Text, nullable=False, default=""),
    Column("violation_ref_id", String(ID_LENGTH), nullable=False, default=""),
    Column("review_revision", Integer, nullable=False, default=0),
    Column("reasons", ReasonListType(), nullable=False),
    Column("source", _enum(HistorySource), nullable=False),
    Column("reviewer_id", String(128), nullable=False, default=""),
    Column("comment", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_censor_binding_history_biz", "biz_type", "biz_id", "field"),
)

# Violation evidence -------------------------------------------------------------

violation_snapshot_table = Table(
    "violation_snapshot",
    mapper_registry.metadata,
    _id_column(),
    Column("biz_type", _enum(BizType), nullable=False),
    Column("biz_id", String(128), nullable=False),
    Column("field", String(64), nullable=False, default=""),
    Column("resource_id", String(128), nullable=False, default=""),
    Column("resource_type", _enum(ResourceType), nullable=False),
    Column("content_hash", String(64), nullable=False, default=""),
    Column("content_text", Text, nullable=False, default=""),
    Column("content_url", Text, nullable=False, default=""),
    Column("outcome", OutcomeType(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_violation_snapshot_biz", "biz_type", "biz_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the review entities onto their tables (idempotent)."""

    mapper_registry.map_imperatively(BizReview, biz_review_table)
    mapper_registry.map_imperatively(ResourceReview, resource_review_table)
    mapper_registry.map_imperatively(ProviderTask, provider_task_table)
    mapper_registry.map_imperatively(CensorBinding, censor_binding_table)
    mapper_registry.map_imperatively(CensorBindingHistory, censor_binding_history_table)
    mapper_registry.map_imperatively(ViolationSnapshot, violation_snapshot_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
