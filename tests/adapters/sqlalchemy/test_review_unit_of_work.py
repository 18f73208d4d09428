from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from censorflow.adapters.sqlalchemy import SqlAlchemyStore
from censorflow.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from censorflow.common.ids import IDGenerator
from censorflow.domain.errors import StoreError, TaskNotFoundError
from censorflow.domain.model import BizContext, BizReview, BizType, Decision

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

_BIZ = BizContext(biz_type=BizType.COMMENT, biz_id="c-1")


class _FixedIDs(IDGenerator):
    def generate(self) -> str:
        return "fixed"


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_migrations_create_every_table(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {
        "biz_review",
        "resource_review",
        "provider_task",
        "censor_binding",
        "censor_binding_history",
        "violation_snapshot",
    } <= tables


def test_unit_of_work_commits_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.reviews.add_biz_review(
            BizReview(id="kept", biz_type=BizType.COMMENT, biz_id="c-1")
        )
        uow.commit()

    with pytest.raises(RuntimeError, match="abort"), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.reviews.add_biz_review(
            BizReview(id="dropped", biz_type=BizType.COMMENT, biz_id="c-2")
        )
        uow.session.flush()
        raise RuntimeError("abort")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.reviews.get_biz_review("kept").biz_id == "c-1"
        with pytest.raises(TaskNotFoundError):
            uow.repositories.reviews.get_biz_review("dropped")


def test_store_transaction_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    store = SqlAlchemyStore()
    created: list[str] = []

    def create_then_fail(tx: object) -> None:
        assert isinstance(tx, SqlAlchemyStore)
        created.append(tx.create_biz_review(_BIZ))
        tx.update_biz_decision(created[0], Decision.BLOCK)
        raise ValueError("rolled back")

    with pytest.raises(ValueError, match="rolled back"):
        store.with_tx(create_then_fail)

    with pytest.raises(TaskNotFoundError):
        store.get_biz_review(created[0])


def test_database_errors_become_store_errors(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    store = SqlAlchemyStore(_FixedIDs())
    store.create_biz_review(_BIZ)

    with pytest.raises(StoreError) as excinfo:
        store.create_biz_review(_BIZ)

    assert excinfo.value.operation == "create"
    assert excinfo.value.table == "biz_review"
