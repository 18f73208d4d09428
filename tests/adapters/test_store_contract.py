"""Behaviour every Store implementation must share."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from censorflow.adapters.memory import InMemoryStore
from censorflow.adapters.sqlalchemy import SqlAlchemyStore
from censorflow.domain.errors import TaskNotFoundError
from censorflow.domain.model import (
    BizContext,
    BizType,
    CensorBinding,
    CensorBindingHistory,
    Decision,
    FinalOutcome,
    HistorySource,
    Mode,
    Reason,
    ReplacePolicy,
    Resource,
    ResourceType,
    ReviewResult,
    ReviewStatus,
    RiskLevel,
)
from censorflow.domain.ports import Store

_BIZ = BizContext(
    biz_type=BizType.USER_BIO, biz_id="user-9", field="bio", submitter_id="user-9", trace_id="t-1"
)
_RESOURCE = Resource(
    resource_id="bio", type=ResourceType.TEXT, content_text="hello there", content_hash="h1"
)
_OUTCOME = FinalOutcome(
    decision=Decision.REVIEW,
    replace_policy=ReplacePolicy.MASK,
    replace_value="***",
    reasons=(Reason(code="abuse", provider="vendor", hit_tags=("idiot",), raw={"score": 0.7}),),
    risk_level=RiskLevel.MEDIUM,
)


@pytest.fixture(params=["memory", "sqlalchemy"])
def store(request: pytest.FixtureRequest) -> Store:
    if request.param == "memory":
        return InMemoryStore()
    return SqlAlchemyStore(uow_factory=request.getfixturevalue("sqlite_unit_of_work"))


def _binding(decision: Decision = Decision.BLOCK, revision: int = 1) -> CensorBinding:
    return CensorBinding(
        biz_type=_BIZ.biz_type,
        biz_id=_BIZ.biz_id,
        field=_BIZ.field,
        resource_id="bio",
        content_hash="h1",
        review_id="rr-1",
        decision=decision,
        review_revision=revision,
        updated_at=datetime(2024, 5, 1, tzinfo=UTC),
    )


def test_store_satisfies_protocol(store: Store) -> None:
    assert isinstance(store, Store)
    store.ping()


def test_biz_review_decision_reports_changes(store: Store) -> None:
    review_id = store.create_biz_review(_BIZ)

    created = store.get_biz_review(review_id)
    first = store.update_biz_decision(review_id, Decision.BLOCK)
    repeat = store.update_biz_decision(review_id, Decision.BLOCK)
    store.update_biz_status(review_id, ReviewStatus.DONE)

    assert created.decision == Decision.PENDING
    assert created.status == ReviewStatus.PENDING
    assert created.trace_id == "t-1"
    assert (first.changed, first.previous) == (True, Decision.PENDING)
    assert (repeat.changed, repeat.previous) == (False, Decision.BLOCK)
    stored = store.get_biz_review(review_id)
    assert stored.decision == Decision.BLOCK
    assert stored.status == ReviewStatus.DONE


def test_missing_rows_raise_task_not_found(store: Store) -> None:
    with pytest.raises(TaskNotFoundError):
        store.get_biz_review("404")
    with pytest.raises(TaskNotFoundError):
        store.get_resource_review("404")
    with pytest.raises(TaskNotFoundError):
        store.get_provider_task("404")
    with pytest.raises(TaskNotFoundError):
        store.get_provider_task_by_remote_id("vendor", "404")
    with pytest.raises(TaskNotFoundError):
        store.update_provider_task_result("404", True, None, None)
    with pytest.raises(TaskNotFoundError):
        store.get_violation_snapshot("404")


def test_resource_outcome_round_trips(store: Store) -> None:
    biz_review_id = store.create_biz_review(_BIZ)
    first = store.create_resource_review(biz_review_id, _RESOURCE)
    second = store.create_resource_review(biz_review_id, _RESOURCE)

    store.update_resource_outcome(first, _OUTCOME)

    review = store.get_resource_review(first)
    assert review.decision == Decision.REVIEW
    assert review.outcome == _OUTCOME
    assert review.content_text == "hello there"
    reviews = store.list_resource_reviews_by_biz_review(biz_review_id)
    assert [r.id for r in reviews] == [first, second]
    assert [r.is_complete for r in reviews] == [True, False]


def test_provider_task_completes_exactly_once(store: Store) -> None:
    biz_review_id = store.create_biz_review(_BIZ)
    review_id = store.create_resource_review(biz_review_id, _RESOURCE)
    task_id = store.create_provider_task(review_id, "vendor", Mode.ASYNC, "remote-1", {"a": 1})
    result = ReviewResult(decision=Decision.PASS, confidence=0.9, provider="vendor")

    assert [p.remote_task_id for p in store.list_pending_async_tasks("vendor", 10)] == ["remote-1"]
    assert store.update_provider_task_result(task_id, True, result, {"status": "done"})
    assert not store.update_provider_task_result(task_id, True, None, None)

    task = store.get_provider_task(task_id)
    assert task.done
    assert task.result == result
    assert task.raw == {"status": "done"}
    assert store.get_provider_task_by_remote_id("vendor", "remote-1").id == task_id
    assert store.list_pending_async_tasks("vendor", 10) == []


def test_pending_listing_filters_mode_provider_and_limit(store: Store) -> None:
    biz_review_id = store.create_biz_review(_BIZ)
    review_id = store.create_resource_review(biz_review_id, _RESOURCE)
    for index in range(3):
        store.create_provider_task(review_id, "vendor", Mode.ASYNC, f"a-{index}", None)
    store.create_provider_task(review_id, "vendor", Mode.SYNC, "s-1", None)
    store.create_provider_task(review_id, "other", Mode.ASYNC, "o-1", None)

    pending = store.list_pending_async_tasks("vendor", 2)

    assert [p.remote_task_id for p in pending] == ["a-0", "a-1"]
    assert {p.provider for p in pending} == {"vendor"}


def test_binding_upsert_keeps_one_row_per_field(store: Store) -> None:
    store.upsert_binding(_binding())
    first = store.get_binding(_BIZ.biz_type, _BIZ.biz_id, _BIZ.field)
    store.upsert_binding(_binding(Decision.PASS, revision=2))
    store.upsert_binding(
        CensorBinding(biz_type=_BIZ.biz_type, biz_id=_BIZ.biz_id, field="nickname")
    )

    current = store.get_binding(_BIZ.biz_type, _BIZ.biz_id, _BIZ.field)
    assert first is not None
    assert current is not None
    assert current.id == first.id
    assert current.decision == Decision.PASS
    assert current.review_revision == 2
    bindings = store.list_bindings_by_biz(_BIZ.biz_type, _BIZ.biz_id)
    assert sorted(b.field for b in bindings) == ["bio", "nickname"]
    assert store.get_binding(_BIZ.biz_type, "someone-else", "bio") is None


def test_binding_history_is_newest_first(store: Store) -> None:
    for revision in (1, 2, 3):
        store.create_binding_history(
            CensorBindingHistory(
                biz_type=_BIZ.biz_type,
                biz_id=_BIZ.biz_id,
                field=_BIZ.field,
                review_revision=revision,
                reasons=list(_OUTCOME.reasons),
                source=HistorySource.RECHECK if revision == 3 else HistorySource.AUTO,
            )
        )

    history = store.list_binding_history(_BIZ.biz_type, _BIZ.biz_id, _BIZ.field, 2)

    assert [h.review_revision for h in history] == [3, 2]
    assert history[0].source == HistorySource.RECHECK
    assert history[0].reasons == list(_OUTCOME.reasons)
    assert store.list_binding_history(_BIZ.biz_type, _BIZ.biz_id, "other", 10) == []


def test_violation_snapshots_keep_evidence(store: Store) -> None:
    snapshot_id = store.save_violation_snapshot(_BIZ, _RESOURCE, _OUTCOME)
    store.save_violation_snapshot(_BIZ, _RESOURCE, _OUTCOME)

    snapshot = store.get_violation_snapshot(snapshot_id)

    assert snapshot.content_text == "hello there"
    assert snapshot.content_hash == "h1"
    assert snapshot.outcome == _OUTCOME
    assert len(store.list_violations_by_biz(_BIZ.biz_type, _BIZ.biz_id, 10)) == 2
    assert len(store.list_violations_by_biz(_BIZ.biz_type, _BIZ.biz_id, 1)) == 1


def test_with_tx_returns_the_callable_result(store: Store) -> None:
    def create_and_read(tx: Store) -> Decision:
        review_id = tx.create_biz_review(_BIZ)
        tx.update_biz_decision(review_id, Decision.PASS)
        return tx.get_biz_review(review_id).decision

    assert store.with_tx(create_and_read) == Decision.PASS
