from __future__ import annotations

import asyncio

import pytest

from censorflow.adapters.memory import InMemoryStore
from censorflow.common.hashing import hash_text
from censorflow.domain.errors import (
    CallbackInvalidError,
    NoResourcesError,
    ProviderNotFoundError,
    StoreNotConfiguredError,
    TaskNotFoundError,
)
from censorflow.domain.hooks import FuncHooks
from censorflow.domain.model import (
    BizType,
    Decision,
    HistorySource,
    Mode,
    ReplacePolicy,
    ReviewStatus,
    RiskLevel,
)
from censorflow.domain.review import (
    ClientOptions,
    ModerationClient,
    PipelineConfig,
    QueryInput,
    SubmitInput,
    SubmitResult,
    compute_hash,
)
from tests.helpers.clients import RecordedEvents, biz, make_client, text_resource
from tests.helpers.providers import (
    CALLBACK_TOKEN,
    CALLBACK_TOKEN_HEADER,
    MockProvider,
    block_result,
    callback_body,
    pass_result,
)

_HEADERS = {CALLBACK_TOKEN_HEADER: CALLBACK_TOKEN}


def _submit(client: ModerationClient, *texts: str, biz_id: str = "note-1") -> SubmitResult:
    resources = tuple(text_resource(f"r{i}", text) for i, text in enumerate(texts, start=1))
    return asyncio.run(client.submit(SubmitInput(biz=biz(biz_id), resources=resources)))


def test_sync_block_writes_outcome_binding_and_snapshot() -> None:
    events = RecordedEvents()
    client = make_client(MockProvider(result=block_result("违禁词")), events=events)

    result = _submit(client, "some bad text")

    outcome = result.immediate_results["r1"]
    assert outcome.decision == Decision.BLOCK
    assert outcome.risk_level == RiskLevel.SEVERE
    assert outcome.replace_policy == ReplacePolicy.NONE
    assert outcome.reasons[0].hit_tags == ("违禁词",)
    assert not result.pending_async

    binding = client.get_binding(BizType.NOTE_BODY, "note-1", "body")
    assert binding is not None
    assert binding.decision == Decision.BLOCK
    assert binding.review_revision == 1
    assert binding.content_hash == hash_text("some bad text")
    snapshot = client.get_violation_snapshot(binding.violation_ref_id)
    assert snapshot.content_text == "some bad text"
    assert snapshot.outcome is not None
    assert snapshot.outcome.decision == Decision.BLOCK
    assert [s.id for s in client.list_violations(BizType.NOTE_BODY, "note-1")] == [snapshot.id]

    history = client.get_binding_history(BizType.NOTE_BODY, "note-1", "body")
    assert len(history) == 1
    assert history[0].source == HistorySource.AUTO

    biz_review = client.store.get_biz_review(result.biz_review_id)
    assert biz_review.decision == Decision.BLOCK
    assert biz_review.status == ReviewStatus.DONE

    assert len(events.reviewed) == 1
    assert len(events.violations) == 1
    assert events.violations[0].snapshot_id == snapshot.id
    assert [e.previous_decision for e in events.decisions] == [Decision.PENDING]
    assert events.decisions[0].outcome.decision == Decision.BLOCK


def test_sync_pass_leaves_no_binding() -> None:
    events = RecordedEvents()
    client = make_client(MockProvider(), events=events)

    result = _submit(client, "hello")

    assert result.immediate_results["r1"].decision == Decision.PASS
    assert client.get_binding(BizType.NOTE_BODY, "note-1", "body") is None
    assert client.get_binding_history(BizType.NOTE_BODY, "note-1", "body") == []
    assert events.violations == []
    assert len(events.reviewed) == 1


def test_passing_sibling_keeps_the_block_binding() -> None:
    provider = MockProvider(
        responder=lambda request: (
            block_result() if "bad" in request.resource.content_text else pass_result()
        )
    )
    client = make_client(provider)

    result = _submit(client, "bad words", "fine words")

    assert result.immediate_results["r2"].decision == Decision.PASS
    binding = client.get_binding(BizType.NOTE_BODY, "note-1", "body")
    assert binding is not None
    assert binding.decision == Decision.BLOCK
    assert binding.resource_id == "r1"
    assert binding.violation_ref_id != ""
    history = client.get_binding_history(BizType.NOTE_BODY, "note-1", "body")
    assert [h.decision for h in history] == [Decision.BLOCK]


def test_identical_content_is_reviewed_once() -> None:
    provider = MockProvider(result=block_result())
    client = make_client(provider)

    first = _submit(client, "same text")
    second = _submit(client, "same text")

    assert len(provider.submits) == 1
    assert second.immediate_results["r1"].decision == Decision.BLOCK
    assert second.resource_review_ids["r1"] != first.resource_review_ids["r1"]
    assert client.store.get_biz_review(second.biz_review_id).decision == Decision.BLOCK
    history = client.get_binding_history(BizType.NOTE_BODY, "note-1", "body")
    assert len(history) == 1


def test_changed_content_or_disabled_dedup_resubmits() -> None:
    provider = MockProvider()
    client = make_client(provider)
    _submit(client, "first version")
    _submit(client, "second version")

    no_dedup_provider = MockProvider()
    no_dedup = make_client(no_dedup_provider, enable_dedup=False)
    _submit(no_dedup, "same")
    _submit(no_dedup, "same")

    assert len(provider.submits) == 2
    assert len(no_dedup_provider.submits) == 2


def test_pending_binding_is_not_reused() -> None:
    provider = MockProvider(mode=Mode.ASYNC)
    client = make_client(provider)

    _submit(client, "waiting")
    _submit(client, "waiting")

    assert len(provider.submits) == 2


def test_aggregation_takes_the_strictest_child() -> None:
    provider = MockProvider(
        responder=lambda request: (
            block_result() if "bad" in request.resource.content_text else pass_result()
        )
    )
    client = make_client(provider, enable_dedup=False)

    result = _submit(client, "fine", "bad words", "also fine")

    reviews = client.store.list_resource_reviews_by_biz_review(result.biz_review_id)
    assert len(reviews) == 3
    assert client.store.get_biz_review(result.biz_review_id).decision == Decision.BLOCK

    query = client.query(QueryInput(biz_review_id=result.biz_review_id))
    assert query.all_complete
    assert query.final_outcome is not None


def test_callbacks_complete_async_reviews() -> None:
    events = RecordedEvents()
    provider = MockProvider(mode=Mode.ASYNC)
    client = make_client(provider, events=events)

    result = _submit(client, "first", "second")

    assert result.pending_async
    assert result.immediate_results == {}
    assert client.store.get_biz_review(result.biz_review_id).decision == Decision.PENDING
    assert events.decisions == []
    assert not client.query(QueryInput(biz_review_id=result.biz_review_id)).all_complete

    asyncio.run(
        client.handle_callback("mock", _HEADERS, callback_body("mock-task-1", Decision.PASS))
    )

    biz_review = client.store.get_biz_review(result.biz_review_id)
    assert biz_review.decision == Decision.PENDING
    assert biz_review.status == ReviewStatus.RUNNING
    assert len(events.reviewed) == 1

    asyncio.run(
        client.handle_callback(
            "mock", _HEADERS, callback_body("mock-task-2", Decision.BLOCK, "abuse")
        )
    )

    biz_review = client.store.get_biz_review(result.biz_review_id)
    assert biz_review.decision == Decision.BLOCK
    assert biz_review.status == ReviewStatus.DONE
    assert [e.previous_decision for e in events.decisions] == [Decision.PENDING]
    assert len(events.violations) == 1
    assert events.violations[0].provider == "mock"


def test_repeated_callback_is_ignored() -> None:
    events = RecordedEvents()
    client = make_client(MockProvider(mode=Mode.ASYNC), events=events)
    _submit(client, "text")
    body = callback_body("mock-task-1", Decision.BLOCK, "illegal")

    asyncio.run(client.handle_callback("mock", _HEADERS, body))
    asyncio.run(
        client.handle_callback("mock", _HEADERS, callback_body("mock-task-1", Decision.PASS))
    )

    assert len(events.reviewed) == 1
    binding = client.get_binding(BizType.NOTE_BODY, "note-1", "body")
    assert binding is not None
    assert binding.decision == Decision.BLOCK


def test_callback_rejections() -> None:
    client = make_client(MockProvider(mode=Mode.ASYNC))
    _submit(client, "text")
    body = callback_body("mock-task-1", Decision.PASS)

    with pytest.raises(CallbackInvalidError):
        asyncio.run(client.handle_callback("mock", {CALLBACK_TOKEN_HEADER: "wrong"}, body))
    with pytest.raises(ProviderNotFoundError):
        asyncio.run(client.handle_callback("other", _HEADERS, body))
    with pytest.raises(TaskNotFoundError):
        asyncio.run(
            client.handle_callback("mock", _HEADERS, callback_body("unknown", Decision.PASS))
        )


def test_manual_decision_overrides_binding() -> None:
    client = make_client(MockProvider(result=block_result()))
    _submit(client, "contested text")

    binding = client.apply_manual_decision(
        BizType.NOTE_BODY,
        "note-1",
        "body",
        Decision.PASS,
        reviewer_id="mod-7",
        comment="appeal accepted",
        source=HistorySource.APPEAL,
    )

    assert binding.decision == Decision.PASS
    assert binding.review_revision == 2
    assert binding.replace_policy == ReplacePolicy.NONE
    history = client.get_binding_history(BizType.NOTE_BODY, "note-1", "body")
    assert [h.review_revision for h in history] == [2, 1]
    assert history[0].source == HistorySource.APPEAL
    assert history[0].reviewer_id == "mod-7"
    assert history[0].comment == "appeal accepted"


def test_manual_decision_requires_a_binding() -> None:
    client = make_client()

    with pytest.raises(TaskNotFoundError, match="no binding"):
        client.apply_manual_decision(BizType.COMMENT, "c-1", "", Decision.BLOCK)


def test_provider_failure_records_error_outcome() -> None:
    client = make_client(MockProvider(error=RuntimeError("vendor down")))

    result = _submit(client, "text")

    assert result.immediate_results["r1"].decision == Decision.ERROR
    reviews = client.store.list_resource_reviews_by_biz_review(result.biz_review_id)
    assert reviews[0].decision == Decision.ERROR
    assert reviews[0].outcome is not None
    assert reviews[0].outcome.reasons[0].code == "error"
    assert client.store.get_biz_review(result.biz_review_id).decision == Decision.ERROR


def test_hook_failures_do_not_undo_state() -> None:
    def explode(_: object) -> None:
        raise RuntimeError("hook failed")

    client = make_client(MockProvider(result=block_result()))
    client.hooks = FuncHooks(resource_reviewed=explode, biz_decision_changed=explode)

    result = _submit(client, "text")

    assert result.immediate_results["r1"].decision == Decision.BLOCK
    assert client.get_binding(BizType.NOTE_BODY, "note-1", "body") is not None


def test_text_merge_submits_one_resource() -> None:
    provider = MockProvider()
    client = make_client(provider)
    resources = (text_resource("a", "one"), text_resource("b", "two"))

    result = asyncio.run(
        client.submit(SubmitInput(biz=biz(), resources=resources, enable_text_merge=True))
    )

    assert provider.submitted_texts == ["one\n---\ntwo"]
    assert list(result.immediate_results) == ["a_merged"]


def test_submission_preconditions() -> None:
    client = make_client()

    with pytest.raises(NoResourcesError):
        asyncio.run(client.submit(SubmitInput(biz=biz(), resources=())))
    with pytest.raises(ProviderNotFoundError):
        ModerationClient(
            ClientOptions(
                store=InMemoryStore(),
                pipeline=PipelineConfig(primary="missing"),
                providers=[MockProvider()],
            )
        )
    with pytest.raises(StoreNotConfiguredError):
        ModerationClient(ClientOptions(store=None, pipeline=PipelineConfig(primary="mock")))


def test_compute_hash_uses_text_or_url() -> None:
    resource = text_resource("r", "content")

    assert compute_hash(resource) == hash_text("content")
