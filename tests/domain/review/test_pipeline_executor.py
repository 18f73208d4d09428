from __future__ import annotations

import asyncio
import json

from censorflow.domain.model import BizContext, BizType, Decision, Mode, Resource, ResourceType
from censorflow.domain.ports import SubmitRequest
from censorflow.domain.review import (
    MergePolicy,
    PipelineConfig,
    PipelineExecutor,
    PipelineResult,
    SubmitInput,
    TriggerRule,
)
from censorflow.domain.violation import UnifiedScene
from tests.helpers.clients import biz, make_client, text_resource
from tests.helpers.providers import MockProvider, block_result, pass_result

_REQUEST = SubmitRequest(
    resource=Resource(resource_id="r1", type=ResourceType.TEXT, content_text="text"),
    biz=BizContext(biz_type=BizType.COMMENT, biz_id="c-1"),
)


def _execute(
    primary: MockProvider,
    secondary: MockProvider | None = None,
    *,
    merge: MergePolicy = MergePolicy.MOST_STRICT,
    trigger: TriggerRule | None = None,
    request: SubmitRequest = _REQUEST,
) -> PipelineResult:
    providers = {primary.name: primary}
    if secondary is not None:
        providers[secondary.name] = secondary
    config = PipelineConfig(
        primary=primary.name,
        secondary=secondary.name if secondary is not None else None,
        trigger=trigger or TriggerRule(),
        merge=merge,
    )
    return asyncio.run(PipelineExecutor(providers, config).execute(request))


def test_primary_pass_skips_secondary() -> None:
    secondary = MockProvider("second", result=block_result())

    result = _execute(MockProvider(), secondary)

    assert secondary.submits == []
    assert result.is_complete
    assert result.final_outcome is not None
    assert result.final_outcome.decision == Decision.PASS


def test_primary_block_triggers_secondary_and_merges() -> None:
    secondary = MockProvider("second", result=pass_result())

    strict = _execute(MockProvider(result=block_result()), secondary)
    unanimous = _execute(MockProvider(result=block_result()), secondary, merge=MergePolicy.ALL)

    assert len(secondary.submits) == 2
    assert set(strict.provider_results) == {"mock", "second"}
    assert strict.final_outcome is not None
    assert strict.final_outcome.decision == Decision.BLOCK
    assert unanimous.final_outcome is not None
    assert unanimous.final_outcome.decision == Decision.PASS


def test_custom_trigger_rule() -> None:
    secondary = MockProvider("second")
    only_review = TriggerRule(on_decisions=frozenset({Decision.REVIEW}))

    _execute(MockProvider(result=block_result()), secondary, trigger=only_review)

    assert secondary.submits == []


def test_secondary_failure_keeps_primary_verdict() -> None:
    secondary = MockProvider("second", error=RuntimeError("secondary down"))

    result = _execute(MockProvider(result=block_result()), secondary)

    assert isinstance(result.secondary_error, RuntimeError)
    assert list(result.provider_results) == ["mock"]
    assert result.final_outcome is not None
    assert result.final_outcome.decision == Decision.BLOCK
    assert json.loads(result.to_json())["secondary_error"] == "secondary down"


def test_async_secondary_only_records_its_task() -> None:
    secondary = MockProvider("second", mode=Mode.ASYNC)

    result = _execute(MockProvider(result=block_result()), secondary)

    assert result.secondary_task_id == "second-task-1"
    assert list(result.provider_results) == ["mock"]


def test_async_primary_leaves_result_open() -> None:
    result = _execute(MockProvider(mode=Mode.ASYNC))

    assert not result.is_complete
    assert result.final_outcome is None
    assert result.primary_task_id == "mock-task-1"
    assert result.primary_raw == {"task_id": "mock-task-1"}


def test_uncovered_scenes_are_reported() -> None:
    primary = MockProvider(scenes=frozenset({UnifiedScene.PORNOGRAPHY}))
    request = SubmitRequest(
        resource=_REQUEST.resource,
        biz=_REQUEST.biz,
        scenes=(UnifiedScene.PORNOGRAPHY, UnifiedScene.ADS),
    )

    result = _execute(primary, request=request)

    assert result.missing_scenes == [UnifiedScene.ADS]
    assert json.loads(result.to_json())["missing_scenes"] == ["ads"]


def test_client_records_a_task_per_invoked_provider() -> None:
    secondary = MockProvider("second", result=block_result("abuse", code="abuse"))
    client = make_client(MockProvider(result=block_result()), secondary, secondary="second")

    result = asyncio.run(
        client.submit(SubmitInput(biz=biz(), resources=(text_resource("r1", "bad"),)))
    )

    primary_task = client.store.get_provider_task_by_remote_id("mock", "mock-task-1")
    secondary_task = client.store.get_provider_task_by_remote_id("second", "second-task-1")
    assert primary_task.done
    assert secondary_task.done
    assert secondary_task.result is not None
    assert secondary_task.result.decision == Decision.BLOCK
    reason_codes = [reason.code for reason in result.immediate_results["r1"].reasons]
    assert reason_codes == ["illegal", "abuse"]
