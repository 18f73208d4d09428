"""Reviewing many independent short texts (chat lines, danmaku, comments) in chunks."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from censorflow.domain.errors import NoResourcesError
from censorflow.domain.model import (
    BizContext,
    Decision,
    Reason,
    Resource,
    ResourceType,
    decision_severity,
)

from .fields import (
    BLOCKING_DECISIONS,
    DEFAULT_FALLBACK_THRESHOLD,
    LOCATED_CONSERVATIVE,
    LOCATED_FALLBACK,
    LOCATED_FALLBACK_ERROR,
    BlockAction,
    review_merged,
)
from .options import SubmitInput

if TYPE_CHECKING:
    from collections.abc import Sequence

    from censorflow.domain.model import BizType, FinalOutcome
    from censorflow.domain.violation import UnifiedScene

    from .client import ModerationClient

log = getLogger(__name__)

BATCH_ID: Final[str] = "_batch_"
DEFAULT_MAX_MERGE_COUNT: Final[int] = 10


@dataclass(slots=True, frozen=True)
class BatchItem:
    biz_id: str
    text: str
    submitter_id: str = ""
    on_block: BlockAction = BlockAction.PASS_THROUGH
    extra: dict[str, str] = dataclass_field(default_factory=dict)


@dataclass(slots=True)
class BatchItemResult:
    biz_id: str
    decision: Decision
    reasons: tuple[Reason, ...] = ()
    located_by: str = ""
    confidence: float = 0.0

    @property
    def blocked(self) -> bool:
        return self.decision in BLOCKING_DECISIONS


@dataclass(slots=True, frozen=True)
class SubmitBatchInput:
    biz_type: BizType
    items: tuple[BatchItem, ...]
    scenes: tuple[UnifiedScene, ...] = ()
    trace_id: str = ""
    fallback_threshold: float = DEFAULT_FALLBACK_THRESHOLD
    disable_fallback: bool = False
    max_merge_count: int = DEFAULT_MAX_MERGE_COUNT


@dataclass(slots=True)
class SubmitBatchResult:
    results: dict[str, BatchItemResult] = dataclass_field(default_factory=dict)
    overall_decision: Decision = Decision.PASS
    used_fallback: bool = False
    pending_async: bool = False

    @property
    def blocked_count(self) -> int:
        return sum(1 for item in self.results.values() if item.blocked)

    @property
    def passed_count(self) -> int:
        return sum(1 for item in self.results.values() if item.decision == Decision.PASS)

    def add(self, item: BatchItemResult) -> None:
        self.results[item.biz_id] = item
        if decision_severity(item.decision) > decision_severity(self.overall_decision):
            self.overall_decision = item.decision


async def submit_batch(client: ModerationClient, request: SubmitBatchInput) -> SubmitBatchResult:
    if not request.items:
        raise NoResourcesError

    if len(request.items) == 1:
        return await _submit_single(client, request, request.items[0])

    size = max(request.max_merge_count, 1)
    if len(request.items) > size:
        return await _submit_chunks(client, request, size)

    return await _submit_merged(client, request, request.items)


async def _submit_chunks(
    client: ModerationClient, request: SubmitBatchInput, size: int
) -> SubmitBatchResult:
    result = SubmitBatchResult()
    items = request.items

    for start in range(0, len(items), size):
        chunk = items[start : start + size]
        try:
            chunk_result = await _submit_merged(client, request, chunk)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "Batch chunk at item %s of %s failed, marking the rest as error: %s",
                start,
                len(items),
                exc,
            )
            for item in items[start:]:
                result.results[item.biz_id] = BatchItemResult(
                    biz_id=item.biz_id,
                    decision=Decision.ERROR,
                    reasons=(Reason(code="batch_error", message=str(exc)),),
                )
            result.overall_decision = Decision.ERROR
            return result

        for item_result in chunk_result.results.values():
            result.add(item_result)
        result.used_fallback = result.used_fallback or chunk_result.used_fallback
        result.pending_async = result.pending_async or chunk_result.pending_async

    return result


async def _submit_merged(
    client: ModerationClient, request: SubmitBatchInput, items: Sequence[BatchItem]
) -> SubmitBatchResult:
    biz = BizContext(
        biz_type=request.biz_type,
        biz_id=BATCH_ID,
        submitter_id=items[0].submitter_id,
        trace_id=request.trace_id,
    )
    review = await review_merged(
        client, biz, BATCH_ID, [(item.biz_id, item.text) for item in items], request.scenes
    )
    if review is None:
        log.debug("Batch of %s items exceeds the merge budget, reviewing each", len(items))
        return await _submit_each(client, request, items, None)

    result = SubmitBatchResult(pending_async=review.submitted.pending_async)
    outcome = review.outcome

    if outcome is None:
        for item in items:
            result.add(BatchItemResult(biz_id=item.biz_id, decision=Decision.PENDING))
        return result

    if outcome.decision == Decision.PASS:
        for item in items:
            result.add(BatchItemResult(biz_id=item.biz_id, decision=Decision.PASS, confidence=1.0))
        return result

    located = review.located
    if located.found and located.confidence >= request.fallback_threshold:
        for item in items:
            if item.biz_id in located.ids:
                result.add(_inherit(item, outcome, located.method))
            else:
                result.add(
                    BatchItemResult(
                        biz_id=item.biz_id,
                        decision=Decision.PASS,
                        located_by=located.method,
                        confidence=1.0,
                    )
                )
        return result

    if request.disable_fallback:
        for item in items:
            result.add(_inherit(item, outcome, LOCATED_CONSERVATIVE))
        return result

    return await _submit_each(client, request, items, outcome)


def _inherit(item: BatchItem, outcome: FinalOutcome, located_by: str) -> BatchItemResult:
    return BatchItemResult(
        biz_id=item.biz_id,
        decision=outcome.decision,
        reasons=outcome.reasons,
        located_by=located_by,
        confidence=1.0,
    )


async def _submit_item(
    client: ModerationClient, request: SubmitBatchInput, item: BatchItem
) -> tuple[bool, BatchItemResult]:
    submitted = await client.submit(
        SubmitInput(
            biz=BizContext(
                biz_type=request.biz_type,
                biz_id=item.biz_id,
                submitter_id=item.submitter_id,
                trace_id=request.trace_id,
            ),
            resources=(
                Resource(
                    resource_id=item.biz_id,
                    type=ResourceType.TEXT,
                    content_text=item.text,
                    extra=dict(item.extra),
                ),
            ),
            scenes=request.scenes,
        )
    )
    outcome = submitted.immediate_results.get(item.biz_id)
    if outcome is None:
        return True, BatchItemResult(biz_id=item.biz_id, decision=Decision.PENDING)
    return submitted.pending_async, BatchItemResult(
        biz_id=item.biz_id, decision=outcome.decision, reasons=outcome.reasons, confidence=1.0
    )


async def _submit_single(
    client: ModerationClient, request: SubmitBatchInput, item: BatchItem
) -> SubmitBatchResult:
    pending, item_result = await _submit_item(client, request, item)
    return SubmitBatchResult(
        results={item.biz_id: item_result},
        overall_decision=item_result.decision,
        pending_async=pending,
    )


async def _submit_each(
    client: ModerationClient,
    request: SubmitBatchInput,
    items: Sequence[BatchItem],
    merged_outcome: FinalOutcome | None,
) -> SubmitBatchResult:
    result = SubmitBatchResult(used_fallback=merged_outcome is not None)

    for item in items:
        try:
            pending, item_result = await _submit_item(client, request, item)
        except Exception as exc:  # noqa: BLE001
            log.warning("Review of batch item %s failed: %s", item.biz_id, exc)
            if merged_outcome is not None:
                item_result = _inherit(item, merged_outcome, LOCATED_FALLBACK_ERROR)
            else:
                item_result = BatchItemResult(
                    biz_id=item.biz_id,
                    decision=Decision.ERROR,
                    reasons=(Reason(code="error", message=str(exc)),),
                )
        else:
            result.pending_async = result.pending_async or pending
            if merged_outcome is not None:
                item_result.located_by = LOCATED_FALLBACK
        result.add(item_result)

    return result
