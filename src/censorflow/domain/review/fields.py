"""Reviewing the fields of one business object with a single provider call.

Several fields are merged into one text, reviewed once, and the verdict is attributed
back to the fields by :func:`censorflow.domain.review.locate.locate`. When attribution is
not trusted, either every field inherits the verdict (conservative) or every field is
re-reviewed on its own (fallback).
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import StrEnum
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
from censorflow.domain.textmerge import merge_texts

from .locate import LocateResult, locate
from .options import SubmitInput

if TYPE_CHECKING:
    from collections.abc import Sequence

    from censorflow.domain.model import BizType, FinalOutcome
    from censorflow.domain.violation import UnifiedScene

    from .client import ModerationClient
    from .options import SubmitResult

log = getLogger(__name__)

MERGED_FIELD: Final[str] = "_merged_"
DEFAULT_FALLBACK_THRESHOLD: Final[float] = 0.8
DEFAULT_REPLACEMENT: Final[str] = "***"

LOCATED_CONSERVATIVE: Final[str] = "conservative"
LOCATED_FALLBACK: Final[str] = "fallback"
LOCATED_FALLBACK_ERROR: Final[str] = "fallback_error"

BLOCKING_DECISIONS: Final[frozenset[Decision]] = frozenset({Decision.BLOCK, Decision.REVIEW})


class BlockAction(StrEnum):
    PASS_THROUGH = "pass_through"
    REPLACE = "replace"
    HIDE = "hide"
    REJECT = "reject"


def apply_block_action(text: str, action: BlockAction, replace_with: str = "") -> tuple[str, bool]:
    """Return the value to render for a blocked field and whether it was replaced."""

    if action == BlockAction.REPLACE:
        return (replace_with or DEFAULT_REPLACEMENT), True
    if action == BlockAction.HIDE:
        return "", True
    return text, False


@dataclass(slots=True, frozen=True)
class FieldInput:
    field: str
    text: str
    on_block: BlockAction = BlockAction.PASS_THROUGH
    replace_with: str = ""


@dataclass(slots=True)
class FieldResult:
    field: str
    decision: Decision
    reasons: tuple[Reason, ...] = ()
    final_value: str = ""
    was_replaced: bool = False
    confidence: float = 0.0
    located_by: str = ""

    @property
    def blocked(self) -> bool:
        return self.decision in BLOCKING_DECISIONS


@dataclass(slots=True, frozen=True)
class SubmitFieldsInput:
    biz_type: BizType
    biz_id: str
    fields: tuple[FieldInput, ...]
    submitter_id: str = ""
    trace_id: str = ""
    scenes: tuple[UnifiedScene, ...] = ()
    fallback_threshold: float = DEFAULT_FALLBACK_THRESHOLD
    disable_fallback: bool = False


@dataclass(slots=True)
class SubmitFieldsResult:
    biz_review_id: str = ""
    field_results: dict[str, FieldResult] = dataclass_field(default_factory=dict)
    overall_decision: Decision = Decision.PASS
    used_fallback: bool = False
    pending_async: bool = False


@dataclass(slots=True, frozen=True)
class MergedReview:
    """Verdict of a merged submission; ``outcome`` is ``None`` while it is async."""

    submitted: SubmitResult
    outcome: FinalOutcome | None
    located: LocateResult


async def review_merged(
    client: ModerationClient,
    biz: BizContext,
    resource_id: str,
    items: Sequence[tuple[str, str]],
    scenes: Sequence[UnifiedScene],
) -> MergedReview | None:
    """Submit ``(id, text)`` items as one merged text resource.

    Returns ``None`` without submitting when the items do not all fit the merge budget.
    """

    merged = merge_texts([text for _, text in items], client.options.text_merge)
    if merged is None or len(merged.parts) != len(items):
        return None

    submitted = await client.submit(
        SubmitInput(
            biz=biz,
            resources=(
                Resource(
                    resource_id=resource_id,
                    type=ResourceType.TEXT,
                    content_text=merged.merged,
                ),
            ),
            scenes=tuple(scenes),
        )
    )
    outcome = submitted.immediate_results.get(resource_id)
    located = LocateResult()
    if outcome is not None and outcome.decision != Decision.PASS:
        located = locate(items, merged.index, outcome.reasons)
        log.debug(
            "Located %s of %s merged items by %s (confidence %.2f)",
            len(located.ids),
            len(items),
            located.method or "nothing",
            located.confidence,
        )
    return MergedReview(submitted=submitted, outcome=outcome, located=located)


async def submit_fields(client: ModerationClient, request: SubmitFieldsInput) -> SubmitFieldsResult:
    if not request.fields:
        raise NoResourcesError

    if len(request.fields) == 1:
        return await _submit_single(client, request)

    review = await review_merged(
        client,
        _biz(request, MERGED_FIELD),
        MERGED_FIELD,
        [(f.field, f.text) for f in request.fields],
        request.scenes,
    )
    if review is None:
        log.debug("Fields of %s exceed the merge budget, reviewing each", request.biz_id)
        return await _submit_each(client, request, None)

    result = SubmitFieldsResult(
        biz_review_id=review.submitted.biz_review_id,
        pending_async=review.submitted.pending_async,
    )
    outcome = review.outcome

    if outcome is None:
        for f in request.fields:
            result.field_results[f.field] = FieldResult(
                field=f.field, decision=Decision.PENDING, final_value=f.text
            )
        result.overall_decision = Decision.PENDING
        return result

    if outcome.decision == Decision.PASS:
        for f in request.fields:
            result.field_results[f.field] = FieldResult(
                field=f.field, decision=Decision.PASS, final_value=f.text, confidence=1.0
            )
        return result

    located = review.located
    if located.found and located.confidence >= request.fallback_threshold:
        result.overall_decision = outcome.decision
        for f in request.fields:
            if f.field in located.ids:
                result.field_results[f.field] = _inherit(f, outcome, located.method)
            else:
                result.field_results[f.field] = FieldResult(
                    field=f.field,
                    decision=Decision.PASS,
                    final_value=f.text,
                    confidence=1.0,
                    located_by=located.method,
                )
        return result

    if request.disable_fallback:
        result.overall_decision = outcome.decision
        for f in request.fields:
            result.field_results[f.field] = _inherit(f, outcome, LOCATED_CONSERVATIVE)
        return result

    return await _submit_each(client, request, outcome)


def _biz(request: SubmitFieldsInput, field_name: str) -> BizContext:
    return BizContext(
        biz_type=request.biz_type,
        biz_id=request.biz_id,
        field=field_name,
        submitter_id=request.submitter_id,
        trace_id=request.trace_id,
    )


def _inherit(f: FieldInput, outcome: FinalOutcome, located_by: str) -> FieldResult:
    value, replaced = apply_block_action(f.text, f.on_block, f.replace_with)
    return FieldResult(
        field=f.field,
        decision=outcome.decision,
        reasons=outcome.reasons,
        final_value=value,
        was_replaced=replaced,
        confidence=1.0,
        located_by=located_by,
    )


async def _submit_field(
    client: ModerationClient, request: SubmitFieldsInput, f: FieldInput
) -> tuple[SubmitResult, FieldResult]:
    submitted = await client.submit(
        SubmitInput(
            biz=_biz(request, f.field),
            resources=(Resource(resource_id=f.field, type=ResourceType.TEXT, content_text=f.text),),
            scenes=request.scenes,
        )
    )
    outcome = submitted.immediate_results.get(f.field)
    if outcome is None:
        return submitted, FieldResult(field=f.field, decision=Decision.PENDING, final_value=f.text)

    value, replaced = f.text, False
    if outcome.decision in BLOCKING_DECISIONS:
        value, replaced = apply_block_action(f.text, f.on_block, f.replace_with)
    return submitted, FieldResult(
        field=f.field,
        decision=outcome.decision,
        reasons=outcome.reasons,
        final_value=value,
        was_replaced=replaced,
        confidence=1.0,
    )


async def _submit_single(
    client: ModerationClient, request: SubmitFieldsInput
) -> SubmitFieldsResult:
    f = request.fields[0]
    submitted, field_result = await _submit_field(client, request, f)
    return SubmitFieldsResult(
        biz_review_id=submitted.biz_review_id,
        field_results={f.field: field_result},
        overall_decision=field_result.decision,
        pending_async=submitted.pending_async,
    )


async def _submit_each(
    client: ModerationClient,
    request: SubmitFieldsInput,
    merged_outcome: FinalOutcome | None,
) -> SubmitFieldsResult:
    result = SubmitFieldsResult(used_fallback=merged_outcome is not None)

    for f in request.fields:
        try:
            submitted, field_result = await _submit_field(client, request, f)
        except Exception as exc:  # noqa: BLE001
            log.warning("Review of field %s of %s failed: %s", f.field, request.biz_id, exc)
            if merged_outcome is not None:
                field_result = _inherit(f, merged_outcome, LOCATED_FALLBACK_ERROR)
            else:
                field_result = FieldResult(
                    field=f.field,
                    decision=Decision.ERROR,
                    reasons=(Reason(code="error", message=str(exc)),),
                    final_value=f.text,
                )
        else:
            result.biz_review_id = result.biz_review_id or submitted.biz_review_id
            if merged_outcome is not None:
                field_result.located_by = LOCATED_FALLBACK
            if field_result.decision == Decision.PENDING:
                result.pending_async = True

        result.field_results[f.field] = field_result
        if decision_severity(field_result.decision) > decision_severity(result.overall_decision):
            result.overall_decision = field_result.decision

    return result
