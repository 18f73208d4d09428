"""Primary/secondary provider execution and verdict merging."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from censorflow.common.codec import to_jsonable
from censorflow.domain.errors import ProviderNotFoundError
from censorflow.domain.model import (
    Decision,
    Mode,
    decision_severity,
    pending_result,
    strictest,
)
from censorflow.domain.violation import TranslationContext, ViolationList

from .options import MergePolicy

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from censorflow.domain.model import FinalOutcome, Reason, ReviewResult
    from censorflow.domain.ports import Provider, SubmitRequest
    from censorflow.domain.violation import UnifiedScene

    from .options import PipelineConfig

log = getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    mode: Mode
    primary_task_id: str = ""
    secondary_task_id: str = ""
    provider_results: dict[str, ReviewResult] = field(default_factory=dict)
    final_outcome: FinalOutcome | None = None
    secondary_error: BaseException | None = None
    missing_scenes: list[UnifiedScene] = field(default_factory=list)
    primary_raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.mode == Mode.SYNC and self.final_outcome is not None

    def review_result(self) -> ReviewResult:
        for result in self.provider_results.values():
            return result
        return pending_result()

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "mode": str(self.mode),
            "primary_task_id": self.primary_task_id,
            "provider_results": {
                name: to_jsonable(result) for name, result in self.provider_results.items()
            },
        }
        if self.secondary_task_id:
            data["secondary_task_id"] = self.secondary_task_id
        if self.secondary_error is not None:
            data["secondary_error"] = str(self.secondary_error)
        if self.missing_scenes:
            data["missing_scenes"] = [str(scene) for scene in self.missing_scenes]
        return json.dumps(data, ensure_ascii=False)


def extract_labels(reasons: Iterable[Reason]) -> list[str]:
    labels: list[str] = []
    for reason in reasons:
        if reason.code:
            labels.append(reason.code)
        labels.extend(reason.hit_tags)
    return labels


def extract_scores(reasons: Iterable[Reason]) -> dict[str, float]:
    scores: dict[str, float] = {}
    for reason in reasons:
        score = reason.raw.get("score") if reason.raw else None
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            scores[reason.code] = float(score)
    return scores


def merge_decisions(policy: MergePolicy, results: Mapping[str, ReviewResult]) -> Decision:
    decisions = [result.decision for result in results.values()]
    if policy == MergePolicy.MAJORITY:
        return _merge_majority(decisions)
    if policy == MergePolicy.ANY:
        return next((d for d in decisions if d != Decision.PASS), Decision.PASS)
    if policy == MergePolicy.ALL:
        return _merge_all(decisions)
    return strictest(decisions)


def _merge_majority(decisions: list[Decision]) -> Decision:
    majority, top = Decision.PASS, 0
    for decision, count in Counter(decisions).items():
        if count > top or (
            count == top and decision_severity(decision) > decision_severity(majority)
        ):
            majority, top = decision, count
    return majority


def _merge_all(decisions: list[Decision]) -> Decision:
    if not decisions:
        return Decision.PASS
    if all(d == Decision.BLOCK for d in decisions):
        return Decision.BLOCK
    if all(d in {Decision.BLOCK, Decision.REVIEW} for d in decisions):
        return Decision.REVIEW
    return Decision.PASS


class PipelineExecutor:
    """Runs the primary provider and, when triggered, the secondary one."""

    def __init__(self, providers: Mapping[str, Provider], config: PipelineConfig) -> None:
        self.providers = dict(providers)
        self.config = config

    async def execute(self, request: SubmitRequest) -> PipelineResult:
        primary = self.providers.get(self.config.primary)
        if primary is None:
            raise ProviderNotFoundError(self.config.primary)

        missing: list[UnifiedScene] = []
        if request.scenes:
            missing = primary.scene_capability().missing_scenes(
                request.scenes, request.resource.type
            )
            if missing:
                log.warning(
                    "Provider %s does not cover scenes %s for %s",
                    primary.name,
                    ", ".join(missing),
                    request.resource.type,
                )

        response = await primary.submit(request)
        result = PipelineResult(
            mode=response.mode,
            primary_task_id=response.task_id,
            missing_scenes=missing,
            primary_raw=dict(response.raw),
        )

        if response.mode == Mode.SYNC and response.immediate is not None:
            result.provider_results[self.config.primary] = response.immediate
            if self._should_trigger_secondary(response.immediate.decision):
                try:
                    await self._run_secondary(request, result)
                except Exception as exc:  # noqa: BLE001
                    log.warning("Secondary provider %s failed: %s", self.config.secondary, exc)
                    result.secondary_error = exc
            result.final_outcome = self.compute_final_outcome(
                result.provider_results,
                TranslationContext(
                    resource_type=request.resource.type, biz_type=request.biz.biz_type
                ),
            )

        return result

    def _should_trigger_secondary(self, decision: Decision) -> bool:
        if not self.config.secondary:
            return False
        return self.config.trigger.should_trigger(decision)

    async def _run_secondary(self, request: SubmitRequest, result: PipelineResult) -> None:
        name = self.config.secondary or ""
        secondary = self.providers.get(name)
        if secondary is None:
            raise ProviderNotFoundError(name)

        response = await secondary.submit(request)
        result.secondary_task_id = response.task_id
        if response.mode == Mode.SYNC and response.immediate is not None:
            result.provider_results[name] = response.immediate

    def compute_final_outcome(
        self,
        results: Mapping[str, ReviewResult],
        ctx: TranslationContext,
    ) -> FinalOutcome | None:
        if not results:
            return None

        return outcome_from_results(
            self.providers, results, ctx, merge_decisions(self.config.merge, results)
        )


def translate_results(
    providers: Mapping[str, Provider],
    results: Mapping[str, ReviewResult],
    ctx: TranslationContext,
) -> ViolationList:
    violations = ViolationList()
    for name, result in results.items():
        provider = providers.get(name)
        translator = provider.translator() if provider is not None else None
        if translator is not None:
            violations.extend(
                translator.translate(
                    ctx, extract_labels(result.reasons), extract_scores(result.reasons)
                )
            )
    return violations


def outcome_from_results(
    providers: Mapping[str, Provider],
    results: Mapping[str, ReviewResult],
    ctx: TranslationContext,
    decision: Decision,
) -> FinalOutcome:
    """Derive policy and risk from translated violations, then apply ``decision``.

    The reasons of the outcome are the raw provider reasons, in provider order.
    """

    violations = translate_results(providers, results, ctx)
    reasons = [reason for result in results.values() for reason in result.reasons]
    return replace(violations.decide_outcome(), decision=decision, reasons=tuple(reasons))
