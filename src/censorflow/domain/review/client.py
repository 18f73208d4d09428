"""The moderation client: submission, aggregation and async completion."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from censorflow.common.hashing import hash_text, hash_url
from censorflow.domain.errors import (
    NoResourcesError,
    ProviderNotFoundError,
    StoreNotConfiguredError,
    TaskNotFoundError,
)
from censorflow.domain.hooks import NopHooks
from censorflow.domain.model import (
    BizContext,
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
    strictest,
)
from censorflow.domain.ports import (
    BizDecisionChangedEvent,
    ManualReviewRequiredEvent,
    ResourceReviewedEvent,
    SubmitRequest,
    ViolationDetectedEvent,
)
from censorflow.domain.textmerge import merge_texts
from censorflow.domain.violation import TranslationContext, ViolationList

from .batch import SubmitBatchInput, SubmitBatchResult, submit_batch
from .fields import SubmitFieldsInput, SubmitFieldsResult, submit_fields
from .options import QueryResult, SubmitResult
from .pipeline import PipelineExecutor, outcome_from_results, translate_results

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from censorflow.domain.model import (
        BizType,
        ProviderTask,
        ResourceReview,
        ViolationSnapshot,
    )
    from censorflow.domain.ports import Hooks, Provider, Store

    from .options import ClientOptions, QueryInput, SubmitInput
    from .pipeline import PipelineResult

log = getLogger(__name__)

_VIOLATION_DECISIONS = frozenset({Decision.BLOCK, Decision.REVIEW})


class ModerationClient:
    """Entry point of the engine; owns the store, hooks and provider pipeline.

    Store calls are synchronous. Provider calls and hooks are awaited. Hook failures are
    logged and never undo state that was already written.
    """

    def __init__(self, options: ClientOptions) -> None:
        if options.store is None:
            raise StoreNotConfiguredError
        self.options = options
        self.store: Store = options.store
        self.hooks: Hooks = options.hooks if options.hooks is not None else NopHooks()
        self.providers: dict[str, Provider] = {p.name: p for p in options.providers}
        if options.pipeline.primary not in self.providers:
            raise ProviderNotFoundError(options.pipeline.primary)
        self.pipeline = PipelineExecutor(self.providers, options.pipeline)

    # Submission --------------------------------------------------------------------

    async def submit(self, request: SubmitInput) -> SubmitResult:
        if not request.resources:
            raise NoResourcesError

        biz = request.biz
        scenes = request.scenes or self.options.requirements.scenes_for(biz.biz_type)

        biz_review_id = self.store.create_biz_review(biz)
        self.store.update_biz_status(biz_review_id, ReviewStatus.RUNNING)
        result = SubmitResult(biz_review_id=biz_review_id)

        resources: Sequence[Resource] = request.resources
        if request.enable_text_merge:
            resources = self._merge_text_resources(resources)

        for resource in resources:
            if not resource.content_hash:
                resource = replace(resource, content_hash=compute_hash(resource))

            if self.options.enable_dedup:
                cached = self._check_dedup(biz, resource)
                if cached is not None:
                    review_id, outcome = cached
                    log.debug(
                        "Reusing outcome of review %s for %s", review_id, resource.resource_id
                    )
                    reused_id = self.store.create_resource_review(biz_review_id, resource)
                    self.store.update_resource_outcome(reused_id, outcome)
                    result.resource_review_ids[resource.resource_id] = reused_id
                    result.immediate_results[resource.resource_id] = outcome
                    continue

            resource_review_id = self.store.create_resource_review(biz_review_id, resource)
            result.resource_review_ids[resource.resource_id] = resource_review_id

            try:
                pipeline_result = await self.pipeline.execute(
                    SubmitRequest(resource=resource, biz=biz, scenes=tuple(scenes))
                )
            except Exception as exc:  # noqa: BLE001
                log.warning("Review of %s failed: %s", resource.resource_id, exc)
                result.immediate_results[resource.resource_id] = self._record_error(
                    resource_review_id, exc
                )
                continue

            self._create_provider_tasks(resource_review_id, pipeline_result)

            if pipeline_result.is_complete and pipeline_result.final_outcome is not None:
                outcome = pipeline_result.final_outcome
                result.immediate_results[resource.resource_id] = outcome
                self.store.update_resource_outcome(resource_review_id, outcome)
                violations = translate_results(
                    self.providers,
                    pipeline_result.provider_results,
                    TranslationContext(resource_type=resource.type, biz_type=biz.biz_type),
                )
                await self._handle_outcome(
                    biz,
                    resource,
                    outcome,
                    resource_review_id=resource_review_id,
                    biz_review_id=biz_review_id,
                    review_result=pipeline_result.review_result(),
                    violations=violations,
                    provider=self.options.pipeline.primary,
                )
            else:
                result.pending_async = True
                await self._notify_manual_review(
                    biz, resource, biz_review_id, resource_review_id, pipeline_result
                )

        await self.aggregate_biz_decision(biz_review_id, biz)
        return result

    async def submit_fields(self, request: SubmitFieldsInput) -> SubmitFieldsResult:
        return await submit_fields(self, request)

    async def submit_batch(self, request: SubmitBatchInput) -> SubmitBatchResult:
        return await submit_batch(self, request)

    def query(self, request: QueryInput) -> QueryResult:
        biz_review = self.store.get_biz_review(request.biz_review_id)
        reviews = self.store.list_resource_reviews_by_biz_review(request.biz_review_id)
        all_complete = all(review.is_complete for review in reviews)
        final_outcome = reviews[0].outcome if all_complete and reviews else None
        return QueryResult(
            biz_review=biz_review,
            resource_reviews=reviews,
            all_complete=all_complete,
            final_outcome=final_outcome,
        )

    # Async completion --------------------------------------------------------------

    async def handle_callback(
        self, provider_name: str, headers: Mapping[str, str], body: bytes
    ) -> None:
        provider = self.providers.get(provider_name)
        if provider is None:
            raise ProviderNotFoundError(provider_name)

        await provider.verify_callback(headers, body)
        data = await provider.parse_callback(body)

        task = self.store.get_provider_task_by_remote_id(provider_name, data.task_id)
        updated = self.store.update_provider_task_result(task.id, data.done, data.result, data.raw)
        if not updated:
            log.info("Ignoring callback for already completed task %s", task.id)
            return
        if data.done:
            await self.process_async_completion(task, data.result)

    async def process_async_completion(
        self, task: ProviderTask, result: ReviewResult | None
    ) -> None:
        """Turn one finished async provider result into the resource outcome."""

        review = self.store.get_resource_review(task.resource_review_id)
        biz_review = self.store.get_biz_review(review.biz_review_id)
        biz = BizContext(
            biz_type=biz_review.biz_type,
            biz_id=biz_review.biz_id,
            field=biz_review.field,
            submitter_id=biz_review.submitter_id,
            trace_id=biz_review.trace_id,
        )
        resource = _resource_of(review)

        if result is None:
            result = ReviewResult(
                decision=Decision.ERROR,
                reasons=(Reason(code="error", message="provider returned no result"),),
                provider=task.provider,
            )

        ctx = TranslationContext(resource_type=review.resource_type, biz_type=biz.biz_type)
        results = {task.provider: result}
        outcome = outcome_from_results(self.providers, results, ctx, result.decision)
        self.store.update_resource_outcome(review.id, outcome)
        log.info(
            "Async review %s from %s completed with %s", review.id, task.provider, outcome.decision
        )

        await self._handle_outcome(
            biz,
            resource,
            outcome,
            resource_review_id=review.id,
            biz_review_id=review.biz_review_id,
            review_result=result,
            violations=translate_results(self.providers, results, ctx),
            provider=task.provider,
        )
        await self.aggregate_biz_decision(review.biz_review_id, biz)

    async def aggregate_biz_decision(self, biz_review_id: str, biz: BizContext) -> Decision:
        reviews = self.store.list_resource_reviews_by_biz_review(biz_review_id)
        all_complete = all(review.is_complete for review in reviews)
        decision = (
            strictest(review.decision for review in reviews) if all_complete else Decision.PENDING
        )

        update = self.store.update_biz_decision(biz_review_id, decision)
        if all_complete:
            self.store.update_biz_status(biz_review_id, ReviewStatus.DONE)

        if update.changed:
            first = reviews[0] if reviews else None
            base = first.outcome if first is not None else None
            outcome = (
                replace(base, decision=decision)
                if base is not None
                else FinalOutcome(decision=decision)
            )
            await self._notify(
                self.hooks.on_biz_decision_changed,
                BizDecisionChangedEvent(
                    biz=biz,
                    outcome=outcome,
                    previous_decision=update.previous,
                    biz_review_id=biz_review_id,
                    resource=_resource_of(first) if first is not None else None,
                    resource_review_id=first.id if first is not None else "",
                    trace_id=biz.trace_id,
                ),
            )
        return decision

    # Bindings and evidence ---------------------------------------------------------

    def get_binding(self, biz_type: BizType, biz_id: str, field: str) -> CensorBinding | None:
        return self.store.get_binding(biz_type, biz_id, field)

    def get_bindings(self, biz_type: BizType, biz_id: str) -> list[CensorBinding]:
        return self.store.list_bindings_by_biz(biz_type, biz_id)

    def get_binding_history(
        self, biz_type: BizType, biz_id: str, field: str, limit: int = 50
    ) -> list[CensorBindingHistory]:
        return self.store.list_binding_history(biz_type, biz_id, field, limit)

    def get_violation_snapshot(self, snapshot_id: str) -> ViolationSnapshot:
        return self.store.get_violation_snapshot(snapshot_id)

    def list_violations(
        self, biz_type: BizType, biz_id: str, limit: int = 50
    ) -> list[ViolationSnapshot]:
        return self.store.list_violations_by_biz(biz_type, biz_id, limit)

    def apply_manual_decision(
        self,
        biz_type: BizType,
        biz_id: str,
        field: str,
        decision: Decision,
        *,
        reviewer_id: str = "",
        comment: str = "",
        source: HistorySource = HistorySource.MANUAL,
        reasons: Sequence[Reason] = (),
    ) -> CensorBinding:
        """Override the current binding of a field, e.g. after an appeal or a recheck."""

        existing = self.store.get_binding(biz_type, biz_id, field)
        if existing is None:
            raise TaskNotFoundError(f"no binding for {biz_type}/{biz_id}/{field}")

        binding = replace(
            existing,
            decision=decision,
            replace_policy=(
                existing.replace_policy if decision in _VIOLATION_DECISIONS else ReplacePolicy.NONE
            ),
            replace_value=existing.replace_value if decision in _VIOLATION_DECISIONS else "",
            review_revision=existing.review_revision + 1,
            updated_at=self.store.now(),
        )
        self.store.upsert_binding(binding)
        self.store.create_binding_history(
            _history_of(
                binding,
                reasons=list(reasons),
                source=source,
                reviewer_id=reviewer_id,
                comment=comment,
            )
        )
        log.info(
            "Binding %s/%s/%s set to %s by %s (%s)",
            biz_type,
            biz_id,
            field,
            decision,
            reviewer_id or "unknown reviewer",
            source,
        )
        return binding

    # Internals ---------------------------------------------------------------------

    def _merge_text_resources(self, resources: Sequence[Resource]) -> Sequence[Resource]:
        texts = [r for r in resources if r.type == ResourceType.TEXT]
        others = [r for r in resources if r.type != ResourceType.TEXT]
        if len(texts) <= 1:
            return resources

        merged = merge_texts([r.content_text for r in texts], self.options.text_merge)
        if merged is None:
            log.debug("Text merge not possible for %s resources, submitting separately", len(texts))
            return resources

        merged_resource = Resource(
            resource_id=f"{texts[0].resource_id}_merged",
            type=ResourceType.TEXT,
            content_text=merged.merged,
            content_hash=hash_text(merged.merged),
            extra={"merged": "true", "count": str(len(texts))},
        )
        return [merged_resource, *others]

    def _check_dedup(self, biz: BizContext, resource: Resource) -> tuple[str, FinalOutcome] | None:
        binding = self.store.get_binding(biz.biz_type, biz.biz_id, biz.field)
        if binding is None:
            return None
        if binding.content_hash != resource.content_hash or binding.decision == Decision.PENDING:
            return None
        return binding.review_id, FinalOutcome(
            decision=binding.decision,
            replace_policy=binding.replace_policy,
            replace_value=binding.replace_value,
        )

    def _record_error(self, resource_review_id: str, exc: BaseException) -> FinalOutcome:
        outcome = FinalOutcome(
            decision=Decision.ERROR, reasons=(Reason(code="error", message=str(exc)),)
        )
        self.store.update_resource_outcome(resource_review_id, outcome)
        return outcome

    def _create_provider_tasks(self, resource_review_id: str, result: PipelineResult) -> None:
        config = self.options.pipeline
        entries = [(config.primary, result.primary_task_id, result.primary_raw)]
        # The secondary is recorded under the primary's mode, so an async secondary
        # behind a sync primary is never polled.
        if result.secondary_task_id and config.secondary:
            entries.append((config.secondary, result.secondary_task_id, None))

        for provider, remote_id, raw in entries:
            task_id = self.store.create_provider_task(
                resource_review_id, provider, result.mode, remote_id, raw or None
            )
            immediate = result.provider_results.get(provider)
            if result.mode == Mode.SYNC and immediate is not None:
                self.store.update_provider_task_result(task_id, True, immediate, raw or None)

    async def _handle_outcome(
        self,
        biz: BizContext,
        resource: Resource,
        outcome: FinalOutcome,
        *,
        resource_review_id: str,
        biz_review_id: str,
        review_result: ReviewResult,
        violations: ViolationList,
        provider: str,
    ) -> None:
        snapshot_id = ""
        if outcome.decision in _VIOLATION_DECISIONS:
            snapshot_id = self.store.save_violation_snapshot(biz, resource, outcome)
            self._upsert_binding(biz, resource, outcome, resource_review_id, snapshot_id)

        if snapshot_id:
            await self._notify(
                self.hooks.on_violation_detected,
                ViolationDetectedEvent(
                    resource=resource,
                    biz=biz,
                    violations=tuple(violations),
                    snapshot_id=snapshot_id,
                    provider=provider,
                    trace_id=biz.trace_id,
                ),
            )
        await self._notify(
            self.hooks.on_resource_reviewed,
            ResourceReviewedEvent(
                resource=resource,
                biz=biz,
                result=review_result,
                outcome=outcome,
                provider=provider,
                biz_review_id=biz_review_id,
                resource_review_id=resource_review_id,
                trace_id=biz.trace_id,
            ),
        )

    def _upsert_binding(
        self,
        biz: BizContext,
        resource: Resource,
        outcome: FinalOutcome,
        review_id: str,
        snapshot_id: str,
    ) -> None:
        binding = CensorBinding(
            biz_type=biz.biz_type,
            biz_id=biz.biz_id,
            field=biz.field,
            resource_id=resource.resource_id,
            resource_type=resource.type,
            content_hash=resource.content_hash,
            review_id=review_id,
            decision=outcome.decision,
            replace_policy=outcome.replace_policy,
            replace_value=outcome.replace_value,
            violation_ref_id=snapshot_id,
            review_revision=1,
            updated_at=self.store.now(),
        )

        existing = self.store.get_binding(biz.biz_type, biz.biz_id, biz.field)
        if existing is not None:
            binding.id = existing.id
            binding.review_revision = existing.review_revision + 1
        changed = existing is None or (
            existing.decision != binding.decision
            or existing.replace_policy != binding.replace_policy
            or existing.replace_value != binding.replace_value
            or existing.violation_ref_id != binding.violation_ref_id
        )

        self.store.upsert_binding(binding)
        if changed:
            self.store.create_binding_history(
                _history_of(binding, reasons=list(outcome.reasons), source=HistorySource.AUTO)
            )

    async def _notify_manual_review(
        self,
        biz: BizContext,
        resource: Resource,
        biz_review_id: str,
        resource_review_id: str,
        result: PipelineResult,
    ) -> None:
        raw = result.primary_raw
        if "expires_at" not in raw:
            return
        await self._notify(
            self.hooks.on_manual_review_required,
            ManualReviewRequiredEvent(
                resource=resource,
                biz=biz,
                biz_review_id=biz_review_id,
                resource_review_id=resource_review_id,
                manual_task_id=result.primary_task_id,
                priority=int(raw.get("priority", 0) or 0),
                expires_at=_parse_datetime(raw.get("expires_at")),
                trace_id=biz.trace_id,
            ),
        )

    async def _notify[E](self, hook: Callable[[E], Awaitable[None]], event: E) -> None:
        try:
            await hook(event)
        except Exception:
            log.exception("Hook %s failed", getattr(hook, "__name__", hook))


def compute_hash(resource: Resource) -> str:
    if resource.type == ResourceType.TEXT:
        return hash_text(resource.content_text)
    return hash_url(resource.content_url)


def _resource_of(review: ResourceReview) -> Resource:
    return Resource(
        resource_id=review.resource_id,
        type=review.resource_type,
        content_text=review.content_text,
        content_url=review.content_url,
        content_hash=review.content_hash,
    )


def _history_of(
    binding: CensorBinding,
    *,
    reasons: list[Reason],
    source: HistorySource,
    reviewer_id: str = "",
    comment: str = "",
) -> CensorBindingHistory:
    return CensorBindingHistory(
        biz_type=binding.biz_type,
        biz_id=binding.biz_id,
        field=binding.field,
        resource_id=binding.resource_id,
        resource_type=binding.resource_type,
        content_hash=binding.content_hash,
        review_id=binding.review_id,
        decision=binding.decision,
        replace_policy=binding.replace_policy,
        replace_value=binding.replace_value,
        violation_ref_id=binding.violation_ref_id,
        review_revision=binding.review_revision,
        reasons=reasons,
        source=source,
        reviewer_id=reviewer_id,
        comment=comment,
        created_at=binding.updated_at,
    )


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None

