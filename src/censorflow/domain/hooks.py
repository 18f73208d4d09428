"""Ready-made ``Hooks`` implementations."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING

from censorflow.domain.model import Decision, decision_severity

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from censorflow.domain.ports.hooks import (
        BizDecisionChangedEvent,
        Hooks,
        ManualReviewRequiredEvent,
        ResourceReviewedEvent,
        ViolationDetectedEvent,
    )

    type HookFunc[E] = Callable[[E], Awaitable[None] | None]


class NopHooks:
    async def on_biz_decision_changed(self, event: BizDecisionChangedEvent) -> None:
        return None

    async def on_resource_reviewed(self, event: ResourceReviewedEvent) -> None:
        return None

    async def on_violation_detected(self, event: ViolationDetectedEvent) -> None:
        return None

    async def on_manual_review_required(self, event: ManualReviewRequiredEvent) -> None:
        return None


class ChainHooks:
    """Fan an event out to several hooks in order, stopping at the first failure."""

    def __init__(self, *hooks: Hooks) -> None:
        self.hooks = hooks

    async def on_biz_decision_changed(self, event: BizDecisionChangedEvent) -> None:
        for hook in self.hooks:
            await hook.on_biz_decision_changed(event)

    async def on_resource_reviewed(self, event: ResourceReviewedEvent) -> None:
        for hook in self.hooks:
            await hook.on_resource_reviewed(event)

    async def on_violation_detected(self, event: ViolationDetectedEvent) -> None:
        for hook in self.hooks:
            await hook.on_violation_detected(event)

    async def on_manual_review_required(self, event: ManualReviewRequiredEvent) -> None:
        for hook in self.hooks:
            await hook.on_manual_review_required(event)


async def _invoke[E](func: HookFunc[E] | None, event: E) -> None:
    if func is None:
        return
    result = func(event)
    if inspect.isawaitable(result):
        await result


@dataclass(slots=True)
class FuncHooks:
    """Hooks assembled from plain (sync or async) callables; unset events are ignored."""

    biz_decision_changed: HookFunc[BizDecisionChangedEvent] | None = None
    resource_reviewed: HookFunc[ResourceReviewedEvent] | None = None
    violation_detected: HookFunc[ViolationDetectedEvent] | None = None
    manual_review_required: HookFunc[ManualReviewRequiredEvent] | None = None

    async def on_biz_decision_changed(self, event: BizDecisionChangedEvent) -> None:
        await _invoke(self.biz_decision_changed, event)

    async def on_resource_reviewed(self, event: ResourceReviewedEvent) -> None:
        await _invoke(self.resource_reviewed, event)

    async def on_violation_detected(self, event: ViolationDetectedEvent) -> None:
        await _invoke(self.violation_detected, event)

    async def on_manual_review_required(self, event: ManualReviewRequiredEvent) -> None:
        await _invoke(self.manual_review_required, event)


@dataclass(slots=True, frozen=True)
class DecisionChange:
    from_: Decision
    to: Decision

    @property
    def is_escalation(self) -> bool:
        return decision_severity(self.to) > decision_severity(self.from_)

    @property
    def is_deescalation(self) -> bool:
        return decision_severity(self.to) < decision_severity(self.from_)

    @classmethod
    def from_event(cls, event: BizDecisionChangedEvent) -> DecisionChange:
        return cls(from_=event.previous_decision, to=event.outcome.decision)


if TYPE_CHECKING:
    _nop_check: Hooks = NopHooks()
    _chain_check: Hooks = ChainHooks()
    _func_check: Hooks = FuncHooks()
