"""Normalized, provider-agnostic violation records and the outcome decision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from censorflow.domain.model import Decision, FinalOutcome, Reason, ReplacePolicy, RiskLevel

from .domains import Domain, get_domain_info

if TYPE_CHECKING:
    from collections.abc import Callable

    from .tags import Tag


@dataclass(slots=True, frozen=True)
class UnifiedViolation:
    domain: Domain
    tags: tuple[Tag, ...] = ()
    severity: RiskLevel = RiskLevel.LOW
    confidence: float = 0.0
    source_providers: tuple[str, ...] = ()
    original_labels: tuple[str, ...] = ()


class ViolationList(list[UnifiedViolation]):
    """A list of violations with the aggregate queries the decision logic needs."""

    def highest_severity(self) -> RiskLevel:
        highest = RiskLevel.LOW
        for violation in self:
            highest = max(highest, violation.severity)
        return highest

    def domains(self) -> list[Domain]:
        seen: list[Domain] = []
        for violation in self:
            if violation.domain not in seen:
                seen.append(violation.domain)
        return seen

    def all_tags(self) -> list[Tag]:
        seen: list[Tag] = []
        for violation in self:
            for tag in violation.tags:
                if tag not in seen:
                    seen.append(tag)
        return seen

    def has_domain(self, domain: Domain) -> bool:
        return any(violation.domain == domain for violation in self)

    def has_severity_at_least(self, level: RiskLevel) -> bool:
        return any(violation.severity >= level for violation in self)

    def filter(self, predicate: Callable[[UnifiedViolation], bool]) -> ViolationList:
        return ViolationList(violation for violation in self if predicate(violation))

    def decide_outcome(self) -> FinalOutcome:
        """Map the highest severity to a decision and replace policy.

        severe blocks outright, high blocks with a default replacement, medium goes to
        review with masking, anything lower goes to review without replacement.
        """

        if not self:
            return FinalOutcome(
                decision=Decision.PASS,
                replace_policy=ReplacePolicy.NONE,
                risk_level=RiskLevel.LOW,
            )

        highest = self.highest_severity()
        if highest == RiskLevel.SEVERE:
            decision, policy = Decision.BLOCK, ReplacePolicy.NONE
        elif highest == RiskLevel.HIGH:
            decision, policy = Decision.BLOCK, ReplacePolicy.DEFAULT_VALUE
        elif highest == RiskLevel.MEDIUM:
            decision, policy = Decision.REVIEW, ReplacePolicy.MASK
        else:
            decision, policy = Decision.REVIEW, ReplacePolicy.NONE

        reasons = tuple(
            Reason(
                code=str(violation.domain),
                message=get_domain_info(violation.domain).description,
                hit_tags=tuple(str(tag) for tag in violation.tags),
            )
            for violation in self
        )
        return FinalOutcome(
            decision=decision,
            replace_policy=policy,
            reasons=reasons,
            risk_level=highest,
        )
