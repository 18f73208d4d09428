from __future__ import annotations

import pytest

from censorflow.domain.model import (
    Decision,
    ReplacePolicy,
    ReviewResult,
    RiskLevel,
    decision_severity,
    strictest,
)
from censorflow.domain.review import MergePolicy, merge_decisions
from censorflow.domain.violation import Domain, UnifiedViolation, ViolationList

_ORDER = [Decision.PASS, Decision.PENDING, Decision.REVIEW, Decision.BLOCK, Decision.ERROR]


def _results(*decisions: Decision) -> dict[str, ReviewResult]:
    return {f"p{i}": ReviewResult(decision=d) for i, d in enumerate(decisions)}


def test_decision_severity_is_a_total_order() -> None:
    ranks = [decision_severity(decision) for decision in _ORDER]

    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ranks)
    assert decision_severity("something-else") == 0


def test_strictest_picks_the_most_severe() -> None:
    assert strictest([Decision.PASS, Decision.REVIEW, Decision.PENDING]) == Decision.REVIEW
    assert strictest([]) == Decision.PASS
    assert strictest([Decision.PASS], default=Decision.PENDING) == Decision.PENDING


@pytest.mark.parametrize(
    ("policy", "decisions", "expected"),
    [
        (MergePolicy.MOST_STRICT, (Decision.PASS, Decision.BLOCK), Decision.BLOCK),
        (MergePolicy.MOST_STRICT, (Decision.REVIEW, Decision.PASS), Decision.REVIEW),
        (MergePolicy.ANY, (Decision.PASS, Decision.REVIEW), Decision.REVIEW),
        (MergePolicy.ANY, (Decision.PASS, Decision.PASS), Decision.PASS),
        (MergePolicy.ALL, (Decision.BLOCK, Decision.BLOCK), Decision.BLOCK),
        (MergePolicy.ALL, (Decision.BLOCK, Decision.REVIEW), Decision.REVIEW),
        (MergePolicy.ALL, (Decision.BLOCK, Decision.PASS), Decision.PASS),
        (MergePolicy.MAJORITY, (Decision.PASS, Decision.PASS, Decision.BLOCK), Decision.PASS),
        (MergePolicy.MAJORITY, (Decision.PASS, Decision.BLOCK), Decision.BLOCK),
    ],
)
def test_merge_policies(
    policy: MergePolicy, decisions: tuple[Decision, ...], expected: Decision
) -> None:
    assert merge_decisions(policy, _results(*decisions)) == expected


def test_merge_with_single_result_returns_it() -> None:
    for policy in MergePolicy:
        assert merge_decisions(policy, _results(Decision.BLOCK)) == Decision.BLOCK


@pytest.mark.parametrize(
    ("severity", "decision", "policy"),
    [
        (RiskLevel.SEVERE, Decision.BLOCK, ReplacePolicy.NONE),
        (RiskLevel.HIGH, Decision.BLOCK, ReplacePolicy.DEFAULT_VALUE),
        (RiskLevel.MEDIUM, Decision.REVIEW, ReplacePolicy.MASK),
        (RiskLevel.LOW, Decision.REVIEW, ReplacePolicy.NONE),
    ],
)
def test_decide_outcome_maps_severity(
    severity: RiskLevel, decision: Decision, policy: ReplacePolicy
) -> None:
    violations = ViolationList([UnifiedViolation(domain=Domain.ABUSE, severity=severity)])

    outcome = violations.decide_outcome()

    assert outcome.decision == decision
    assert outcome.replace_policy == policy
    assert outcome.risk_level == severity
    assert outcome.reasons[0].code == "abuse"


def test_decide_outcome_without_violations_passes() -> None:
    outcome = ViolationList().decide_outcome()

    assert outcome.decision == Decision.PASS
    assert outcome.reasons == ()


def test_decide_outcome_is_monotone_in_severity() -> None:
    levels = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.SEVERE]
    previous = -1
    for level in levels:
        violations = ViolationList([UnifiedViolation(domain=Domain.OTHER, severity=level)])
        rank = decision_severity(violations.decide_outcome().decision)
        assert rank >= previous
        previous = rank


def test_highest_severity_drives_the_outcome() -> None:
    violations = ViolationList(
        [
            UnifiedViolation(domain=Domain.ADS, severity=RiskLevel.LOW),
            UnifiedViolation(domain=Domain.PORNOGRAPHY, severity=RiskLevel.SEVERE),
        ]
    )

    assert violations.highest_severity() == RiskLevel.SEVERE
    assert violations.domains() == [Domain.ADS, Domain.PORNOGRAPHY]
    assert violations.decide_outcome().decision == Decision.BLOCK
