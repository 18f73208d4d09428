"""Label translation for reviewer verdicts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from censorflow.domain.model import RiskLevel
from censorflow.domain.violation import (
    BaseTranslator,
    Domain,
    LabelMapping,
    ViolationList,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from censorflow.domain.violation import TranslationContext

MANUAL_PROVIDER_NAME: Final[str] = "manual"

# Reviewers pick labels from the unified domain vocabulary.
MANUAL_LABEL_MAP: Final[Mapping[str, LabelMapping]] = {
    "pornography": LabelMapping(Domain.PORNOGRAPHY, severity=RiskLevel.SEVERE),
    "terrorism": LabelMapping(Domain.TERRORISM, severity=RiskLevel.SEVERE),
    "politics": LabelMapping(Domain.POLITICS, severity=RiskLevel.HIGH),
    "violence": LabelMapping(Domain.VIOLENCE, severity=RiskLevel.HIGH),
    "abuse": LabelMapping(Domain.ABUSE, severity=RiskLevel.MEDIUM),
    "ads": LabelMapping(Domain.ADS, severity=RiskLevel.LOW),
    "spam": LabelMapping(Domain.SPAM, severity=RiskLevel.LOW),
    "fraud": LabelMapping(Domain.FRAUD, severity=RiskLevel.HIGH),
    "illegal": LabelMapping(Domain.ILLEGAL, severity=RiskLevel.SEVERE),
    "minor_safety": LabelMapping(Domain.MINOR_SAFETY, severity=RiskLevel.SEVERE),
    "other": LabelMapping(Domain.OTHER, severity=RiskLevel.MEDIUM),
}

_NEUTRAL_LABELS: Final[frozenset[str]] = frozenset({"normal", "pass"})


class ManualTranslator(BaseTranslator):
    """Reviewer labels are trusted as-is; neutral labels produce no violation."""

    def __init__(self) -> None:
        super().__init__(MANUAL_PROVIDER_NAME, MANUAL_LABEL_MAP)

    def translate(
        self,
        ctx: TranslationContext,
        labels: Sequence[str],
        scores: Mapping[str, float],
    ) -> ViolationList:
        meaningful = [label for label in labels if label.lower() not in _NEUTRAL_LABELS]
        return super().translate(ctx, meaningful, scores)
