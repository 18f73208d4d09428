"""Translate moderation service payloads into review results and unified violations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from censorflow.domain.model import Decision, Reason, ResourceType, ReviewResult, RiskLevel
from censorflow.domain.violation import (
    BaseTranslator,
    Domain,
    LabelMapping,
    SceneMap,
    Tag,
    UnifiedScene,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import LabelPayload, ModerationResponse

WEBHOOK_LABEL_CONFIDENCE: Final[float] = 0.9


def _label(domain: Domain, severity: RiskLevel, *tags: Tag) -> LabelMapping:
    return LabelMapping(
        domain=domain, tags=tags, severity=severity, confidence=WEBHOOK_LABEL_CONFIDENCE
    )


WEBHOOK_LABEL_MAP: Final[Mapping[str, LabelMapping]] = {
    "porn": _label(Domain.PORNOGRAPHY, RiskLevel.SEVERE, Tag.NUDITY),
    "sexy": _label(Domain.SEXUAL_HINT, RiskLevel.MEDIUM),
    "terror": _label(Domain.TERRORISM, RiskLevel.SEVERE),
    "violence": _label(Domain.VIOLENCE, RiskLevel.HIGH, Tag.GORE),
    "politics": _label(Domain.POLITICS, RiskLevel.HIGH, Tag.POLITICAL_SENSITIVE),
    "abuse": _label(Domain.ABUSE, RiskLevel.MEDIUM),
    "hate": _label(Domain.HATE_SPEECH, RiskLevel.HIGH),
    "harassment": _label(Domain.HARASSMENT, RiskLevel.MEDIUM),
    "ad": _label(Domain.ADS, RiskLevel.LOW, Tag.SPAM_ADS),
    "contact": _label(Domain.SPAM, RiskLevel.LOW, Tag.SPAM_CONTACT),
    "flood": _label(Domain.SPAM, RiskLevel.LOW, Tag.SPAM_REPEAT),
    "fraud": _label(Domain.FRAUD, RiskLevel.HIGH, Tag.SCAM_IMPERSONATION),
    "gambling": _label(Domain.GAMBLING, RiskLevel.HIGH),
    "drugs": _label(Domain.DRUGS, RiskLevel.SEVERE, Tag.DRUG_SALE),
    "illegal": _label(Domain.ILLEGAL, RiskLevel.HIGH),
    "minor": _label(Domain.MINOR_SAFETY, RiskLevel.SEVERE, Tag.MINOR_ABUSE),
}

_TEXT_SCENES: Final[Mapping[UnifiedScene, str]] = {
    UnifiedScene.PORNOGRAPHY: "porn",
    UnifiedScene.TERRORISM: "terror",
    UnifiedScene.POLITICS: "politics",
    UnifiedScene.VIOLENCE: "violence",
    UnifiedScene.BAN: "illegal",
    UnifiedScene.ABUSE: "abuse",
    UnifiedScene.HATE_SPEECH: "hate",
    UnifiedScene.HARASSMENT: "abuse",
    UnifiedScene.ADS: "ad",
    UnifiedScene.SPAM: "spam",
    UnifiedScene.FRAUD: "fraud",
    UnifiedScene.PRIVACY: "contact",
    UnifiedScene.MEANINGLESS: "meaningless",
    UnifiedScene.FLOOD: "flood",
    UnifiedScene.MINOR: "minor",
    UnifiedScene.AD_LAW: "ad_law",
}

_IMAGE_SCENES: Final[Mapping[UnifiedScene, str]] = {
    UnifiedScene.PORNOGRAPHY: "porn",
    UnifiedScene.TERRORISM: "terror",
    UnifiedScene.POLITICS: "politics",
    UnifiedScene.VIOLENCE: "violence",
    UnifiedScene.ADS: "ad",
    UnifiedScene.QRCODE: "qrcode",
    UnifiedScene.IMAGE_TEXT: "ocr",
    UnifiedScene.MINOR: "minor",
    UnifiedScene.PUBLIC_FIGURE: "figure",
}

_VIDEO_SCENES: Final[Mapping[UnifiedScene, str]] = {
    UnifiedScene.PORNOGRAPHY: "porn",
    UnifiedScene.TERRORISM: "terror",
    UnifiedScene.POLITICS: "politics",
    UnifiedScene.VIOLENCE: "violence",
    UnifiedScene.ADS: "ad",
    UnifiedScene.MOAN: "moan",
}


def build_scene_map(provider: str) -> SceneMap:
    return SceneMap(
        provider=provider,
        codes={
            ResourceType.TEXT: _TEXT_SCENES,
            ResourceType.IMAGE: _IMAGE_SCENES,
            ResourceType.VIDEO: _VIDEO_SCENES,
        },
    )


class WebhookTranslator(BaseTranslator):
    def __init__(self, provider: str) -> None:
        super().__init__(provider, WEBHOOK_LABEL_MAP)


def label_to_reason(label: LabelPayload, provider: str) -> Reason:
    raw: dict[str, Any] = {}
    if label.score is not None:
        raw["score"] = label.score
    if label.keywords:
        raw["keywords"] = list(label.keywords)
    if label.positions:
        raw["positions"] = [
            {"startPos": position.start, "endPos": position.end} for position in label.positions
        ]
    return Reason(code=label.label, message=label.message, provider=provider, raw=raw)


def parse_review_result(response: ModerationResponse, provider: str) -> ReviewResult | None:
    """Return the verdict of a finished task, or ``None`` while it is still pending.

    A task the service reports as failed becomes an ``error`` decision.
    """

    if not response.is_done:
        return None

    if response.status == "failed" or response.result is None:
        return ReviewResult(
            decision=Decision.ERROR,
            reasons=(
                Reason(
                    code="provider_failed",
                    message=response.error or "moderation task failed",
                    provider=provider,
                ),
            ),
            provider=provider,
        )

    verdict = response.result
    return ReviewResult(
        decision=verdict.decision,
        confidence=verdict.confidence,
        reasons=tuple(label_to_reason(label, provider) for label in verdict.labels),
        provider=provider,
    )
