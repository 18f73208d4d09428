"""Translation of provider labels into unified violations."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from censorflow.domain.model import BizType, RiskLevel

from .domains import Domain
from .tags import Tag
from .unified import UnifiedViolation, ViolationList

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from censorflow.domain.model import ResourceType

UNKNOWN_LABEL_CONFIDENCE = 0.5

_PROFILE_BIZ_TYPES = frozenset({BizType.USER_NICKNAME, BizType.USER_AVATAR, BizType.USER_BIO})
_REALTIME_BIZ_TYPES = frozenset({BizType.CHAT_MESSAGE, BizType.DANMAKU})


@dataclass(slots=True, frozen=True)
class TranslationContext:
    resource_type: ResourceType
    biz_type: BizType


@runtime_checkable
class Translator(Protocol):
    @property
    def provider(self) -> str: ...

    def translate(
        self,
        ctx: TranslationContext,
        labels: Sequence[str],
        scores: Mapping[str, float],
    ) -> ViolationList: ...


@dataclass(slots=True, frozen=True)
class LabelMapping:
    domain: Domain
    tags: tuple[Tag, ...] = ()
    severity: RiskLevel = RiskLevel.LOW
    confidence: float = 1.0


def adjust_severity(base: RiskLevel, biz_type: BizType) -> RiskLevel:
    """Raise medium to high on profile fields; lower high to medium on realtime chat."""

    if biz_type in _PROFILE_BIZ_TYPES and base == RiskLevel.MEDIUM:
        return RiskLevel.HIGH
    if biz_type in _REALTIME_BIZ_TYPES and base == RiskLevel.HIGH:
        return RiskLevel.MEDIUM
    return base


class BaseTranslator:
    """Label-table translator shared by the bundled providers."""

    def __init__(self, provider: str, label_map: Mapping[str, LabelMapping]) -> None:
        self._provider = provider
        self._label_map = dict(label_map)

    @property
    def provider(self) -> str:
        return self._provider

    def translate(
        self,
        ctx: TranslationContext,
        labels: Sequence[str],
        scores: Mapping[str, float],
    ) -> ViolationList:
        violations = ViolationList()
        for label in labels:
            mapping = self._label_map.get(label)
            if mapping is None:
                violations.append(
                    UnifiedViolation(
                        domain=Domain.OTHER,
                        tags=(Tag.CUSTOM,),
                        severity=RiskLevel.LOW,
                        confidence=UNKNOWN_LABEL_CONFIDENCE,
                        source_providers=(self._provider,),
                        original_labels=(label,),
                    )
                )
                continue

            violations.append(
                UnifiedViolation(
                    domain=mapping.domain,
                    tags=mapping.tags,
                    severity=adjust_severity(mapping.severity, ctx.biz_type),
                    confidence=scores.get(label, mapping.confidence),
                    source_providers=(self._provider,),
                    original_labels=(label,),
                )
            )
        return violations


def _union[T](left: tuple[T, ...], right: Iterable[T]) -> tuple[T, ...]:
    merged = list(left)
    for item in right:
        if item not in merged:
            merged.append(item)
    return tuple(merged)


def merge_violations(*lists: Iterable[UnifiedViolation]) -> ViolationList:
    """Collapse violations to one entry per domain, keeping the worst severity seen."""

    by_domain: dict[Domain, UnifiedViolation] = {}
    for violations in lists:
        for violation in violations:
            existing = by_domain.get(violation.domain)
            if existing is None:
                by_domain[violation.domain] = violation
                continue
            by_domain[violation.domain] = replace(
                existing,
                severity=max(existing.severity, violation.severity),
                confidence=max(existing.confidence, violation.confidence),
                tags=_union(existing.tags, violation.tags),
                source_providers=_union(existing.source_providers, violation.source_providers),
                original_labels=_union(existing.original_labels, violation.original_labels),
            )
    return ViolationList(by_domain.values())
