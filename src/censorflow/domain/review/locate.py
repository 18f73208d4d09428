"""Attribute a merged-text verdict back to the parts that caused it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from censorflow.domain.model import Reason
    from censorflow.domain.textmerge import PartIndex

POSITION_CONFIDENCE: Final[float] = 0.95
KEYWORD_CONFIDENCE_CAP: Final[float] = 0.85

METHOD_POSITION: Final[str] = "position"
METHOD_KEYWORD: Final[str] = "keyword"


@dataclass(slots=True, frozen=True)
class LocateResult:
    ids: tuple[str, ...] = ()
    confidence: float = 0.0
    method: str = ""

    @property
    def found(self) -> bool:
        return bool(self.ids) and self.confidence > 0


def locate(
    items: Sequence[tuple[str, str]],
    index: Sequence[PartIndex],
    reasons: Sequence[Reason],
) -> LocateResult:
    """Find which ``(id, text)`` items of a merged text triggered ``reasons``.

    ``index`` holds the byte span of each item in the merged text, in item order.
    Reported hit positions win over keyword matching; with neither the result is empty.
    """

    if not reasons:
        return LocateResult()

    ids = _locate_by_position(items, index, reasons)
    if ids:
        return LocateResult(ids=ids, confidence=POSITION_CONFIDENCE, method=METHOD_POSITION)

    ids, confidence = _locate_by_keyword(items, reasons)
    if ids and confidence > 0:
        return LocateResult(ids=ids, confidence=confidence, method=METHOD_KEYWORD)

    return LocateResult()


def _number(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _span(raw: dict[str, Any]) -> tuple[int, int] | None:
    span: tuple[int, int] | None = None

    positions = raw.get("positions")
    if isinstance(positions, list) and positions and isinstance(positions[0], dict):
        start, end = _number(positions[0].get("startPos")), _number(positions[0].get("endPos"))
        if start is not None and end is not None:
            span = (start, end)

    start, end = _number(raw.get("start_position")), _number(raw.get("end_position"))
    if start is not None and end is not None:
        span = (start, end)

    return span


def _locate_by_position(
    items: Sequence[tuple[str, str]],
    index: Sequence[PartIndex],
    reasons: Sequence[Reason],
) -> tuple[str, ...]:
    found: list[str] = []
    for reason in reasons:
        if not reason.raw:
            continue
        span = _span(reason.raw)
        if span is None:
            continue
        for (item_id, _), part in zip(items, index, strict=False):
            if part.contains(*span) and item_id not in found:
                found.append(item_id)
    return tuple(found)


def extract_keywords(reason: Reason) -> Iterator[str]:
    """Hit tags followed by every keyword form vendors put in ``raw``."""

    yield from reason.hit_tags
    raw = reason.raw or {}
    yield from _strings(raw.get("keywords"))
    yield from _strings(raw.get("keywordTexts"))
    segments = raw.get("segments")
    if isinstance(segments, list):
        for segment in segments:
            if isinstance(segment, dict) and isinstance(segment.get("segment"), str):
                yield segment["segment"]
    yield from _strings(raw.get("Keywords"))


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, list):
        yield from (item for item in value if isinstance(item, str))


def _locate_by_keyword(
    items: Sequence[tuple[str, str]], reasons: Sequence[Reason]
) -> tuple[tuple[str, ...], float]:
    counts: dict[str, int] = {}
    total = 0
    lowered = [(item_id, text.lower()) for item_id, text in items]

    for reason in reasons:
        for keyword in extract_keywords(reason):
            if not keyword:
                continue
            total += 1
            needle = keyword.lower()
            for item_id, text in lowered:
                if needle in text:
                    counts[item_id] = counts.get(item_id, 0) + 1

    if not counts or total == 0:
        return (), 0.0

    confidence = min(max(counts.values()) / total, 1.0) * KEYWORD_CONFIDENCE_CAP
    return tuple(counts), confidence
