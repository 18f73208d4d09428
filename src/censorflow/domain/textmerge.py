"""Merging short texts into one request and mapping offsets back to the parts.

Offsets are UTF-8 byte positions into the merged text, which is what moderation
vendors report for hit spans.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_MAX_LEN: Final[int] = 1800
DEFAULT_SEPARATOR: Final[str] = "\n---\n"


@dataclass(slots=True, frozen=True)
class TextMergeStrategy:
    max_len: int = DEFAULT_MAX_LEN
    separator: str = DEFAULT_SEPARATOR


@dataclass(slots=True, frozen=True)
class PartIndex:
    start: int
    end: int

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and self.end > start


@dataclass(slots=True, frozen=True)
class MergedText:
    merged: str
    parts: tuple[str, ...]
    index: tuple[PartIndex, ...]


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def merge_texts(
    parts: Sequence[str], strategy: TextMergeStrategy | None = None
) -> MergedText | None:
    """Join ``parts`` with the separator, or return ``None`` if no useful merge exists.

    When everything fits in ``max_len`` bytes, all parts are merged. Otherwise parts are
    taken greedily from the left until the next would overflow; fewer than two parts
    taken means there is nothing to merge.
    """

    if not parts:
        return None
    strategy = strategy or TextMergeStrategy()
    if len(parts) == 1:
        return MergedText(
            merged=parts[0],
            parts=(parts[0],),
            index=(PartIndex(0, _byte_len(parts[0])),),
        )

    separator_len = _byte_len(strategy.separator)
    total = sum(_byte_len(part) for part in parts) + separator_len * (len(parts) - 1)
    if total > strategy.max_len:
        return _merge_partial(parts, strategy)

    return _join(parts, strategy.separator)


def _join(parts: Sequence[str], separator: str) -> MergedText:
    separator_len = _byte_len(separator)
    index: list[PartIndex] = []
    pos = 0
    for i, part in enumerate(parts):
        if i > 0:
            pos += separator_len
        length = _byte_len(part)
        index.append(PartIndex(pos, pos + length))
        pos += length
    return MergedText(merged=separator.join(parts), parts=tuple(parts), index=tuple(index))


def _merge_partial(parts: Sequence[str], strategy: TextMergeStrategy) -> MergedText | None:
    separator_len = _byte_len(strategy.separator)
    included: list[str] = []
    pos = 0
    for i, part in enumerate(parts):
        added = _byte_len(part) + (separator_len if i > 0 else 0)
        if pos + added > strategy.max_len:
            break
        included.append(part)
        pos += added

    if len(included) < 2:
        return None
    return _join(included, strategy.separator)


def split_merged_text(merged: MergedText) -> list[str]:
    data = merged.merged.encode("utf-8")
    result: list[str] = []
    for span in merged.index:
        if span.end <= len(data):
            result.append(data[span.start : span.end].decode("utf-8"))
        else:
            result.append("")
    return result


def find_violating_parts(merged: MergedText, violation_start: int, violation_end: int) -> list[int]:
    """Indexes of parts whose span overlaps the violation span."""

    return [
        i for i, span in enumerate(merged.index) if span.overlaps(violation_start, violation_end)
    ]


def truncate_text(text: str, max_len: int) -> str:
    """Cut ``text`` to at most ``max_len`` UTF-8 bytes, marking the cut with an ellipsis."""

    data = text.encode("utf-8")
    if len(data) <= max_len:
        return text
    if max_len <= 3:
        return data[:max_len].decode("utf-8", errors="ignore")
    return data[: max_len - 3].decode("utf-8", errors="ignore") + "..."


def mask_text(text: str, start: int, end: int, mask_char: str = "*") -> str:
    """Replace the characters in ``[start, end)`` with ``mask_char``."""

    start = max(start, 0)
    end = min(end, len(text))
    if start >= end:
        return text
    return text[:start] + mask_char * (end - start) + text[end:]
