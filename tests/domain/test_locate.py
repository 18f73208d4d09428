from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from censorflow.domain.model import Reason
from censorflow.domain.review import extract_keywords, locate
from censorflow.domain.review.locate import KEYWORD_CONFIDENCE_CAP, POSITION_CONFIDENCE
from censorflow.domain.textmerge import merge_texts

if TYPE_CHECKING:
    from censorflow.domain.textmerge import MergedText


def _merged(items: list[tuple[str, str]]) -> MergedText:
    merged = merge_texts([text for _, text in items])
    assert merged is not None
    return merged


def test_position_hits_win_with_fixed_confidence() -> None:
    items = [("name", "正常名称"), ("desc", "包含违禁词的描述")]
    merged = _merged(items)
    start = merged.index[1].start
    reason = Reason(
        code="illegal",
        hit_tags=("正常",),
        raw={"positions": [{"startPos": start + 6, "endPos": start + 15}]},
    )

    result = locate(items, merged.index, [reason])

    assert result.ids == ("desc",)
    assert result.method == "position"
    assert result.confidence == POSITION_CONFIDENCE == 0.95


def test_flat_position_fields_are_understood() -> None:
    items = [("a", "first"), ("b", "second")]
    merged = _merged(items)
    reason = Reason(code="x", raw={"start_position": 0, "end_position": 3})

    result = locate(items, merged.index, [reason])

    assert result.ids == ("a",)


def test_keyword_match_is_capped() -> None:
    items = [("name", "正常名称"), ("desc", "包含违禁词的描述")]
    merged = _merged(items)

    result = locate(items, merged.index, [Reason(code="illegal", hit_tags=("违禁词",))])

    assert result.ids == ("desc",)
    assert result.method == "keyword"
    assert result.confidence == pytest.approx(KEYWORD_CONFIDENCE_CAP)
    assert result.confidence <= 0.85


def test_partial_keyword_coverage_lowers_confidence() -> None:
    items = [("a", "buy cheap pills"), ("b", "hello")]
    merged = _merged(items)
    reason = Reason(code="ads", hit_tags=("pills",), raw={"keywords": ["casino"]})

    result = locate(items, merged.index, [reason])

    assert result.ids == ("a",)
    assert result.confidence == pytest.approx(0.5 * KEYWORD_CONFIDENCE_CAP)
    assert 0.0 <= result.confidence <= 1.0


def test_nothing_found_returns_empty_result() -> None:
    items = [("a", "fine"), ("b", "also fine")]
    merged = _merged(items)

    result = locate(items, merged.index, [Reason(code="ads", hit_tags=("nowhere",))])

    assert not result.found
    assert result.ids == ()
    assert result.confidence == 0.0


def test_no_reasons_locates_nothing() -> None:
    items = [("a", "fine")]
    merged = _merged(items)

    assert not locate(items, merged.index, []).found


def test_extract_keywords_reads_vendor_shapes() -> None:
    reason = Reason(
        code="x",
        hit_tags=("tag",),
        raw={
            "keywords": ["kw", 3],
            "keywordTexts": ["kt"],
            "segments": [{"segment": "seg"}, {"other": 1}],
            "Keywords": ["KW"],
        },
    )

    assert list(extract_keywords(reason)) == ["tag", "kw", "kt", "seg", "KW"]
