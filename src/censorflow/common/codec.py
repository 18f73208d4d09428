"""JSON encoding of embedded value objects (outcomes, results, reasons, raw payloads)."""

from __future__ import annotations

from typing import Any, Final

from pydantic import TypeAdapter

from censorflow.domain.model.values import FinalOutcome, Reason, ReviewResult

_OUTCOME: Final[TypeAdapter[FinalOutcome]] = TypeAdapter(FinalOutcome)
_RESULT: Final[TypeAdapter[ReviewResult]] = TypeAdapter(ReviewResult)
_REASONS: Final[TypeAdapter[list[Reason]]] = TypeAdapter(list[Reason])
_RAW: Final[TypeAdapter[dict[str, Any]]] = TypeAdapter(dict[str, Any])


def dump_outcome(outcome: FinalOutcome | None) -> str | None:
    return None if outcome is None else _OUTCOME.dump_json(outcome).decode()


def load_outcome(payload: str | bytes | None) -> FinalOutcome | None:
    return None if not payload else _OUTCOME.validate_json(payload)


def dump_result(result: ReviewResult | None) -> str | None:
    return None if result is None else _RESULT.dump_json(result).decode()


def load_result(payload: str | bytes | None) -> ReviewResult | None:
    return None if not payload else _RESULT.validate_json(payload)


def dump_reasons(reasons: list[Reason] | tuple[Reason, ...]) -> str:
    return _REASONS.dump_json(list(reasons)).decode()


def load_reasons(payload: str | bytes | None) -> list[Reason]:
    return [] if not payload else _REASONS.validate_json(payload)


def dump_raw(raw: dict[str, Any] | None) -> str | None:
    return None if raw is None else _RAW.dump_json(raw).decode()


def load_raw(payload: str | bytes | None) -> dict[str, Any] | None:
    return None if not payload else _RAW.validate_json(payload)


def to_jsonable(value: object) -> Any:
    """Convert dataclasses/enums/datetimes into plain JSON-compatible structures."""

    return TypeAdapter(type(value)).dump_python(value, mode="json")
