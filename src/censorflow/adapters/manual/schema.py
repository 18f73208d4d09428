"""Pydantic models for manual review callbacks."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from censorflow.domain.model import Decision, Reason


class ManualBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ReasonPayload(ManualBaseModel):
    code: str
    message: str = ""
    provider: str = ""
    hit_tags: list[str] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)

    def to_reason(self, provider: str) -> Reason:
        return Reason(
            code=self.code,
            message=self.message,
            provider=self.provider or provider,
            hit_tags=tuple(self.hit_tags),
            raw=dict(self.raw),
        )


class ManualCallbackPayload(ManualBaseModel):
    task_id: str
    decision: Decision
    reviewer_id: str = ""
    comment: str = ""
    reasons: list[ReasonPayload] = Field(default_factory=list)

    @field_validator("task_id")
    @classmethod
    def _require_task_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("task_id must not be empty")
        return value

    @field_validator("decision")
    @classmethod
    def _require_verdict(cls, value: Decision) -> Decision:
        if value in {Decision.PENDING, Decision.ERROR}:
            raise ValueError(f"reviewer decision cannot be {value}")
        return value
