"""Pydantic models describing the HTTP moderation service payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from censorflow.domain.model import Decision

TaskStatus = Literal["completed", "pending", "failed"]


class WebhookBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ModerationRequest(WebhookBaseModel):
    resource_id: str
    type: str
    text: str | None = None
    url: str | None = None
    scenes: list[str] = Field(default_factory=list)
    biz_type: str
    biz_id: str
    submitter_id: str | None = None
    trace_id: str | None = None
    timeout: float | None = None


class HitPosition(WebhookBaseModel):
    start: int = Field(alias="startPos")
    end: int = Field(alias="endPos")


class LabelPayload(WebhookBaseModel):
    label: str
    score: float | None = None
    message: str = ""
    keywords: list[str] = Field(default_factory=list)
    positions: list[HitPosition] = Field(default_factory=list)


class VerdictPayload(WebhookBaseModel):
    decision: Decision
    confidence: float = 0.0
    labels: list[LabelPayload] = Field(default_factory=list)

    @field_validator("decision", mode="before")
    @classmethod
    def _normalize_decision(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(max(value, 0.0), 1.0)


class ModerationResponse(WebhookBaseModel):
    id: str
    status: TaskStatus
    result: VerdictPayload | None = None
    error: str | None = None

    @property
    def is_done(self) -> bool:
        return self.status != "pending"


class ErrorDetail(WebhookBaseModel):
    code: str = "unknown"
    message: str = ""

    @field_validator("code", "message", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class ErrorResponse(WebhookBaseModel):
    error: ErrorDetail

    @field_validator("error", mode="before")
    @classmethod
    def _wrap_plain_message(cls, value: object) -> object:
        if isinstance(value, str):
            return {"message": value}
        return value


def raw_payload(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
