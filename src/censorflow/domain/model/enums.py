"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ResourceType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class BizType(StrEnum):
    """Business placement of a piece of content; drives scene requirements."""

    USER_AVATAR = "user_avatar"
    USER_NICKNAME = "user_nickname"
    USER_BIO = "user_bio"

    NOTE_TITLE = "note_title"
    NOTE_BODY = "note_body"
    NOTE_IMAGES = "note_images"
    NOTE_VIDEOS = "note_videos"

    TEAM_NAME = "team_name"
    TEAM_INTRO = "team_intro"
    TEAM_BG_IMAGE = "team_bg_image"

    CHAT_MESSAGE = "chat_message"
    DANMAKU = "danmaku"
    COMMENT = "comment"


class Decision(StrEnum):
    PENDING = "pending"
    PASS = "pass"
    REVIEW = "review"
    BLOCK = "block"
    ERROR = "error"


class ReplacePolicy(StrEnum):
    NONE = "none"
    DEFAULT_VALUE = "default_value"
    MASK = "mask"


class ReviewStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    CANCELED = "canceled"


class RiskLevel(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    SEVERE = 4

    @property
    def label(self) -> str:
        return self.name.lower()


class HistorySource(StrEnum):
    AUTO = "auto"
    MANUAL = "manual"
    RECHECK = "recheck"
    POLICY_UPGRADE = "policy_upgrade"
    APPEAL = "appeal"


class Mode(StrEnum):
    SYNC = "sync"
    ASYNC = "async"


_DECISION_SEVERITY: dict[str, int] = {
    Decision.PASS: 0,
    Decision.PENDING: 1,
    Decision.REVIEW: 2,
    Decision.BLOCK: 3,
    Decision.ERROR: 4,
}


def decision_severity(decision: Decision | str) -> int:
    """Return the total-order rank of ``decision``; unknown values rank as pass."""

    return _DECISION_SEVERITY.get(decision, 0)


def strictest(decisions: Iterable[Decision], *, default: Decision = Decision.PASS) -> Decision:
    """Return the most severe decision, starting from ``default``."""

    result = default
    for decision in decisions:
        if decision_severity(decision) > decision_severity(result):
            result = decision
    return result
