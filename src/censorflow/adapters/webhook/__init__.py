"""Public interface for the HTTP moderation service adapter."""

from __future__ import annotations

from .client import MODERATIONS_PATH, SIGNATURE_HEADER, WebhookModerationProvider, sign_payload
from .schema import ModerationRequest, ModerationResponse
from .translator import WEBHOOK_LABEL_MAP, WebhookTranslator, build_scene_map, parse_review_result

__all__ = [
    "MODERATIONS_PATH",
    "SIGNATURE_HEADER",
    "WEBHOOK_LABEL_MAP",
    "ModerationRequest",
    "ModerationResponse",
    "WebhookModerationProvider",
    "WebhookTranslator",
    "build_scene_map",
    "parse_review_result",
    "sign_payload",
]
