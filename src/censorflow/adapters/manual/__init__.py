"""Public interface for the manual review adapter."""

from __future__ import annotations

from .provider import (
    InMemoryManualTaskStore,
    ManualProvider,
    ManualProviderConfig,
    ManualResult,
    ManualTask,
    ManualTaskStore,
    calculate_priority,
)
from .schema import ManualCallbackPayload
from .translator import MANUAL_LABEL_MAP, MANUAL_PROVIDER_NAME, ManualTranslator

__all__ = [
    "MANUAL_LABEL_MAP",
    "MANUAL_PROVIDER_NAME",
    "InMemoryManualTaskStore",
    "ManualCallbackPayload",
    "ManualProvider",
    "ManualProviderConfig",
    "ManualResult",
    "ManualTask",
    "ManualTaskStore",
    "ManualTranslator",
    "calculate_priority",
]
