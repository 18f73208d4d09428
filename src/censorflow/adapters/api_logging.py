"""Structured records of provider API calls."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

from censorflow.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)


@dataclass(slots=True)
class APILogEntry:
    provider: str
    operation: str
    id: str = ""
    timestamp: datetime = field(default_factory=utcnow)
    resource_type: str = ""
    resource_id: str = ""
    task_id: str = ""
    duration_ms: float = 0.0
    success: bool = True
    status_code: int = 0
    error_code: str = ""
    error_message: str = ""
    retry_count: int = 0
    request: Mapping[str, Any] | None = None
    response: Mapping[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class APILogger(Protocol):
    def log(self, entry: APILogEntry) -> None: ...


class NopAPILogger:
    def log(self, entry: APILogEntry) -> None:
        return None


class LoggingAPILogger:
    """Writes entries through :mod:`logging`; payloads only appear at DEBUG."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        *,
        log_request: bool = True,
        log_response: bool = True,
    ) -> None:
        self.logger = logger or log
        self.log_request = log_request
        self.log_response = log_response

    def log(self, entry: APILogEntry) -> None:
        if not entry.id:
            entry.id = f"{entry.provider}_{entry.operation}_{time.time_ns()}"

        if entry.success:
            self.logger.info(
                "[%s] %s/%s task=%s duration=%.0fms retries=%s",
                entry.provider,
                entry.operation,
                entry.resource_type or "-",
                entry.task_id or "-",
                entry.duration_ms,
                entry.retry_count,
            )
        else:
            self.logger.warning(
                "[%s] %s/%s task=%s duration=%.0fms retries=%s error=[%s] %s",
                entry.provider,
                entry.operation,
                entry.resource_type or "-",
                entry.task_id or "-",
                entry.duration_ms,
                entry.retry_count,
                entry.error_code,
                entry.error_message,
            )

        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if self.log_request and entry.request is not None:
            self.logger.debug("[%s] request: %s", entry.provider, _dumps(entry.request))
        if self.log_response and entry.response is not None:
            self.logger.debug("[%s] response: %s", entry.provider, _dumps(entry.response))


def _dumps(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


class LogTimer:
    """Builds one :class:`APILogEntry` around a timed call."""

    def __init__(self, provider: str, operation: str) -> None:
        self._start = time.perf_counter()
        self.entry = APILogEntry(provider=provider, operation=operation)

    def resource(self, resource_type: str, resource_id: str) -> Self:
        self.entry.resource_type = resource_type
        self.entry.resource_id = resource_id
        return self

    def task(self, task_id: str) -> Self:
        self.entry.task_id = task_id
        return self

    def request(self, payload: Mapping[str, Any]) -> Self:
        self.entry.request = payload
        return self

    def response(self, payload: Mapping[str, Any]) -> Self:
        self.entry.response = payload
        return self

    def retries(self, count: int) -> Self:
        self.entry.retry_count = count
        return self

    def error(self, code: str, message: str, status_code: int = 0) -> Self:
        self.entry.success = False
        self.entry.error_code = code
        self.entry.error_message = message
        self.entry.status_code = status_code
        return self

    def finish(self) -> APILogEntry:
        self.entry.duration_ms = (time.perf_counter() - self._start) * 1000
        return self.entry
