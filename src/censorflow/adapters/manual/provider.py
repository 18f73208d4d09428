"""Human review queue exposed as an async moderation provider."""

from __future__ import annotations

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from censorflow.domain.errors import CallbackInvalidError, TaskNotFoundError
from censorflow.domain.model import (
    BizType,
    Decision,
    Mode,
    Reason,
    ResourceType,
    ReviewResult,
    utcnow,
)
from censorflow.domain.ports import CallbackData, Capability, QueryResponse, SubmitResponse
from censorflow.domain.violation import SceneCapability, UnifiedScene

from .schema import ManualCallbackPayload
from .translator import MANUAL_PROVIDER_NAME, ManualTranslator

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from censorflow.domain.model import BizContext, Resource
    from censorflow.domain.ports import Provider, SubmitRequest
    from censorflow.domain.violation import Translator

log = getLogger(__name__)

DEFAULT_QUEUE_NAME = "default"
DEFAULT_TIMEOUT = timedelta(hours=24)
DEFAULT_PRIORITY = 5

_PRIORITY_BY_BIZ_TYPE: dict[BizType, int] = {
    BizType.USER_NICKNAME: 10,
    BizType.USER_AVATAR: 10,
    BizType.NOTE_TITLE: 8,
    BizType.NOTE_BODY: 8,
    BizType.CHAT_MESSAGE: 6,
    BizType.DANMAKU: 6,
}

_RESOURCE_TYPES = (ResourceType.TEXT, ResourceType.IMAGE, ResourceType.VIDEO)


def calculate_priority(biz: BizContext) -> int:
    """Profile fields are most visible, so they jump the queue."""

    return _PRIORITY_BY_BIZ_TYPE.get(biz.biz_type, DEFAULT_PRIORITY)


@dataclass(slots=True, frozen=True)
class ManualResult:
    decision: Decision
    reasons: tuple[Reason, ...] = ()
    reviewer_id: str = ""
    comment: str = ""
    reviewed_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class ManualTask:
    task_id: str
    queue_name: str
    resource: Resource
    biz: BizContext
    priority: int = DEFAULT_PRIORITY
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime
    auto_result: ReviewResult | None = None
    result: ManualResult | None = None
    done: bool = False

    def is_expired(self, now: datetime) -> bool:
        return not self.done and now > self.expires_at


@runtime_checkable
class ManualTaskStore(Protocol):
    def save_task(self, task: ManualTask) -> None: ...

    def get_task(self, task_id: str) -> ManualTask | None: ...

    def update_task(self, task_id: str, result: ManualResult) -> None:
        """Raise ``TaskNotFoundError`` when ``task_id`` is unknown."""
        ...

    def list_pending_tasks(self, queue_name: str, limit: int) -> list[ManualTask]: ...


class InMemoryManualTaskStore:
    """Process-local task queue, suitable for development and tests only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, ManualTask] = {}

    def save_task(self, task: ManualTask) -> None:
        with self._lock:
            self._tasks[task.task_id] = replace(task)

    def get_task(self, task_id: str) -> ManualTask | None:
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task is not None else None

    def update_task(self, task_id: str, result: ManualResult) -> None:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(f"manual task {task_id}")
            task.result = result
            task.done = True

    def list_pending_tasks(self, queue_name: str, limit: int) -> list[ManualTask]:
        with self._lock:
            pending = [
                task
                for task in self._tasks.values()
                if not task.done and task.queue_name == queue_name
            ]
        pending.sort(key=lambda task: (-task.priority, task.created_at))
        return [replace(task) for task in pending[:limit]]


type TaskHandler = Callable[[ManualTask], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class ManualProviderConfig:
    queue_name: str = DEFAULT_QUEUE_NAME
    default_timeout: timedelta = DEFAULT_TIMEOUT


class ManualProvider:
    """Async-only provider whose verdicts come from human reviewers.

    Tasks live in a :class:`ManualTaskStore`. Reviewers answer either through
    :meth:`submit_result` (picked up by the poller) or by posting a callback.
    An optional ``handler`` is awaited after each task is saved, e.g. to push it to
    an external review tool; its failure fails the submission.
    """

    def __init__(
        self,
        config: ManualProviderConfig | None = None,
        *,
        store: ManualTaskStore | None = None,
        handler: TaskHandler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or ManualProviderConfig()
        self.store: ManualTaskStore = store or InMemoryManualTaskStore()
        self.handler = handler
        self._clock = clock
        self._translator = ManualTranslator()

    @property
    def name(self) -> str:
        return MANUAL_PROVIDER_NAME

    def with_handler(self, handler: TaskHandler) -> ManualProvider:
        self.handler = handler
        return self

    def capabilities(self) -> Sequence[Capability]:
        return [Capability(resource_type=rtype, modes=(Mode.ASYNC,)) for rtype in _RESOURCE_TYPES]

    def scene_capability(self) -> SceneCapability:
        every_scene = frozenset(UnifiedScene)
        return SceneCapability(
            provider=self.name,
            supported_scenes={rtype: every_scene for rtype in _RESOURCE_TYPES},
            async_supported=True,
        )

    def translate_scenes(
        self, scenes: Sequence[UnifiedScene], resource_type: ResourceType
    ) -> list[str]:
        # reviewers see the content, not scene codes
        return []

    def translator(self) -> Translator | None:
        return self._translator

    async def submit(self, request: SubmitRequest) -> SubmitResponse:
        now = self._clock()
        task = ManualTask(
            task_id=f"manual_{request.resource.resource_id}_{time.time_ns()}",
            queue_name=self.config.queue_name,
            resource=request.resource,
            biz=request.biz,
            priority=calculate_priority(request.biz),
            created_at=now,
            expires_at=now + self.config.default_timeout,
        )
        self.store.save_task(task)

        if self.handler is not None:
            await self.handler(task)

        log.debug("Queued manual task %s (priority %s)", task.task_id, task.priority)
        return SubmitResponse(
            mode=Mode.ASYNC,
            task_id=task.task_id,
            raw={
                "task_id": task.task_id,
                "queue": task.queue_name,
                "status": "pending",
                "expires_at": task.expires_at.isoformat(),
                "priority": task.priority,
            },
        )

    async def query(self, task_id: str) -> QueryResponse:
        task = self.store.get_task(task_id)
        if task is None:
            return QueryResponse(done=False, raw={"task_id": task_id, "status": "not_found"})

        now = self._clock()
        if not task.done:
            if task.is_expired(now):
                return QueryResponse(
                    done=True,
                    result=ReviewResult(
                        decision=Decision.REVIEW,
                        confidence=0.0,
                        reasons=(Reason(code="timeout", message="Manual review timed out"),),
                        provider=self.name,
                        reviewed_at=now,
                    ),
                    raw={"task_id": task_id, "status": "timeout"},
                )
            return QueryResponse(done=False, raw={"task_id": task_id, "status": "pending"})

        result = task.result
        if result is None:
            raise TaskNotFoundError(f"manual task {task_id} has no result")
        return QueryResponse(
            done=True,
            result=ReviewResult(
                decision=result.decision,
                confidence=1.0,
                reasons=result.reasons,
                provider=self.name,
                reviewed_at=result.reviewed_at,
            ),
            raw={
                "task_id": task_id,
                "status": "completed",
                "reviewer_id": result.reviewer_id,
                "comment": result.comment,
            },
        )

    def submit_result(
        self,
        task_id: str,
        decision: Decision,
        *,
        reasons: Sequence[Reason] = (),
        reviewer_id: str = "",
        comment: str = "",
    ) -> None:
        self.store.update_task(
            task_id,
            ManualResult(
                decision=decision,
                reasons=tuple(reasons),
                reviewer_id=reviewer_id,
                comment=comment,
                reviewed_at=self._clock(),
            ),
        )

    def get_pending_tasks(self, limit: int = 50) -> list[ManualTask]:
        return self.store.list_pending_tasks(self.config.queue_name, limit)

    async def verify_callback(self, headers: Mapping[str, str], body: bytes) -> None:
        # callbacks come from the internal review tool
        return None

    async def parse_callback(self, body: bytes) -> CallbackData:
        try:
            payload = ManualCallbackPayload.model_validate_json(body)
        except PydanticValidationError as exc:
            raise CallbackInvalidError(f"malformed manual callback: {exc}") from exc

        return CallbackData(
            task_id=payload.task_id,
            done=True,
            result=ReviewResult(
                decision=payload.decision,
                confidence=1.0,
                reasons=tuple(reason.to_reason(self.name) for reason in payload.reasons),
                provider=self.name,
                reviewed_at=self._clock(),
            ),
            raw={"reviewer_id": payload.reviewer_id, "comment": payload.comment},
        )


if TYPE_CHECKING:
    _provider_check: Provider = ManualProvider()
    _task_store_check: ManualTaskStore = InMemoryManualTaskStore()
