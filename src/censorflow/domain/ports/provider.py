"""Port for moderation providers (cloud vendors, human review queues, HTTP services)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from censorflow.domain.model import BizContext, Mode, Resource, ResourceType, ReviewResult

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from censorflow.domain.violation import SceneCapability, Translator, UnifiedScene


@dataclass(slots=True, frozen=True)
class Capability:
    resource_type: ResourceType
    modes: tuple[Mode, ...]


@dataclass(slots=True, frozen=True)
class SubmitRequest:
    resource: Resource
    biz: BizContext
    scenes: tuple[UnifiedScene, ...] = ()
    timeout: float | None = None


@dataclass(slots=True, frozen=True)
class SubmitResponse:
    """``immediate`` is set for sync verdicts; async submissions only carry ``task_id``."""

    mode: Mode
    task_id: str = ""
    immediate: ReviewResult | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class QueryResponse:
    done: bool
    result: ReviewResult | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class CallbackData:
    task_id: str
    done: bool
    result: ReviewResult | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class Provider(Protocol):
    @property
    def name(self) -> str: ...

    def capabilities(self) -> Sequence[Capability]: ...

    def scene_capability(self) -> SceneCapability: ...

    def translate_scenes(
        self, scenes: Sequence[UnifiedScene], resource_type: ResourceType
    ) -> list[str]: ...

    def translator(self) -> Translator | None: ...

    async def submit(self, request: SubmitRequest) -> SubmitResponse: ...

    async def query(self, task_id: str) -> QueryResponse: ...

    async def verify_callback(self, headers: Mapping[str, str], body: bytes) -> None:
        """Raise ``CallbackInvalidError`` when the callback cannot be authenticated."""
        ...

    async def parse_callback(self, body: bytes) -> CallbackData: ...


def _modes_for(provider: Provider, resource_type: ResourceType) -> set[Mode]:
    modes: set[Mode] = set()
    for capability in provider.capabilities():
        if capability.resource_type == resource_type:
            modes.update(capability.modes)
    return modes


def supports_sync(provider: Provider, resource_type: ResourceType) -> bool:
    return Mode.SYNC in _modes_for(provider, resource_type)


def supports_async(provider: Provider, resource_type: ResourceType) -> bool:
    return Mode.ASYNC in _modes_for(provider, resource_type)


def supports_resource_type(provider: Provider, resource_type: ResourceType) -> bool:
    return any(cap.resource_type == resource_type for cap in provider.capabilities())


def is_async_capable(provider: Provider) -> bool:
    return any(Mode.ASYNC in cap.modes for cap in provider.capabilities())
