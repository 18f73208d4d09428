"""What a provider can detect, and how unified scenes map to its own codes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from censorflow.domain.model import ResourceType

    from .scenes import UnifiedScene


@dataclass(slots=True, frozen=True)
class SceneCapability:
    provider: str
    supported_scenes: Mapping[ResourceType, frozenset[UnifiedScene]] = field(
        default_factory=dict
    )
    max_text_length: int = 0
    sync_supported: bool = False
    async_supported: bool = False

    def can_handle(self, scenes: Iterable[UnifiedScene], resource_type: ResourceType) -> bool:
        return not self.missing_scenes(scenes, resource_type)

    def missing_scenes(
        self, scenes: Iterable[UnifiedScene], resource_type: ResourceType
    ) -> list[UnifiedScene]:
        supported = self.supported_scenes.get(resource_type, frozenset())
        return [scene for scene in scenes if scene not in supported]


@dataclass(slots=True, frozen=True)
class SceneMap:
    """Per-resource-type table of unified scene to provider scene code."""

    provider: str
    codes: Mapping[ResourceType, Mapping[UnifiedScene, str]]

    def translate(self, scenes: Iterable[UnifiedScene], resource_type: ResourceType) -> list[str]:
        table = self.codes.get(resource_type)
        if not table:
            return []
        result: list[str] = []
        for scene in scenes:
            code = table.get(scene)
            if code is not None and code not in result:
                result.append(code)
        return result

    def supported(self, resource_type: ResourceType) -> frozenset[UnifiedScene]:
        return frozenset(self.codes.get(resource_type, {}))

    def capability(
        self,
        *,
        max_text_length: int = 0,
        sync_supported: bool = False,
        async_supported: bool = False,
    ) -> SceneCapability:
        return SceneCapability(
            provider=self.provider,
            supported_scenes={rtype: frozenset(table) for rtype, table in self.codes.items()},
            max_text_length=max_text_length,
            sync_supported=sync_supported,
            async_supported=async_supported,
        )
