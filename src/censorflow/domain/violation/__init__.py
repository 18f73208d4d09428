"""Provider-agnostic violation vocabulary and label translation."""

from __future__ import annotations

from .capability import SceneCapability, SceneMap
from .domains import DOMAIN_REGISTRY, Domain, DomainInfo, get_domain_info
from .scenes import (
    DEFAULT_REQUIREMENTS,
    SCENE_REGISTRY,
    ReviewRequirement,
    ReviewRequirementRegistry,
    SceneInfo,
    UnifiedScene,
    get_scene_info,
)
from .tags import TAG_REGISTRY, Tag, TagInfo, get_tag_domain
from .translator import (
    BaseTranslator,
    LabelMapping,
    TranslationContext,
    Translator,
    adjust_severity,
    merge_violations,
)
from .unified import UnifiedViolation, ViolationList

__all__ = [
    "DEFAULT_REQUIREMENTS",
    "DOMAIN_REGISTRY",
    "SCENE_REGISTRY",
    "TAG_REGISTRY",
    "BaseTranslator",
    "Domain",
    "DomainInfo",
    "LabelMapping",
    "ReviewRequirement",
    "ReviewRequirementRegistry",
    "SceneCapability",
    "SceneInfo",
    "SceneMap",
    "Tag",
    "TagInfo",
    "TranslationContext",
    "Translator",
    "UnifiedScene",
    "UnifiedViolation",
    "ViolationList",
    "adjust_severity",
    "get_domain_info",
    "get_scene_info",
    "get_tag_domain",
    "merge_violations",
]
