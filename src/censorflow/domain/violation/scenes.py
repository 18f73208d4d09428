"""Unified detection scenes and per-business review requirements."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from censorflow.domain.model import BizType

from .domains import Domain

if TYPE_CHECKING:
    from collections.abc import Mapping


class UnifiedScene(StrEnum):
    PORNOGRAPHY = "pornography"
    TERRORISM = "terrorism"
    POLITICS = "politics"
    VIOLENCE = "violence"
    BAN = "ban"

    ABUSE = "abuse"
    HATE_SPEECH = "hate_speech"
    HARASSMENT = "harassment"

    ADS = "ads"
    SPAM = "spam"
    FRAUD = "fraud"
    PRIVACY = "privacy"

    MEANINGLESS = "meaningless"
    FLOOD = "flood"

    MINOR = "minor"
    MOAN = "moan"
    QRCODE = "qrcode"
    IMAGE_TEXT = "image_text"
    CUSTOM = "custom"
    AD_LAW = "ad_law"
    PUBLIC_FIGURE = "public_figure"


@dataclass(slots=True, frozen=True)
class SceneInfo:
    scene: UnifiedScene
    name: str
    name_en: str
    description: str
    domains: tuple[Domain, ...]


SCENE_REGISTRY: Final[Mapping[UnifiedScene, SceneInfo]] = MappingProxyType(
    {
        info.scene: info
        for info in (
            SceneInfo(
                UnifiedScene.PORNOGRAPHY,
                "色情检测",
                "Pornography Detection",
                "检测色情、性感违规内容",
                (Domain.PORNOGRAPHY, Domain.SEXUAL_HINT),
            ),
            SceneInfo(
                UnifiedScene.TERRORISM,
                "暴恐检测",
                "Terrorism Detection",
                "检测暴力恐怖相关内容",
                (Domain.TERRORISM,),
            ),
            SceneInfo(
                UnifiedScene.POLITICS,
                "涉政检测",
                "Politics Detection",
                "检测政治敏感内容",
                (Domain.POLITICS,),
            ),
            SceneInfo(
                UnifiedScene.VIOLENCE,
                "暴力检测",
                "Violence Detection",
                "检测暴力血腥内容",
                (Domain.VIOLENCE,),
            ),
            SceneInfo(
                UnifiedScene.BAN,
                "违禁检测",
                "Contraband Detection",
                "检测违禁物品和内容",
                (Domain.ILLEGAL,),
            ),
            SceneInfo(
                UnifiedScene.ABUSE,
                "辱骂检测",
                "Abuse Detection",
                "检测辱骂、攻击性内容",
                (Domain.ABUSE, Domain.HARASSMENT),
            ),
            SceneInfo(
                UnifiedScene.ADS,
                "广告检测",
                "Ads Detection",
                "检测广告推广内容",
                (Domain.ADS, Domain.SPAM),
            ),
            SceneInfo(
                UnifiedScene.SPAM,
                "垃圾检测",
                "Spam Detection",
                "检测垃圾信息和刷屏内容",
                (Domain.SPAM,),
            ),
            SceneInfo(
                UnifiedScene.FRAUD,
                "诈骗检测",
                "Fraud Detection",
                "检测诈骗、钓鱼内容",
                (Domain.FRAUD, Domain.SCAM),
            ),
            SceneInfo(
                UnifiedScene.PRIVACY,
                "隐私检测",
                "Privacy Detection",
                "检测隐私信息泄露",
                (Domain.ACCOUNT_RISK,),
            ),
            SceneInfo(
                UnifiedScene.MEANINGLESS,
                "无意义检测",
                "Meaningless Detection",
                "检测无意义、乱码内容",
                (Domain.SPAM,),
            ),
            SceneInfo(
                UnifiedScene.MINOR,
                "未成年人检测",
                "Minor Safety Detection",
                "检测涉及未成年人的不当内容",
                (Domain.MINOR_SAFETY,),
            ),
            SceneInfo(
                UnifiedScene.MOAN,
                "娇喘检测",
                "Moan Detection",
                "检测娇喘等音频内容",
                (Domain.SEXUAL_HINT,),
            ),
            SceneInfo(
                UnifiedScene.QRCODE,
                "二维码检测",
                "QR Code Detection",
                "检测二维码内容",
                (Domain.SPAM, Domain.ADS),
            ),
            SceneInfo(
                UnifiedScene.IMAGE_TEXT,
                "图文检测",
                "Image Text Detection",
                "检测图片中的文字违规内容",
                (Domain.OTHER,),
            ),
        )
    }
)


def get_scene_info(scene: UnifiedScene) -> SceneInfo | None:
    return SCENE_REGISTRY.get(scene)


@dataclass(slots=True, frozen=True)
class ReviewRequirement:
    """Scenes a business type must be checked for."""

    scenes: tuple[UnifiedScene, ...]
    strict: bool = False
    priority: int = 0


DEFAULT_REQUIREMENT: Final[ReviewRequirement] = ReviewRequirement(
    scenes=(UnifiedScene.PORNOGRAPHY, UnifiedScene.POLITICS)
)

_P = UnifiedScene.PORNOGRAPHY
_POL = UnifiedScene.POLITICS

DEFAULT_REQUIREMENTS: Final[Mapping[BizType, ReviewRequirement]] = MappingProxyType(
    {
        BizType.USER_NICKNAME: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.ABUSE, UnifiedScene.ADS)
        ),
        BizType.USER_AVATAR: ReviewRequirement(scenes=(_P, _POL, UnifiedScene.TERRORISM)),
        BizType.USER_BIO: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.ABUSE, UnifiedScene.ADS, UnifiedScene.PRIVACY)
        ),
        BizType.NOTE_TITLE: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.ABUSE, UnifiedScene.ADS, UnifiedScene.BAN)
        ),
        BizType.NOTE_BODY: ReviewRequirement(
            scenes=(
                _P,
                _POL,
                UnifiedScene.VIOLENCE,
                UnifiedScene.TERRORISM,
                UnifiedScene.ABUSE,
                UnifiedScene.ADS,
                UnifiedScene.FRAUD,
                UnifiedScene.BAN,
            )
        ),
        BizType.NOTE_IMAGES: ReviewRequirement(
            scenes=(
                _P,
                _POL,
                UnifiedScene.TERRORISM,
                UnifiedScene.VIOLENCE,
                UnifiedScene.ADS,
                UnifiedScene.QRCODE,
                UnifiedScene.IMAGE_TEXT,
            )
        ),
        BizType.NOTE_VIDEOS: ReviewRequirement(
            scenes=(
                _P,
                _POL,
                UnifiedScene.TERRORISM,
                UnifiedScene.VIOLENCE,
                UnifiedScene.MOAN,
            )
        ),
        BizType.TEAM_NAME: ReviewRequirement(scenes=(_P, _POL, UnifiedScene.ABUSE)),
        BizType.TEAM_INTRO: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.ABUSE, UnifiedScene.ADS)
        ),
        BizType.TEAM_BG_IMAGE: ReviewRequirement(scenes=(_P, _POL, UnifiedScene.TERRORISM)),
        BizType.CHAT_MESSAGE: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.TERRORISM, UnifiedScene.FRAUD),
            priority=10,
        ),
        BizType.DANMAKU: ReviewRequirement(scenes=(_P, _POL, UnifiedScene.ABUSE), priority=10),
        BizType.COMMENT: ReviewRequirement(
            scenes=(_P, _POL, UnifiedScene.ABUSE, UnifiedScene.SPAM)
        ),
    }
)


@dataclass(slots=True, frozen=True)
class ReviewRequirementRegistry:
    """Immutable lookup of review requirements; overrides produce a new registry."""

    requirements: Mapping[BizType, ReviewRequirement] = field(
        default_factory=lambda: DEFAULT_REQUIREMENTS
    )
    default: ReviewRequirement = DEFAULT_REQUIREMENT

    def get(self, biz_type: BizType) -> ReviewRequirement:
        return self.requirements.get(biz_type, self.default)

    def scenes_for(self, biz_type: BizType) -> list[UnifiedScene]:
        return list(self.get(biz_type).scenes)

    def with_requirement(
        self, biz_type: BizType, requirement: ReviewRequirement
    ) -> ReviewRequirementRegistry:
        updated = dict(self.requirements)
        updated[biz_type] = requirement
        return ReviewRequirementRegistry(
            requirements=MappingProxyType(updated), default=self.default
        )
