"""Fine-grained violation tags that refine a domain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from .domains import Domain


class Tag(StrEnum):
    NUDITY = "nudity"
    PORNOGRAPHIC_ACT = "pornographic_act"
    MINOR_SEXUAL = "minor_sexual"
    SEXUAL_TEXT = "sexual_text"

    GORE = "gore"
    WEAPON = "weapon"
    BLOOD_CONTENT = "blood_content"
    SELF_HARM = "self_harm"

    POLITICAL_SENSITIVE = "political_sensitive"
    POLITICAL_RUMOR = "political_rumor"
    POLITICAL_LEADER = "political_leader"
    POLITICAL_SYMBOL = "political_symbol"

    SCAM_IMPERSONATION = "scam_impersonation"
    FRAUD_PAYMENT = "fraud_payment"
    PHISHING = "phishing"
    FAKE_INFO = "fake_info"

    HATE_RACE = "hate_race"
    HATE_GENDER = "hate_gender"
    HATE_RELIGION = "hate_religion"
    HATE_DISABLED = "hate_disabled"

    SPAM_ADS = "spam_ads"
    SPAM_CONTACT = "spam_contact"
    SPAM_LINK = "spam_link"
    SPAM_REPEAT = "spam_repeat"

    MINOR_ABUSE = "minor_abuse"
    MINOR_EXPLOITATION = "minor_exploitation"

    DRUG_SALE = "drug_sale"
    DRUG_USE = "drug_use"
    DRUG_PROMO = "drug_promo"

    CUSTOM = "custom"


@dataclass(slots=True, frozen=True)
class TagInfo:
    tag: Tag
    name: str
    description: str
    domain: Domain


# Only tags with a well-established primary domain are registered; the rest fall back to other.
TAG_REGISTRY: Final[dict[Tag, TagInfo]] = {
    Tag.NUDITY: TagInfo(Tag.NUDITY, "Nudity", "Nude or partially nude content", Domain.PORNOGRAPHY),
    Tag.PORNOGRAPHIC_ACT: TagInfo(
        Tag.PORNOGRAPHIC_ACT, "Pornographic Act", "Explicit sexual acts", Domain.PORNOGRAPHY
    ),
    Tag.MINOR_SEXUAL: TagInfo(
        Tag.MINOR_SEXUAL, "Minor Sexual", "Sexual content involving minors", Domain.MINOR_SAFETY
    ),
    Tag.POLITICAL_SENSITIVE: TagInfo(
        Tag.POLITICAL_SENSITIVE,
        "Political Sensitive",
        "Politically sensitive content",
        Domain.POLITICS,
    ),
    Tag.HATE_RACE: TagInfo(
        Tag.HATE_RACE, "Racial Hate", "Racially discriminatory content", Domain.HATE_SPEECH
    ),
    Tag.SPAM_ADS: TagInfo(Tag.SPAM_ADS, "Spam Ads", "Spam advertising content", Domain.SPAM),
}


def get_tag_domain(tag: Tag | str) -> Domain:
    try:
        info = TAG_REGISTRY.get(Tag(tag))
    except ValueError:
        return Domain.OTHER
    return info.domain if info is not None else Domain.OTHER
