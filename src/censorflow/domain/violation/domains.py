"""Provider-agnostic violation domains and their default risk."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from censorflow.domain.model import RiskLevel


class Domain(StrEnum):
    PORNOGRAPHY = "pornography"
    SEXUAL_HINT = "sexual_hint"
    VIOLENCE = "violence"
    TERRORISM = "terrorism"
    POLITICS = "politics"
    ILLEGAL = "illegal"
    FRAUD = "fraud"
    GAMBLING = "gambling"
    DRUGS = "drugs"

    HATE_SPEECH = "hate_speech"
    HARASSMENT = "harassment"
    ABUSE = "abuse"
    MINOR_SAFETY = "minor_safety"

    SPAM = "spam"
    ADS = "ads"
    SCAM = "scam"
    ACCOUNT_RISK = "account_risk"

    OTHER = "other"


@dataclass(slots=True, frozen=True)
class DomainInfo:
    domain: Domain
    name: str
    description: str
    default_risk: RiskLevel


def _info(domain: Domain, name: str, description: str, risk: RiskLevel) -> DomainInfo:
    return DomainInfo(domain=domain, name=name, description=description, default_risk=risk)


DOMAIN_REGISTRY: Final[dict[Domain, DomainInfo]] = {
    info.domain: info
    for info in (
        _info(Domain.PORNOGRAPHY, "Pornography", "Sexually explicit content", RiskLevel.SEVERE),
        _info(
            Domain.SEXUAL_HINT,
            "Sexual Hint",
            "Suggestive or sexually implicit content",
            RiskLevel.MEDIUM,
        ),
        _info(Domain.VIOLENCE, "Violence", "Violent or graphic content", RiskLevel.HIGH),
        _info(Domain.TERRORISM, "Terrorism", "Terrorist-related content", RiskLevel.SEVERE),
        _info(Domain.POLITICS, "Politics", "Politically sensitive content", RiskLevel.HIGH),
        _info(
            Domain.ILLEGAL,
            "Illegal",
            "Content promoting illegal activities",
            RiskLevel.SEVERE,
        ),
        _info(Domain.FRAUD, "Fraud", "Fraudulent or deceptive content", RiskLevel.HIGH),
        _info(Domain.GAMBLING, "Gambling", "Gambling-related content", RiskLevel.MEDIUM),
        _info(Domain.DRUGS, "Drugs", "Drug-related content", RiskLevel.HIGH),
        _info(
            Domain.HATE_SPEECH,
            "Hate Speech",
            "Hateful or discriminatory content",
            RiskLevel.HIGH,
        ),
        _info(Domain.HARASSMENT, "Harassment", "Harassing or bullying content", RiskLevel.MEDIUM),
        _info(Domain.ABUSE, "Abuse", "Abusive content", RiskLevel.HIGH),
        _info(Domain.MINOR_SAFETY, "Minor Safety", "Content endangering minors", RiskLevel.SEVERE),
        _info(Domain.SPAM, "Spam", "Spam or unsolicited content", RiskLevel.LOW),
        _info(Domain.ADS, "Ads", "Unauthorized advertising", RiskLevel.LOW),
        _info(Domain.SCAM, "Scam", "Scam or phishing content", RiskLevel.HIGH),
        _info(
            Domain.ACCOUNT_RISK,
            "Account Risk",
            "Account-level risk indicators",
            RiskLevel.MEDIUM,
        ),
        _info(Domain.OTHER, "Other", "Other violations", RiskLevel.LOW),
    )
}


def get_domain_info(domain: Domain | str) -> DomainInfo:
    """Return the registry entry for ``domain``; unknown domains resolve to ``other``."""

    try:
        return DOMAIN_REGISTRY[Domain(domain)]
    except ValueError:
        return DOMAIN_REGISTRY[Domain.OTHER]
