"""Public package catalog shown on the marketing site."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List

from portal.domain.enums import PackageTier


@dataclass(frozen=True)
class PackageOffer:
    tier: PackageTier
    name: str
    description: str
    price: str
    features: List[str] = field(default_factory=list)
    excluded_features: List[str] = field(default_factory=list)
    popular: bool = False

    def as_dict(self) -> dict:
        data = asdict(self)
        data['tier'] = self.tier.value
        return data


@dataclass(frozen=True)
class AddOnService:
    key: str
    name: str
    price: str


PACKAGES: tuple[PackageOffer, ...] = (
    PackageOffer(
        tier=PackageTier.ESSENTIAL,
        name='Essential Package',
        description='Core services for a smooth transition to Germany',
        price='₹25,000',
        features=[
            'Online Q&A Session (1-hour group Zoom)',
            'WhatsApp Support Group (6 months pre-arrival)',
            'Berlin Relocation Blueprint (10-part video series)',
            'Pre-Departure Starter Kit',
            'Event Coordination & Group Integration',
            'Orientation Bootcamp (2-day program)',
        ],
        excluded_features=[
            'Airport Pickup',
            'Indian Welcome Package',
            'Buddy Program',
            'Safety & Emergency Workshop',
        ],
        popular=True,
    ),
    PackageOffer(
        tier=PackageTier.PREMIUM,
        name='Premium Package',
        description='Comprehensive support for a worry-free experience',
        price='₹40,000',
        features=[
            'Everything in Essential Package',
            'Airport Pickup Service',
            'Indian Welcome Package',
            '10-Day Post-Arrival Support',
            'Buddy Program (1-2 months mentorship)',
            'Safety & Emergency Workshop',
            '1-1 Pre-Departure Discussion',
        ],
    ),
)


ADD_ON_SERVICES: tuple[AddOnService, ...] = (
    AddOnService('airport', 'Airport Pickup Service', '₹4,000'),
    AddOnService('welcome', 'Indian Welcome Package', '₹6,000'),
    AddOnService('post-arrival', '10-Day Post-Arrival Support', '₹5,000'),
    AddOnService('buddy', 'Buddy Program', '₹7,500'),
    AddOnService('safety', 'Safety & Emergency Workshop', '₹2,000'),
    AddOnService('discussion', '1-1 Pre-Departure Discussion', '₹2,000'),
    AddOnService('event', 'Cultural Event Participation', '₹2,500'),
    AddOnService('starter', 'Pre-Departure Starter Kit', '₹2,500'),
)


def catalog_payload() -> dict:
    return {
        'packages': [offer.as_dict() for offer in PACKAGES],
        'add_ons': [asdict(service) for service in ADD_ON_SERVICES],
    }
