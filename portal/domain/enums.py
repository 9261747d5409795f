from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role. Admins are exempt from package expiry."""

    USER = 'user'
    ADMIN = 'admin'

    @classmethod
    def parse(cls, value: object) -> 'Role':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f'Unknown role: {value!r}') from None


class PackageTier(str, Enum):
    """Subscription tier.

    `free` never expires; the paid tiers are time-bounded. Legacy names
    `basic` and `plus` map onto `essential` and `premium`.
    """

    FREE = 'free'
    ESSENTIAL = 'essential'
    PREMIUM = 'premium'

    @property
    def is_paid(self) -> bool:
        return self is not PackageTier.FREE

    @classmethod
    def parse(cls, value: object) -> 'PackageTier':
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = LEGACY_TIER_NAMES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f'Unknown package tier: {value!r}') from None


LEGACY_TIER_NAMES: dict[str, str] = {
    'basic': PackageTier.ESSENTIAL.value,
    'plus': PackageTier.PREMIUM.value,
}


class NotificationType:
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'
    ERROR = 'error'
    UPDATE = 'update'

    ALL = (INFO, SUCCESS, WARNING, ERROR, UPDATE)


class NotificationPriority:
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    ALL = (LOW, MEDIUM, HIGH)


class Difficulty:
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'

    ALL = (EASY, MEDIUM, HARD)
