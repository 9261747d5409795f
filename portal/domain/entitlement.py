"""Package expiry and entitlement policy.

Pure functions over an immutable `EntitlementRecord`:

- `is_package_expired` decides whether a paid tier has lapsed.
- `downgrade_to_free` builds the corrected record for a lapsed tier.
- `has_active_paid_plan` is the paywall predicate.

The evaluation instant is always an explicit argument; callers default it to
the current time only at the outermost call site.

Note the deliberate asymmetry: a paid record without an expiry date is never
auto-downgraded, yet it also never passes the paywall.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Optional

from portal.domain.enums import PackageTier, Role


class MalformedRecordError(ValueError):
    """A user record carries a value the policy cannot interpret."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: Any, field_name: str = 'timestamp') -> Optional[datetime]:
    """Normalize a stored timestamp to an aware UTC datetime.

    - None -> None
    - naive datetime -> assumed UTC
    - aware datetime -> converted to UTC
    - ISO-8601 string -> parsed
    Anything else raises MalformedRecordError.
    """

    if value is None:
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise MalformedRecordError(f'{field_name} is not a valid timestamp: {value!r}') from None

    if not isinstance(value, datetime):
        raise MalformedRecordError(f'{field_name} is not a timestamp: {value!r}')

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class EntitlementRecord:
    user_id: Optional[int]
    email: str
    role: Role
    package: PackageTier
    package_activated_at: Optional[datetime] = None
    package_expires_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Raw strings are coerced so the identity checks below stay sound.
        try:
            role = Role.parse(self.role)
            package = PackageTier.parse(self.package)
        except ValueError as exc:
            raise MalformedRecordError(str(exc)) from exc

        object.__setattr__(self, 'role', role)
        object.__setattr__(self, 'package', package)
        object.__setattr__(self, 'package_activated_at', to_utc(self.package_activated_at, 'package_activated_at'))
        object.__setattr__(self, 'package_expires_at', to_utc(self.package_expires_at, 'package_expires_at'))

    @classmethod
    def from_user(cls, user: Any) -> 'EntitlementRecord':
        """Build a record from an ORM user (or any object with matching attributes)."""

        try:
            role = getattr(user, 'role')
            package = getattr(user, 'package')
        except AttributeError as exc:
            raise MalformedRecordError(f'User record is missing a required field: {exc}') from exc

        return cls(
            user_id=getattr(user, 'id', None),
            email=getattr(user, 'email', '') or '',
            role=role,
            package=package,
            package_activated_at=getattr(user, 'package_activated_at', None),
            package_expires_at=getattr(user, 'package_expires_at', None),
        )


def is_package_expired(record: EntitlementRecord, now: Optional[datetime] = None) -> bool:
    """Return True when the record's paid tier has lapsed as of `now`.

    Rules, first match wins: admins are exempt; free never expires; a missing
    expiry date is never expired; otherwise expired only when `now` is
    strictly after the expiry instant.
    """

    if record.role is Role.ADMIN:
        return False
    if record.package is PackageTier.FREE:
        return False
    if record.package_expires_at is None:
        return False

    now = to_utc(now, 'now') if now is not None else utcnow()
    expires_at = to_utc(record.package_expires_at, 'package_expires_at')
    return now > expires_at


def downgrade_to_free(record: EntitlementRecord) -> EntitlementRecord:
    return replace(
        record,
        package=PackageTier.FREE,
        package_activated_at=None,
        package_expires_at=None,
    )


def has_active_paid_plan(record: EntitlementRecord, now: Optional[datetime] = None) -> bool:
    if record.package is PackageTier.FREE:
        return False
    if record.package_expires_at is None:
        return False

    now = to_utc(now, 'now') if now is not None else utcnow()
    return to_utc(record.package_expires_at, 'package_expires_at') > now
