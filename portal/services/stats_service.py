"""Cached site counters (paid-user KPI).

The paid-user count is maintained incrementally by admin package changes;
it is never recomputed by scanning the users table. Automatic expiry
downgrades do not adjust it.
"""

from datetime import datetime

from portal.domain.enums import PackageTier
from portal.extensions import db
from portal.models import SiteStats


def get_or_create_stats():
    stats = db.session.get(SiteStats, SiteStats.GLOBAL_ID)
    if stats is None:
        stats = SiteStats(id=SiteStats.GLOBAL_ID, paid_user_count=0, last_updated=datetime.utcnow())
        db.session.add(stats)
        db.session.flush()
    return stats


def paid_user_count():
    stats = get_or_create_stats()
    db.session.commit()
    return stats.paid_user_count


def record_package_change(old_package: PackageTier, new_package: PackageTier) -> SiteStats:
    """Adjust the counter for an admin-initiated change. Caller commits."""

    stats = get_or_create_stats()
    if not old_package.is_paid and new_package.is_paid:
        stats.paid_user_count = (stats.paid_user_count or 0) + 1
    elif old_package.is_paid and not new_package.is_paid:
        stats.paid_user_count = max(0, (stats.paid_user_count or 0) - 1)
    stats.last_updated = datetime.utcnow()
    return stats
