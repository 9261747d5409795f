from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from slugify import slugify


TASK_TITLE_MAX = 50
TASK_DESCRIPTION_MAX = 800
CATEGORY_NAME_MAX = 50
CATEGORY_DESCRIPTION_MAX = 500

LINK_TITLE_MAX = 100
LINK_URL_MAX = 500
LINK_DESCRIPTION_MAX = 200

DEFAULT_CATEGORY_ICON = 'circle'
DEFAULT_CATEGORY_COLOR = '#3B82F6'

ESTIMATED_DURATIONS = (
    '15-30 minutes',
    '30-60 minutes',
    '1-2 hours',
    '2-4 hours',
    'Half day',
    'Full day',
    '2-3 days',
    '1 week',
    '2-4 weeks',
    '1-2 months',
)

ESTIMATED_TIME_FRAMES = (
    'Before departure',
    'First week',
    'First month',
    '1-3 months',
    '3-6 months',
    '6+ months',
    'Ongoing',
)


@dataclass(frozen=True)
class PolicyIssue:
    code: str
    message: str


@dataclass(frozen=True)
class HelpfulLink:
    title: str
    url: str
    description: str = ''


def category_key(display_name: str) -> str:
    """camelCase key for a category: "Before Arrival" -> "beforeArrival"."""

    words = [w for w in re.split(r'\s+', (display_name or '').strip()) if w]
    if not words:
        return ''
    first, rest = words[0], words[1:]
    return first[:1].lower() + first[1:] + ''.join(w[:1].upper() + w[1:] for w in rest)


def task_key_base(title: str) -> str:
    """kebab-case key for a task: "Register Address" -> "register-address"."""

    return slugify(title or '') or 'task'


def unique_key(base: str, taken: Iterable[str]) -> str:
    """Suffix `base` with -1, -2 ... until it does not collide with `taken`."""

    taken = set(taken)
    candidate = base
    counter = 1
    while candidate in taken:
        candidate = f'{base}-{counter}'
        counter += 1
    return candidate


def check_task_fields(
    title: Any = None,
    description: Any = None,
    estimated_duration: Any = None,
    *,
    require_all: bool = False,
) -> List[PolicyIssue]:
    issues: List[PolicyIssue] = []

    if require_all or title is not None:
        if not title or not str(title).strip():
            issues.append(PolicyIssue('task.title.missing', 'Title is required.'))
        elif len(title) > TASK_TITLE_MAX:
            issues.append(PolicyIssue('task.title.too_long', f'Title must be {TASK_TITLE_MAX} characters or less'))

    if require_all or description is not None:
        if require_all and (not description or not str(description).strip()):
            issues.append(PolicyIssue('task.description.missing', 'Description is required.'))
        elif description and len(description) > TASK_DESCRIPTION_MAX:
            issues.append(
                PolicyIssue('task.description.too_long', f'Description must be {TASK_DESCRIPTION_MAX} characters or less')
            )

    if estimated_duration and estimated_duration not in ESTIMATED_DURATIONS:
        issues.append(PolicyIssue('task.duration.invalid', 'Invalid estimated duration'))

    return issues


def check_category_fields(
    display_name: Any = None,
    estimated_time_frame: Any = None,
    description: Any = None,
    *,
    require_name: bool = False,
) -> List[PolicyIssue]:
    issues: List[PolicyIssue] = []

    if require_name or display_name is not None:
        if not display_name or not str(display_name).strip() or len(display_name) > CATEGORY_NAME_MAX:
            issues.append(
                PolicyIssue(
                    'category.name.invalid',
                    f'Display name is required and must be {CATEGORY_NAME_MAX} characters or less',
                )
            )

    if description and len(description) > CATEGORY_DESCRIPTION_MAX:
        issues.append(
            PolicyIssue(
                'category.description.too_long',
                f'Description must be {CATEGORY_DESCRIPTION_MAX} characters or less',
            )
        )

    if estimated_time_frame and estimated_time_frame not in ESTIMATED_TIME_FRAMES:
        issues.append(PolicyIssue('category.timeframe.invalid', 'Invalid estimated time frame'))

    return issues


def parse_helpful_links(raw_links: Optional[Iterable[Mapping[str, Any]]]) -> tuple[List[HelpfulLink], List[PolicyIssue]]:
    links: List[HelpfulLink] = []
    issues: List[PolicyIssue] = []

    for raw in raw_links or ():
        if not isinstance(raw, Mapping):
            issues.append(PolicyIssue('link.invalid', 'Each helpful link must have a title and URL'))
            continue

        title = str(raw.get('title') or '').strip()
        url = str(raw.get('url') or '').strip()
        description = str(raw.get('description') or '').strip()

        if not title or not url:
            issues.append(PolicyIssue('link.missing', 'Each helpful link must have a title and URL'))
            continue
        if len(title) > LINK_TITLE_MAX:
            issues.append(PolicyIssue('link.title.too_long', f'Link title must be {LINK_TITLE_MAX} characters or less'))
            continue
        if len(url) > LINK_URL_MAX:
            issues.append(PolicyIssue('link.url.too_long', f'Link URL must be {LINK_URL_MAX} characters or less'))
            continue
        if len(description) > LINK_DESCRIPTION_MAX:
            issues.append(
                PolicyIssue('link.description.too_long', f'Link description must be {LINK_DESCRIPTION_MAX} characters or less')
            )
            continue

        links.append(HelpfulLink(title=title, url=url, description=description))

    return links, issues


def percentage(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round(done * 100 / total))
