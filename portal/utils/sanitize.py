"""
Input sanitization helpers.

Used on admin-authored notification text, contact form fields and
user-supplied redirect targets.
"""

import re
from urllib.parse import urlparse


_TAG_RE = re.compile(r'<[^>]*>')
_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_BLOCKED_SCHEMES = {'javascript', 'data', 'vbscript', 'file'}
_URL_WHITESPACE_RE = re.compile(r'[\t\r\n]')


def sanitize_string(value, max_length=1000):
    """Strip tags and null bytes, trim, then truncate to `max_length`."""
    if not value:
        return ''
    clean = _TAG_RE.sub('', str(value))
    clean = clean.replace('\0', '').strip()
    return clean[:max_length]


def sanitize_email(value):
    """Lowercase and de-space an email; return '' when it is not email-shaped."""
    if not value:
        return ''
    clean = re.sub(r'\s', '', str(value).strip().lower())
    if not _EMAIL_RE.match(clean):
        return ''
    return clean


def sanitize_phone(value):
    if not value:
        return ''
    clean = re.sub(r'[^\d+]', '', str(value))
    if '+' in clean:
        clean = '+' + clean.replace('+', '')
    return clean


def sanitize_url(url, allowed_hosts=()):
    """Return a safe redirect target or None.

    Relative paths (``/dashboard``) pass through. Absolute URLs must use
    http(s) and, when `allowed_hosts` is given, point at one of those hosts
    or a subdomain of one.
    """
    if not url:
        return None

    url = str(url).strip()
    if url.startswith('/'):
        # Browsers drop tabs/newlines and read backslashes as slashes.
        head = _URL_WHITESPACE_RE.sub('', url[:8]).replace('\\', '/')
        if head.startswith('//'):
            return None
        return url

    parsed = urlparse(url)
    scheme = (parsed.scheme or '').lower()
    if not scheme or scheme in _BLOCKED_SCHEMES or scheme not in ('http', 'https'):
        return None

    host = (parsed.hostname or '').lower()
    if not host:
        return None

    hosts = [h.lower() for h in allowed_hosts if h]
    if hosts and not any(host == h or host.endswith('.' + h) for h in hosts):
        return None

    return url
