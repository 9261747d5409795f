"""
Proxy-safe client address resolution.

Forwarding headers are only honoured when the direct peer is one of the
configured trusted proxies; otherwise any client could pick its own
rate-limit bucket by sending ``X-Forwarded-For``.
"""

from __future__ import annotations

from ipaddress import ip_address, ip_network
from typing import Iterable, Mapping


def _normalize_ip(value: str | None) -> str | None:
    if not value:
        return None
    value = str(value).strip().strip('"')
    if value.startswith('[') and ']' in value:
        # [2001:db8::1]:443
        value = value[1:value.index(']')]
    elif value.count(':') == 1:
        # 203.0.113.7:51234
        value = value.split(':', 1)[0]
    try:
        return str(ip_address(value))
    except ValueError:
        return None


def parse_trusted_proxies(value: str | Iterable[str] | None) -> list:
    """Parse trusted proxy CIDRs/IPs from config or env."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')

    networks = []
    for item in value:
        item = (item or '').strip()
        if not item:
            continue
        try:
            networks.append(ip_network(item, strict=False))
        except ValueError:
            continue
    return networks


def _is_trusted_proxy(remote_addr: str | None, trusted_proxies: list) -> bool:
    normalized = _normalize_ip(remote_addr)
    if not normalized or not trusted_proxies:
        return False
    parsed = ip_address(normalized)
    return any(parsed in network for network in trusted_proxies)


def resolve_client_ip(
    headers: Mapping[str, str],
    remote_addr: str | None,
    *,
    trusted_proxies: str | Iterable[str] | None = None,
) -> str | None:
    """Return the client address, walking ``X-Forwarded-For`` right to left
    through trusted hops only."""

    networks = parse_trusted_proxies(trusted_proxies)
    peer = _normalize_ip(remote_addr)
    if not _is_trusted_proxy(peer, networks):
        return peer or remote_addr

    headers = headers or {}
    hops = [part.strip() for part in (headers.get('X-Forwarded-For') or '').split(',') if part.strip()]
    for hop in reversed(hops):
        candidate = _normalize_ip(hop)
        if candidate is None:
            break
        if not _is_trusted_proxy(candidate, networks):
            return candidate

    real_ip = _normalize_ip(headers.get('X-Real-IP'))
    return real_ip or peer
