from __future__ import annotations

from fastapi import Request

from utils.constants import Defaults


def normalize_ip(ip: str | None) -> str:
    """Strip the IPv4-mapped IPv6 prefix (``::ffff:127.0.0.1`` -> ``127.0.0.1``)."""
    ip = ip or ''
    if ip[:len(Defaults.IPV4_MAPPED_PREFIX)] == Defaults.IPV4_MAPPED_PREFIX:
        return ip[len(Defaults.IPV4_MAPPED_PREFIX):]
    return ip


def get_client_ip(request: Request, trust_xff: bool) -> str:
    """Determine client IP with optional proxy trust.

    When `trust_xff` is True the leftmost ``X-Forwarded-For`` entry wins, as
    supplied by the proxy in front of the gateway.
    """
    src_ip = request.client.host if request.client else ''
    if trust_xff:
        val = request.headers.get('x-forwarded-for')
        if val:
            ip = val.split(',')[0].strip()
            if ip:
                return ip
    return src_ip or ''


def get_request_protocol(request: Request, trust_xff: bool) -> str:
    if trust_xff:
        proto = request.headers.get('x-forwarded-proto')
        if proto:
            return proto.split(',')[0].strip().lower()
    return request.url.scheme
