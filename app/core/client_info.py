"""Caller provenance extracted from request headers.

The service runs behind Cloudflare, so the socket peer is a proxy. The real
caller address comes from ``CF-Connecting-IP`` first, then the first hop of
``X-Forwarded-For``, then ``X-Real-IP``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from fastapi import Request

# Headers consulted by the bot heuristic
SECURITY_HEADERS: tuple[str, ...] = (
    "accept-language",
    "sec-fetch-site",
    "sec-fetch-mode",
    "sec-fetch-dest",
    "sec-ch-ua",
    "sec-ch-ua-mobile",
    "sec-ch-ua-platform",
    "cache-control",
    "pragma",
    "upgrade-insecure-requests",
    "x-requested-with",
)


@dataclass(frozen=True)
class ClientInfo:
    ip: str
    user_agent: str
    referer: str | None
    headers: Mapping[str, str] = field(default_factory=dict)


def get_client_ip(request: Request) -> str:
    cf_connecting_ip = request.headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_referer(request: Request) -> str | None:
    return request.headers.get("referer") or request.headers.get("referrer") or None


def get_security_headers(request: Request) -> dict[str, str]:
    """Collect the non-empty browser signal headers, keyed in lower case."""

    return {
        name: value
        for name in SECURITY_HEADERS
        if (value := request.headers.get(name))
    }


def get_client_info(request: Request) -> ClientInfo:
    """FastAPI dependency bundling everything the admission pipeline needs."""

    return ClientInfo(
        ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
        referer=get_referer(request),
        headers=get_security_headers(request),
    )
