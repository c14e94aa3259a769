"""Client identifier derivation for rate limiting."""

from collections.abc import Mapping
from typing import Protocol

from starlette.requests import Request

UNKNOWN_CLIENT = "unknown-client"


class IdentifierStrategy(Protocol):
    """Maps a request to the key its rate limit window is stored under.

    Deployments behind different proxy topologies substitute their own
    strategy without touching the limiter.
    """

    def __call__(self, request: Request) -> str:
        ...


def identifier_from_headers(headers: Mapping[str, str], fallback: str = UNKNOWN_CLIENT) -> str:
    """Extract the client address from proxy headers.

    Prefers the first X-Forwarded-For entry, then X-Real-IP.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return fallback


class ForwardedHeaderIdentifier:
    """Trusts reverse-proxy headers, falling back to a fixed constant."""

    def __init__(self, fallback: str = UNKNOWN_CLIENT) -> None:
        self.fallback = fallback

    def __call__(self, request: Request) -> str:
        return identifier_from_headers(request.headers, self.fallback)


class PeerAddressIdentifier:
    """Ignores proxy headers and keys on the socket peer address.

    For deployments exposed directly to clients, where forwarded headers are
    attacker-controlled.
    """

    def __init__(self, fallback: str = UNKNOWN_CLIENT) -> None:
        self.fallback = fallback

    def __call__(self, request: Request) -> str:
        if request.client and request.client.host:
            return request.client.host
        return self.fallback


def default_identifier_strategy(trust_proxy_headers: bool) -> IdentifierStrategy:
    """Pick the identifier strategy matching the proxy configuration."""
    if trust_proxy_headers:
        return ForwardedHeaderIdentifier()
    return PeerAddressIdentifier()
