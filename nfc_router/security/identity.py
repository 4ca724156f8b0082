"""Client identity used as the rate-limit partition key."""

from collections.abc import Mapping


def client_identity(headers: Mapping[str, str], peer_host: str | None) -> str:
    """Resolve the caller's address.

    Prefers the first hop of X-Forwarded-For, then X-Real-IP, then the
    transport peer. `headers` should be case-insensitive (Starlette Headers).
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return peer_host or "unknown"
