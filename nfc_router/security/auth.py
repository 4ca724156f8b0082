"""Bearer token authentication for exhibit devices.

Validates the Authorization header against the shared device secret.
Every failure mode (missing header, wrong scheme, wrong token, no secret
configured) collapses to the same False so callers cannot tell them apart.
"""

import hmac

from fastapi.security.utils import get_authorization_scheme_param


def authenticate(authorization: str | None, expected_token: str) -> bool:
    """Return True iff `authorization` is `Bearer <expected_token>`."""
    if not authorization or not expected_token:
        return False

    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token:
        return False

    return hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8"))
