"""Machine-to-machine token providers for exhibit devices.

A trusted device that fetches artwork data also receives a short-lived
token it can present to downstream services. Issuance is external: this
module only fetches (and briefly caches) a token from an OAuth2
client-credentials endpoint.
"""

import asyncio
import time
from abc import ABC, abstractmethod

import httpx

from nfc_router.config.settings import Settings
from nfc_router.errors import MachineTokenError


class MachineTokenProvider(ABC):
    """Base class for machine token sources."""

    @abstractmethod
    async def get_token(self) -> str:
        """Return a valid token. Raises MachineTokenError on failure."""
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if provider holds connections."""
        pass


class HTTPTokenProvider(MachineTokenProvider):
    """Client-credentials grant against a token endpoint."""

    REFRESH_MARGIN = 30.0  # seconds before expiry to fetch a new token
    DEFAULT_EXPIRES_IN = 300.0

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        audience: str = "",
        timeout: float = 2.0,
    ):
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._audience = audience
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._token: str = ""
        self._expires_at: float = 0.0
        self._refresh_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    def _cached(self) -> str | None:
        if self._token and time.monotonic() < self._expires_at - self.REFRESH_MARGIN:
            return self._token
        return None

    async def get_token(self) -> str:
        token = self._cached()
        if token:
            return token

        # One refresh at a time; waiters reuse its result
        async with self._refresh_lock:
            token = self._cached()
            if token:
                return token
            return await self._refresh()

    async def _refresh(self) -> str:
        form = {"grant_type": "client_credentials"}
        if self._audience:
            form["audience"] = self._audience

        client = await self._get_client()
        try:
            response = await client.post(
                self._token_url,
                data=form,
                auth=(self._client_id, self._client_secret),
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise MachineTokenError("Token endpoint timed out") from e
        except httpx.HTTPError as e:
            raise MachineTokenError(f"Token endpoint error: {e}") from e
        except ValueError as e:
            raise MachineTokenError("Token endpoint returned invalid JSON") from e

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise MachineTokenError("Token endpoint response missing access_token")

        try:
            expires_in = float(body.get("expires_in") or self.DEFAULT_EXPIRES_IN)
        except (TypeError, ValueError):
            expires_in = self.DEFAULT_EXPIRES_IN

        self._token = token
        self._expires_at = time.monotonic() + expires_in
        return token

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def build_token_provider(settings: Settings) -> MachineTokenProvider | None:
    """Returns None when no token endpoint is configured."""
    if not settings.machine_token_url:
        return None
    return HTTPTokenProvider(
        token_url=settings.machine_token_url,
        client_id=settings.machine_token_client_id,
        client_secret=settings.machine_token_client_secret,
        audience=settings.machine_token_audience,
        timeout=settings.machine_token_timeout_seconds,
    )
