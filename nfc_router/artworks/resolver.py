"""Artwork resolution: store lookup plus optional machine token."""

import asyncio
import time
from dataclasses import dataclass

from nfc_router.artworks.models import ArtworkRecord
from nfc_router.artworks.store import ArtworkStore
from nfc_router.errors import ArtworkStoreError
from nfc_router.logging.audit import audit_extra, get_audit_logger
from nfc_router.tokens.provider import MachineTokenProvider


@dataclass
class ResolvedArtwork:
    record: ArtworkRecord
    machine_token: str | None = None

    def to_payload(self, rate_limit_remaining: int) -> dict:
        """Caller-facing JSON body for a successful lookup."""
        payload = {
            "success": True,
            "slug": self.record.slug,
            **self.record.public_fields(),
            "access_timestamp": int(time.time() * 1000),
            "rate_limit_remaining": rate_limit_remaining,
        }
        if self.machine_token:
            payload["machine_token"] = self.machine_token
        return payload


class ArtworkResolver:
    """Read-only pass-through to the artwork store.

    Slug format is the caller's responsibility; only existence is checked.
    """

    def __init__(
        self,
        store: ArtworkStore,
        token_provider: MachineTokenProvider | None = None,
        store_timeout: float = 3.0,
        token_timeout: float = 2.0,
    ):
        self._store = store
        self._token_provider = token_provider
        self._store_timeout = store_timeout
        self._token_timeout = token_timeout

    async def resolve(self, slug: str, want_machine_token: bool = False) -> ResolvedArtwork | None:
        """Fetch an artwork.

        Raises ArtworkStoreError if the store fails or misses its deadline.
        """
        try:
            record = await asyncio.wait_for(self._store.get(slug), timeout=self._store_timeout)
        except TimeoutError as e:
            raise ArtworkStoreError(f"Artwork store timed out after {self._store_timeout}s") from e

        if record is None:
            return None

        token = await self._fetch_machine_token() if want_machine_token else None
        return ResolvedArtwork(record=record, machine_token=token)

    async def _fetch_machine_token(self) -> str | None:
        """Best effort: any failure omits the token."""
        if self._token_provider is None:
            return None
        try:
            return await asyncio.wait_for(
                self._token_provider.get_token(), timeout=self._token_timeout
            )
        except Exception as e:
            get_audit_logger().warning(
                "Machine token unavailable, omitted from response",
                extra=audit_extra("machine_token_failed", error_type=type(e).__name__),
            )
            return None

    async def close(self) -> None:
        await self._store.close()
        if self._token_provider is not None:
            await self._token_provider.close()
