"""DynamoDB-backed artwork store with in-memory TTL cache."""

import asyncio
import time

from nfc_router.artworks.models import ArtworkRecord
from nfc_router.artworks.store import ArtworkStore
from nfc_router.errors import ArtworkStoreError


class DynamoDBArtworkStore(ArtworkStore):
    """Looks up artworks from a DynamoDB table keyed on `slug`."""

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None
        self._cache: dict[str, tuple[ArtworkRecord, float]] = {}

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def get(self, slug: str) -> ArtworkRecord | None:
        if slug in self._cache:
            record, expires_at = self._cache[slug]
            if time.monotonic() < expires_at:
                return record
            del self._cache[slug]

        from botocore.exceptions import BotoCoreError, ClientError

        try:
            result = await asyncio.to_thread(self._get_item, slug)
        except (BotoCoreError, ClientError) as e:
            raise ArtworkStoreError(f"DynamoDB artwork lookup failed: {e}") from e

        # Only cache hits so newly provisioned artworks show up immediately
        if result is not None:
            self._cache[slug] = (result, time.monotonic() + self.CACHE_TTL)

        return result

    def _get_item(self, slug: str) -> ArtworkRecord | None:
        resp = self._get_table().get_item(Key={"slug": slug})
        item = resp.get("Item")
        if item is None:
            return None
        return ArtworkRecord.from_mapping(slug, item)
